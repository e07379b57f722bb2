"""Document model for a parsed KML layer.

All coordinates are stored in GeoJSON convention: (lng, lat) or (lng, lat, alt).
Placemarks, containers and ground overlays compare by identity, so two
features with identical content are still tracked separately.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from kmlayer.colors import OPAQUE_WHITE

Coordinate = tuple[float, ...]


class GeometryKind(Enum):
    """Geometry variants a placemark can carry."""
    POINT = "Point"
    LINE_STRING = "LineString"
    POLYGON = "Polygon"
    MULTI_GEOMETRY = "MultiGeometry"


@dataclass(frozen=True)
class Point:
    coordinates: Coordinate

    kind = GeometryKind.POINT


@dataclass(frozen=True)
class LineString:
    coordinates: tuple[Coordinate, ...]

    kind = GeometryKind.LINE_STRING


@dataclass(frozen=True)
class Polygon:
    """Outer boundary plus zero or more inner boundaries (holes)."""
    outer_boundary: tuple[Coordinate, ...]
    inner_boundaries: tuple[tuple[Coordinate, ...], ...] = ()

    kind = GeometryKind.POLYGON


@dataclass(frozen=True)
class MultiGeometry:
    """Ordered collection of geometries; may nest further MultiGeometries."""
    geometries: tuple[Geometry, ...]

    kind = GeometryKind.MULTI_GEOMETRY


Geometry = Point | LineString | Polygon | MultiGeometry


@dataclass(frozen=True)
class Style:
    """Immutable visual attributes resolved from a KML <Style>.

    Attributes:
        style_id: Registry key, None for the document default style.
        icon_url: Point icon image URL.
        icon_scale: Icon scale factor (1.0 = original bitmap size).
        heading: Icon rotation in degrees.
        hot_spot: Icon anchor as (u, v) fractions of the bitmap.
        marker_hue: Hue for the default marker when no icon is used.
        line_color: ARGB line color, also the polygon outline color.
        line_width: Line width, also the polygon outline width.
        fill_color: ARGB polygon fill color.
        fill: Whether polygons are filled.
        outline: Whether polygons are outlined.
        line_random_color: LineStyle colorMode is "random".
        poly_random_color: PolyStyle colorMode is "random".
        has_balloon_style: A <BalloonStyle> was declared.
        balloon_text: BalloonStyle text, may contain $[field] tokens.
        explicit: Names of attributes that were set in the document
            rather than defaulted.
    """

    style_id: str | None = None
    icon_url: str | None = None
    icon_scale: float = 1.0
    heading: float = 0.0
    hot_spot: tuple[float, float] = (0.5, 1.0)
    marker_hue: float | None = None
    line_color: int = OPAQUE_WHITE
    line_width: float = 1.0
    fill_color: int = OPAQUE_WHITE
    fill: bool = True
    outline: bool = True
    line_random_color: bool = False
    poly_random_color: bool = False
    has_balloon_style: bool = False
    balloon_text: str | None = None
    explicit: frozenset[str] = frozenset()

    def is_set(self, attribute: str) -> bool:
        return attribute in self.explicit


@dataclass(eq=False)
class Placemark:
    """A feature with properties, an optional style reference and geometry."""
    properties: dict[str, str] = field(default_factory=dict)
    style_id: str | None = None
    inline_style: Style | None = None
    geometry: Geometry | None = None

    def has_property(self, key: str) -> bool:
        return key in self.properties

    def get_property(self, key: str) -> str | None:
        return self.properties.get(key)


@dataclass(frozen=True)
class LatLngBox:
    north: float
    south: float
    east: float
    west: float


@dataclass(eq=False)
class GroundOverlay:
    """An image draped over a geographic box.

    Attributes:
        image_url: Icon/href of the overlay image.
        lat_lng_box: Geographic bounds; overlays without one are never drawn.
        rotation: Rotation of the image in degrees.
        transparency: 0.0 (opaque) to 1.0 (invisible).
        z_index: Draw order (higher = on top).
        properties: Arbitrary key-value metadata.
    """

    image_url: str | None = None
    lat_lng_box: LatLngBox | None = None
    rotation: float = 0.0
    transparency: float = 0.0
    z_index: float = 0.0
    properties: dict[str, str] = field(default_factory=dict)


@dataclass(eq=False)
class Container:
    """A <Folder> or <Document> node holding features and local styles."""
    properties: dict[str, str] = field(default_factory=dict)
    styles: dict[str | None, Style] = field(default_factory=dict)
    style_aliases: dict[str, str] = field(default_factory=dict)
    placemarks: list[Placemark] = field(default_factory=list)
    ground_overlays: list[GroundOverlay] = field(default_factory=list)
    containers: list[Container] = field(default_factory=list)

    def has_property(self, key: str) -> bool:
        return key in self.properties

    def get_property(self, key: str) -> str | None:
        return self.properties.get(key)
