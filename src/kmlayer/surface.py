"""Map surface interface and primitive option records.

MapSurface is the seam to whatever widget actually draws: a desktop map, a
web map bridge, a tile renderer. InMemorySurface is a headless
implementation that keeps every primitive in a dict, useful for tests,
exports and dry runs.
"""

from __future__ import annotations

import itertools
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from kmlayer.colors import OPAQUE_WHITE
from kmlayer.model import Coordinate, LatLngBox


@dataclass(eq=False)
class IconDescriptor:
    """A decoded (and possibly rescaled) icon bitmap."""
    url: str
    image: np.ndarray
    scale: float = 1.0

    @property
    def width(self) -> int:
        return int(self.image.shape[1])

    @property
    def height(self) -> int:
        return int(self.image.shape[0])


@dataclass
class PointOptions:
    position: Coordinate
    rotation: float = 0.0
    anchor: tuple[float, float] = (0.5, 1.0)
    icon: IconDescriptor | None = None
    marker_hue: float | None = None
    title: str | None = None
    snippet: str | None = None


@dataclass
class LineOptions:
    points: tuple[Coordinate, ...]
    color: int = OPAQUE_WHITE
    width: float = 1.0


@dataclass
class PolygonOptions:
    outer_boundary: tuple[Coordinate, ...]
    holes: list[tuple[Coordinate, ...]] = field(default_factory=list)
    fill_color: int = OPAQUE_WHITE
    stroke_color: int = OPAQUE_WHITE
    stroke_width: float = 1.0


@dataclass
class OverlayOptions:
    image_url: str
    image: np.ndarray
    bounds: LatLngBox
    rotation: float = 0.0
    transparency: float = 0.0
    z_index: float = 0.0


class MapSurface(ABC):
    """Drawing capabilities the layer needs from a map widget.

    Every add_* method returns an opaque reference that the surface accepts
    back in the other calls. The surface owns primitive lifetimes; the
    layer asks for removal explicitly.
    """

    @abstractmethod
    def add_point(self, options: PointOptions) -> Any:
        """Create a marker."""

    @abstractmethod
    def add_line(self, options: LineOptions) -> Any:
        """Create a polyline."""

    @abstractmethod
    def add_polygon(self, options: PolygonOptions) -> Any:
        """Create a polygon."""

    @abstractmethod
    def add_image_overlay(self, options: OverlayOptions) -> Any:
        """Create a ground overlay."""

    @abstractmethod
    def remove_primitive(self, ref: Any) -> None:
        """Delete a primitive."""

    @abstractmethod
    def set_primitive_visible(self, ref: Any, visible: bool) -> None:
        """Show or hide a primitive."""

    @abstractmethod
    def set_point_icon(self, ref: Any, icon: IconDescriptor) -> None:
        """Replace the icon of an existing marker."""


@dataclass
class Primitive:
    """A primitive held by InMemorySurface."""
    ref: str
    kind: str
    options: Any
    visible: bool = True


class InMemorySurface(MapSurface):
    """Headless surface keeping primitives in insertion order.

    Attributes:
        primitives: Live primitives keyed by reference.
        calls: Every surface call as (method, ref) in call order.
    """

    def __init__(self, name: str = "memory") -> None:
        self.name = name
        self.primitives: dict[str, Primitive] = {}
        self.calls: list[tuple[str, str]] = []
        self._ids = itertools.count(1)

    def _add(self, kind: str, options: Any) -> str:
        ref = f"{self.name}-{kind}-{next(self._ids)}"
        self.primitives[ref] = Primitive(ref=ref, kind=kind, options=options)
        self.calls.append((f"add_{kind}", ref))
        return ref

    def _get(self, ref: str) -> Primitive:
        primitive = self.primitives.get(ref)
        if primitive is None:
            raise KeyError(f"Primitive not found: {ref}")
        return primitive

    def add_point(self, options: PointOptions) -> str:
        return self._add("point", options)

    def add_line(self, options: LineOptions) -> str:
        return self._add("line", options)

    def add_polygon(self, options: PolygonOptions) -> str:
        return self._add("polygon", options)

    def add_image_overlay(self, options: OverlayOptions) -> str:
        return self._add("image_overlay", options)

    def remove_primitive(self, ref: str) -> None:
        self._get(ref)
        del self.primitives[ref]
        self.calls.append(("remove_primitive", ref))

    def set_primitive_visible(self, ref: str, visible: bool) -> None:
        self._get(ref).visible = visible
        self.calls.append(("set_primitive_visible", ref))

    def set_point_icon(self, ref: str, icon: IconDescriptor) -> None:
        self._get(ref).options.icon = icon
        self.calls.append(("set_point_icon", ref))

    def count_calls(self, method: str) -> int:
        return sum(1 for name, _ in self.calls if name == method)

    def created_count(self) -> int:
        return sum(1 for name, _ in self.calls if name.startswith("add_"))

    def of_kind(self, kind: str) -> list[Primitive]:
        return [p for p in self.primitives.values() if p.kind == kind]
