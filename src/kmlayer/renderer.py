"""Turn a placemark geometry plus its styles into surface primitives.

The shared style (resolved from the registry) provides the base options.
An inline style overrides only the attributes it explicitly sets. Points
ask the IconCoordinator for their icon; an icon that is not cached yet is
queued and patched in later, the marker is created regardless.
"""

from __future__ import annotations

import random
import re

from loguru import logger

from kmlayer.colors import TRANSPARENT, compute_random_color
from kmlayer.handles import HandleKind, RenderedHandle, remove_handle, set_handle_visible
from kmlayer.icons import IconCoordinator
from kmlayer.model import (
    Geometry,
    GeometryKind,
    LineString,
    Placemark,
    Point,
    Polygon,
    Style,
)
from kmlayer.surface import LineOptions, MapSurface, PointOptions, PolygonOptions

_TEMPLATE_TOKEN = re.compile(r"\$\[(\w+)\]")

# Rendering with no style at all uses the KML defaults
_NO_STYLE = Style()


def substitute_balloon_text(text: str, placemark: Placemark) -> str:
    """Replace $[field] tokens with placemark properties.

    Unknown fields become empty strings and are logged.
    """

    def _replace(match: re.Match) -> str:
        field = match.group(1)
        value = placemark.get_property(field)
        if value is None:
            logger.warning(f"Unknown template variable $[{field}]")
            return ""
        return value

    return _TEMPLATE_TOKEN.sub(_replace, text)


def info_window_text(style: Style, placemark: Placemark) -> tuple[str | None, str | None]:
    """Title and snippet for a marker, as (title, snippet)."""
    has_name = placemark.has_property("name")
    has_description = placemark.has_property("description")
    if style.has_balloon_style and style.balloon_text is not None:
        return substitute_balloon_text(style.balloon_text, placemark), None
    if style.has_balloon_style and has_name:
        return placemark.get_property("name"), None
    if has_name and has_description:
        return placemark.get_property("name"), placemark.get_property("description")
    if has_description:
        return placemark.get_property("description"), None
    return None, None


class GeometryRenderer:
    """Creates surface primitives for one activation pass."""

    def __init__(
        self,
        surface: MapSurface,
        icons: IconCoordinator,
        rng: random.Random | None = None,
    ) -> None:
        self._surface = surface
        self._icons = icons
        self._rng = rng or random.Random()

    def render(
        self,
        placemark: Placemark,
        geometry: Geometry,
        style: Style | None,
        inline_style: Style | None,
        visible: bool,
    ) -> RenderedHandle:
        """Render a geometry; MultiGeometry yields a flattened COMPOSITE."""
        style = style or _NO_STYLE
        kind = geometry.kind
        if kind is GeometryKind.MULTI_GEOMETRY:
            children: list[RenderedHandle] = []
            try:
                for child in geometry.geometries:
                    children.append(self.render(placemark, child, style, inline_style, visible))
            except Exception:
                # Drop the members already drawn so the caller owns nothing partial
                remove_handle(self._surface, RenderedHandle.composite(children))
                raise
            return RenderedHandle.composite(children)

        if kind is GeometryKind.POINT:
            handle = RenderedHandle(
                HandleKind.POINT, self._add_point(placemark, geometry, style, inline_style)
            )
        elif kind is GeometryKind.LINE_STRING:
            handle = RenderedHandle(
                HandleKind.LINE, self._add_line(geometry, style, inline_style)
            )
        elif kind is GeometryKind.POLYGON:
            handle = RenderedHandle(
                HandleKind.POLYGON, self._add_polygon(geometry, style, inline_style)
            )
        else:
            raise ValueError(f"Unsupported geometry kind: {kind}")
        try:
            set_handle_visible(self._surface, handle, visible)
        except Exception:
            remove_handle(self._surface, handle)
            raise
        return handle

    # ------------------------------------------------------------------
    # Point
    # ------------------------------------------------------------------

    def _add_point(
        self,
        placemark: Placemark,
        point: Point,
        style: Style,
        inline_style: Style | None,
    ):
        options = PointOptions(
            position=point.coordinates,
            rotation=style.heading,
            anchor=style.hot_spot,
            marker_hue=style.marker_hue,
        )
        if inline_style is not None:
            self._apply_inline_point(options, inline_style, style)
        elif style.icon_url is not None:
            options.icon = self._icons.request_icon(style.icon_url, style.icon_scale)
        options.title, options.snippet = info_window_text(style, placemark)
        return self._surface.add_point(options)

    def _apply_inline_point(self, options: PointOptions, inline: Style, style: Style) -> None:
        if inline.is_set("heading"):
            options.rotation = inline.heading
        if inline.is_set("hot_spot"):
            options.anchor = inline.hot_spot
        if inline.is_set("marker_color"):
            options.marker_hue = inline.marker_hue
        if inline.is_set("icon_url"):
            options.icon = self._icons.request_icon(inline.icon_url, inline.icon_scale)
        elif style.icon_url is not None:
            options.icon = self._icons.request_icon(style.icon_url, style.icon_scale)

    # ------------------------------------------------------------------
    # LineString
    # ------------------------------------------------------------------

    def _add_line(self, line: LineString, style: Style, inline: Style | None):
        options = LineOptions(
            points=line.coordinates,
            color=style.line_color,
            width=style.line_width,
        )
        if inline is not None:
            if inline.is_set("outline_color"):
                options.color = inline.line_color
            if inline.is_set("width"):
                options.width = inline.line_width
            if inline.line_random_color:
                options.color = compute_random_color(inline.line_color, self._rng)
        elif style.line_random_color:
            options.color = compute_random_color(options.color, self._rng)
        return self._surface.add_line(options)

    # ------------------------------------------------------------------
    # Polygon
    # ------------------------------------------------------------------

    def _add_polygon(self, polygon: Polygon, style: Style, inline: Style | None):
        options = PolygonOptions(
            outer_boundary=polygon.outer_boundary,
            holes=list(polygon.inner_boundaries),
            fill_color=style.fill_color if style.fill else TRANSPARENT,
            stroke_color=style.line_color,
            stroke_width=style.line_width if style.outline else 0.0,
        )
        if inline is not None:
            if inline.fill and inline.is_set("fill_color"):
                options.fill_color = inline.fill_color
            if inline.outline:
                if inline.is_set("outline_color"):
                    options.stroke_color = inline.line_color
                if inline.is_set("width"):
                    options.stroke_width = inline.line_width
            if inline.poly_random_color:
                options.fill_color = compute_random_color(inline.fill_color, self._rng)
        elif style.poly_random_color:
            options.fill_color = compute_random_color(options.fill_color, self._rng)
        return self._surface.add_polygon(options)
