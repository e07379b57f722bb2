"""Render parsed KML documents onto a map surface.

A parsed KML document (styles, style maps, placemarks, folders, ground
overlays) is handed to a LayerController, which draws it onto any
MapSurface and patches icons and overlay images as downloads complete.
"""

from kmlayer.controller import LayerController
from kmlayer.model import (
    Container,
    GroundOverlay,
    LatLngBox,
    LineString,
    MultiGeometry,
    Placemark,
    Point,
    Polygon,
    Style,
)
from kmlayer.surface import InMemorySurface, MapSurface

__all__ = [
    "Container",
    "GroundOverlay",
    "InMemorySurface",
    "LatLngBox",
    "LayerController",
    "LineString",
    "MapSurface",
    "MultiGeometry",
    "Placemark",
    "Point",
    "Polygon",
    "Style",
]
