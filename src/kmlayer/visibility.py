"""Effective visibility of placemarks and containers.

A feature is hidden only when its "visibility" property is "0". Container
visibility is conjunctive: a hidden ancestor hides everything below it.
"""

from __future__ import annotations

from loguru import logger

from kmlayer.model import Container, Placemark

_HIDDEN = "0"


def _visibility_property(value: str | None, owner: str) -> bool:
    if value is None:
        return True
    text = value.strip()
    if text == _HIDDEN:
        return False
    try:
        int(text)
    except ValueError:
        logger.warning(f"Non-numeric visibility {value!r} on {owner}, treating as visible")
    return True


def placemark_visible(placemark: Placemark) -> bool:
    return _visibility_property(placemark.get_property("visibility"), "placemark")


def container_visible(container: Container, parent_visible: bool) -> bool:
    """Visibility of a container given whether its parent is visible."""
    if not parent_visible:
        return False
    return _visibility_property(container.get_property("visibility"), "container")
