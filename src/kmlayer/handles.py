"""Tagged references to primitives living on a map surface.

Leaf handles wrap the opaque reference returned by the surface. A
MultiGeometry placemark owns a COMPOSITE handle whose children are the
leaf handles of every nested geometry, flattened in document order.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Iterator

if TYPE_CHECKING:
    from kmlayer.model import Style
    from kmlayer.surface import MapSurface


class HandleKind(Enum):
    POINT = "point"
    LINE = "line"
    POLYGON = "polygon"
    OVERLAY = "overlay"
    COMPOSITE = "composite"


@dataclass(frozen=True, eq=False)
class RenderedHandle:
    kind: HandleKind
    ref: Any = None
    children: tuple[RenderedHandle, ...] = ()

    @classmethod
    def composite(cls, handles: list[RenderedHandle]) -> RenderedHandle:
        """Build a composite, flattening nested composites."""
        flat: list[RenderedHandle] = []
        for handle in handles:
            flat.extend(handle.leaves())
        return cls(HandleKind.COMPOSITE, children=tuple(flat))

    def leaves(self) -> Iterator[RenderedHandle]:
        if self.kind is HandleKind.COMPOSITE:
            for child in self.children:
                yield from child.leaves()
        else:
            yield self

    def points(self) -> Iterator[RenderedHandle]:
        return (leaf for leaf in self.leaves() if leaf.kind is HandleKind.POINT)


def remove_handle(surface: MapSurface, handle: RenderedHandle | None) -> int:
    """Remove every primitive behind a handle. Returns the removal count."""
    if handle is None:
        return 0
    count = 0
    for leaf in handle.leaves():
        surface.remove_primitive(leaf.ref)
        count += 1
    return count


def set_handle_visible(surface: MapSurface, handle: RenderedHandle, visible: bool) -> None:
    for leaf in handle.leaves():
        surface.set_primitive_visible(leaf.ref, visible)


@dataclass(eq=False)
class PlacemarkRecord:
    """Rendered state of one placemark: its handle and the style it used."""
    handle: RenderedHandle | None = None
    style: Style | None = None
