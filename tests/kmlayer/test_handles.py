"""Tests for RenderedHandle flattening and removal."""

from kmlayer.handles import HandleKind, RenderedHandle, remove_handle, set_handle_visible
from kmlayer.surface import InMemorySurface, LineOptions, PointOptions


def test_composite_flattens_nested_composites():
    p = RenderedHandle(HandleKind.POINT, "p")
    line = RenderedHandle(HandleKind.LINE, "l")
    poly = RenderedHandle(HandleKind.POLYGON, "g")
    nested = RenderedHandle.composite([line, poly])
    top = RenderedHandle.composite([p, nested])
    assert top.kind is HandleKind.COMPOSITE
    assert [h.ref for h in top.children] == ["p", "l", "g"]
    assert [h.ref for h in top.leaves()] == ["p", "l", "g"]


def test_points_yields_only_point_leaves():
    top = RenderedHandle.composite([
        RenderedHandle(HandleKind.POINT, "p1"),
        RenderedHandle(HandleKind.LINE, "l"),
        RenderedHandle(HandleKind.POINT, "p2"),
    ])
    assert [h.ref for h in top.points()] == ["p1", "p2"]


def test_remove_handle_removes_every_leaf():
    surface = InMemorySurface()
    refs = [surface.add_point(PointOptions((0.0, 0.0))), surface.add_line(LineOptions(((0.0, 0.0), (1.0, 1.0))))]
    handle = RenderedHandle.composite([
        RenderedHandle(HandleKind.POINT, refs[0]),
        RenderedHandle(HandleKind.LINE, refs[1]),
    ])
    assert remove_handle(surface, handle) == 2
    assert surface.primitives == {}


def test_remove_none_handle_is_noop():
    surface = InMemorySurface()
    assert remove_handle(surface, None) == 0
    assert surface.calls == []


def test_set_handle_visible():
    surface = InMemorySurface()
    ref = surface.add_point(PointOptions((0.0, 0.0)))
    set_handle_visible(surface, RenderedHandle(HandleKind.POINT, ref), False)
    assert surface.primitives[ref].visible is False
