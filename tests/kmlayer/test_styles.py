"""Tests for StyleRegistry merge order, alias resolution and lookup fallback."""

from kmlayer.model import Style
from kmlayer.styles import StyleRegistry

DEFAULT = Style(style_id=None, line_width=1.0)
RED = Style(style_id="red", line_color=0xFFFF0000)
BLUE = Style(style_id="blue", line_color=0xFF0000FF)


class TestMerge:
    """Merging style tables."""

    def test_later_table_wins(self):
        """On key collision the last merged table wins."""
        registry = StyleRegistry()
        registry.merge({"a": RED}, {"a": BLUE})
        assert registry.lookup("a") is BLUE

    def test_merge_ignores_none_tables(self):
        registry = StyleRegistry()
        registry.merge(None, {"red": RED}, {})
        assert len(registry) == 1
        assert "red" in registry

    def test_clear(self):
        registry = StyleRegistry({"red": RED})
        registry.clear()
        assert len(registry) == 0
        assert registry.lookup("red") is None


class TestAliases:
    """Style map indirection."""

    def test_alias_points_at_target_style(self):
        registry = StyleRegistry({"red": RED})
        registry.resolve_aliases({"highlight": "red"})
        assert registry.lookup("highlight") is RED

    def test_alias_with_missing_target_is_dropped(self):
        """Aliases to unknown keys are silently ignored."""
        registry = StyleRegistry({"red": RED})
        registry.resolve_aliases({"ghost": "nowhere"})
        assert "ghost" not in registry
        assert len(registry) == 1

    def test_alias_chains_are_not_followed(self):
        """An alias whose target is another alias of the same table is dropped."""
        registry = StyleRegistry({"red": RED})
        registry.resolve_aliases({"first": "red", "second": "first"})
        assert registry.lookup("first") is RED
        assert "second" not in registry

    def test_alias_resolution_independent_of_order(self):
        forward = StyleRegistry({"red": RED})
        forward.resolve_aliases({"a": "red", "b": "a"})
        backward = StyleRegistry({"red": RED})
        backward.resolve_aliases({"b": "a", "a": "red"})
        assert set(forward.keys()) == set(backward.keys())

    def test_self_referencing_alias_terminates(self):
        registry = StyleRegistry({"red": RED})
        registry.resolve_aliases({"loop": "loop"})
        assert "loop" not in registry

    def test_alias_overrides_existing_key(self):
        registry = StyleRegistry({"red": RED, "blue": BLUE})
        registry.resolve_aliases({"blue": "red"})
        assert registry.lookup("blue") is RED


class TestLookup:
    """Resolving a placemark's style reference."""

    def test_none_key_returns_default(self):
        registry = StyleRegistry({None: DEFAULT, "red": RED})
        assert registry.lookup(None) is DEFAULT

    def test_known_key_overrides_default(self):
        registry = StyleRegistry({None: DEFAULT, "red": RED})
        assert registry.lookup("red") is RED

    def test_unknown_key_falls_back_to_default(self):
        registry = StyleRegistry({None: DEFAULT})
        assert registry.lookup("missing") is DEFAULT

    def test_no_default_and_unknown_key_is_none(self):
        registry = StyleRegistry({"red": RED})
        assert registry.lookup("missing") is None
        assert registry.lookup(None) is None

    def test_lookup_is_idempotent(self):
        registry = StyleRegistry({None: DEFAULT, "red": RED})
        assert registry.lookup("red") is registry.lookup("red")


class TestScoped:
    """Per-container registries."""

    def test_scoped_does_not_modify_parent(self):
        parent = StyleRegistry({"red": RED})
        child = parent.scoped({"blue": BLUE}, {"alias": "blue"})
        assert child.lookup("blue") is BLUE
        assert child.lookup("alias") is BLUE
        assert "blue" not in parent
        assert "alias" not in parent

    def test_scoped_overrides_parent_key(self):
        parent = StyleRegistry({"a": RED})
        child = parent.scoped({"a": BLUE})
        assert child.lookup("a") is BLUE
        assert parent.lookup("a") is RED

    def test_scoped_without_local_styles_returns_same_registry(self):
        parent = StyleRegistry({"red": RED})
        assert parent.scoped({}, {}) is parent

    def test_scoped_alias_can_target_parent_style(self):
        parent = StyleRegistry({"red": RED})
        child = parent.scoped(None, {"hot": "red"})
        assert child.lookup("hot") is RED
