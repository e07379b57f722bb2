"""Merged style tables with alias resolution.

A registry maps style keys (None for the document default) to Style
objects. Tables merge last-writer-wins. The controller keeps one registry
for the document root and derives a child registry per container with
``scoped()``, so container styles flow root-to-leaf in declaration order
without leaking into sibling containers.
"""

from __future__ import annotations

from typing import Iterable, Mapping

from kmlayer.model import Style


class StyleRegistry:
    """Effective style table for one level of the container tree."""

    def __init__(self, styles: Mapping[str | None, Style] | None = None) -> None:
        self._styles: dict[str | None, Style] = dict(styles or {})

    def __len__(self) -> int:
        return len(self._styles)

    def __contains__(self, key: object) -> bool:
        return key in self._styles

    def merge(self, *tables: Mapping[str | None, Style] | None) -> None:
        """Merge style tables in order; later tables win on key collision."""
        for table in tables:
            if table:
                self._styles.update(table)

    def resolve_aliases(self, aliases: Mapping[str, str] | None) -> None:
        """Register every alias whose target key is already in the registry.

        Targets are looked up in the registry as it stood before this call,
        so alias-to-alias chains are not followed and the outcome does not
        depend on the alias table's iteration order. Aliases pointing at an
        unknown key are dropped.
        """
        if not aliases:
            return
        snapshot = dict(self._styles)
        for alias, target in aliases.items():
            style = snapshot.get(target)
            if style is not None:
                self._styles[alias] = style

    def scoped(
        self,
        styles: Mapping[str | None, Style] | None = None,
        aliases: Mapping[str, str] | None = None,
    ) -> StyleRegistry:
        """Return a child registry with container-local styles and aliases.

        The receiver is left untouched. When the container declares nothing
        the receiver itself is returned.
        """
        if not styles and not aliases:
            return self
        child = StyleRegistry(self._styles)
        child.merge(styles)
        child.resolve_aliases(aliases)
        return child

    def lookup(self, style_id: str | None) -> Style | None:
        """Resolve a style reference.

        Falls back to the default (None-keyed) style when the reference is
        None or unknown; returns None when there is no default either.
        """
        style = self._styles.get(None)
        if style_id is not None and style_id in self._styles:
            style = self._styles[style_id]
        return style

    def keys(self) -> Iterable[str | None]:
        return self._styles.keys()

    def clear(self) -> None:
        self._styles.clear()
