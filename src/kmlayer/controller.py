"""Owns a KML document and its rendered state on one map surface.

Lifecycle:
  store_data() -> activate() -> [process_callbacks()]* -> deactivate()

activate() walks the container tree depth-first. Visibility is computed
top-down (a hidden container hides everything below it) and styles are
accumulated top-down: each container renders against a registry derived
from its parent's, so container styles override root styles for that
subtree only. retarget() moves the whole rendered layer to another surface.

All methods must run on the thread that owns the controller. Download
workers report through the CallbackQueue; the owner drains it with
process_callbacks() on that same thread.
"""

from __future__ import annotations

import random
from typing import Iterable, Iterator

from loguru import logger

from kmlayer.assets import AssetDownloader, HttpAssetDownloader, ImageCache, MemoryImageCache
from kmlayer.config import Settings, settings as default_settings
from kmlayer.dispatch import AssetKind, CallbackQueue
from kmlayer.events import LAYER_ACTIVATED, LAYER_DEACTIVATED, EventBus
from kmlayer.handles import PlacemarkRecord, RenderedHandle, remove_handle
from kmlayer.icons import IconCoordinator
from kmlayer.model import Container, GroundOverlay, Placemark, Style
from kmlayer.overlays import OverlayCoordinator
from kmlayer.renderer import GeometryRenderer
from kmlayer.styles import StyleRegistry
from kmlayer.surface import MapSurface
from kmlayer.visibility import container_visible, placemark_visible


class LayerController:
    """Renders one KML document onto a MapSurface and keeps it in sync."""

    def __init__(
        self,
        surface: MapSurface,
        cache: ImageCache,
        downloader: AssetDownloader,
        settings: Settings | None = None,
        callbacks: CallbackQueue | None = None,
        event_bus: EventBus | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._surface = surface
        self._settings = settings or default_settings
        self._callbacks = callbacks or CallbackQueue()
        self._event_bus = event_bus
        self._rng = rng
        self._icons = IconCoordinator(cache, downloader, self._settings.force_icon_refresh)
        self._overlays = OverlayCoordinator(cache, downloader)

        # Stored document
        self._styles: dict[str | None, Style] = {}
        self._style_aliases: dict[str, str] = {}
        self._placemarks: list[Placemark] = []
        self._containers: list[Container] = []
        self._ground_overlays: list[GroundOverlay] = []
        self._stored = False

        # Rendered state
        self._registry = StyleRegistry()
        self._records: dict[Placemark, PlacemarkRecord] = {}
        self._overlay_handles: dict[GroundOverlay, RenderedHandle] = {}
        self._active = False

    @classmethod
    def with_http_assets(
        cls,
        surface: MapSurface,
        settings: Settings | None = None,
        event_bus: EventBus | None = None,
    ) -> LayerController:
        """Controller wired to an in-memory cache and the HTTP downloader."""
        settings = settings or default_settings
        cache = MemoryImageCache()
        callbacks = CallbackQueue()
        downloader = HttpAssetDownloader(cache, callbacks, settings)
        return cls(
            surface,
            cache,
            downloader,
            settings=settings,
            callbacks=callbacks,
            event_bus=event_bus,
        )

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def surface(self) -> MapSurface:
        return self._surface

    @property
    def callbacks(self) -> CallbackQueue:
        return self._callbacks

    @property
    def registry(self) -> StyleRegistry:
        """Root style registry (empty while inactive)."""
        return self._registry

    @property
    def icons(self) -> IconCoordinator:
        return self._icons

    @property
    def overlays(self) -> OverlayCoordinator:
        return self._overlays

    @property
    def placemark_handles(self) -> dict[Placemark, RenderedHandle | None]:
        """Handle of every stored placemark, root and nested."""
        return {placemark: record.handle for placemark, record in self._records.items()}

    @property
    def overlay_handles(self) -> dict[GroundOverlay, RenderedHandle]:
        return dict(self._overlay_handles)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def store_data(
        self,
        styles: dict[str | None, Style] | None = None,
        style_aliases: dict[str, str] | None = None,
        placemarks: list[Placemark] | None = None,
        containers: list[Container] | None = None,
        ground_overlays: list[GroundOverlay] | None = None,
    ) -> None:
        """Keep the parsed document. Nothing is drawn until activate()."""
        if self._active:
            raise RuntimeError("Deactivate the layer before storing new data")
        self._styles = dict(styles or {})
        self._style_aliases = dict(style_aliases or {})
        self._placemarks = list(placemarks or [])
        self._containers = list(containers or [])
        self._ground_overlays = list(ground_overlays or [])
        self._icons.reset()
        self._overlays.reset()
        self._stored = True

    def activate(self) -> None:
        """Draw the stored document and start deferred asset downloads."""
        if not self._stored:
            raise RuntimeError("No KML data stored; call store_data() first")
        if self._active:
            logger.debug("Layer already active")
            return

        registry = StyleRegistry()
        registry.merge(self._styles)
        registry.resolve_aliases(self._style_aliases)
        self._registry = registry

        renderer = GeometryRenderer(self._surface, self._icons, self._rng)
        try:
            self._overlays.collect(
                self._ground_overlays, self._containers, self._surface, self._overlay_handles
            )
            self._render_containers(renderer, self._containers, registry, True)
            self._render_placemarks(renderer, self._placemarks, registry, True)
        except Exception:
            removed = self._remove_rendered()
            logger.error(f"KML layer activation failed, {removed} primitives removed")
            raise
        if self._overlays.needs_flush:
            self._overlays.flush_pending()

        self._active = True

        if self._icons.needs_flush:
            self._icons.flush_pending()

        logger.info(
            f"KML layer activated: {len(self._records)} placemarks, "
            f"{len(self._overlay_handles)} ground overlays"
        )
        self._publish(
            LAYER_ACTIVATED,
            {"placemarks": len(self._records), "overlays": len(self._overlay_handles)},
        )

    def deactivate(self) -> None:
        """Remove every primitive from the surface. No-op when inactive."""
        if not self._active:
            return
        removed = self._remove_rendered()
        self._active = False

        logger.info(f"KML layer deactivated: {removed} primitives removed")
        self._publish(LAYER_DEACTIVATED, {"removed": removed})

    def retarget(self, surface: MapSurface) -> None:
        """Move the layer to another surface.

        The layer is removed from the old surface and the stored document is
        drawn on the new one, whether or not it was active before. Without
        stored data only the surface changes.
        """
        self.deactivate()
        self._surface = surface
        if self._stored:
            self.activate()
            logger.info("KML layer retargeted to a new surface")

    # ------------------------------------------------------------------
    # Asset callbacks
    # ------------------------------------------------------------------

    def process_callbacks(self) -> int:
        """Apply every queued asset-ready notification. Returns the count."""
        applied = 0
        for kind, url in self._callbacks.drain():
            if kind is AssetKind.ICON:
                self.on_icon_ready(url)
            else:
                self.on_overlay_ready(url)
            applied += 1
        return applied

    def on_icon_ready(self, url: str) -> int:
        """Patch a downloaded icon onto rendered markers.

        Returns the number of markers patched; 0 when the layer is inactive.
        """
        if not self._active:
            logger.debug(f"Ignoring icon for inactive layer: {url}")
            return 0
        return self._icons.on_icon_ready(url, self._walk_records(), self._surface)

    def on_overlay_ready(self, url: str) -> int:
        """Draw ground overlays whose image just arrived."""
        if not self._active:
            logger.debug(f"Ignoring overlay image for inactive layer: {url}")
            return 0
        return self._overlays.on_overlay_ready(
            url, self._ground_overlays, self._containers, self._surface, self._overlay_handles
        )

    # ------------------------------------------------------------------
    # Tree walks
    # ------------------------------------------------------------------

    def _render_containers(
        self,
        renderer: GeometryRenderer,
        containers: Iterable[Container],
        registry: StyleRegistry,
        parent_visible: bool,
    ) -> None:
        for container in containers:
            visible = container_visible(container, parent_visible)
            scoped = registry.scoped(container.styles, container.style_aliases)
            self._render_placemarks(renderer, container.placemarks, scoped, visible)
            self._render_containers(renderer, container.containers, scoped, visible)

    def _render_placemarks(
        self,
        renderer: GeometryRenderer,
        placemarks: Iterable[Placemark],
        registry: StyleRegistry,
        parent_visible: bool,
    ) -> None:
        for placemark in placemarks:
            visible = parent_visible and placemark_visible(placemark)
            style = registry.lookup(placemark.style_id)
            record = PlacemarkRecord(style=style)
            if placemark.geometry is not None:
                try:
                    record.handle = renderer.render(
                        placemark, placemark.geometry, style, placemark.inline_style, visible
                    )
                except (ValueError, TypeError, AttributeError) as e:
                    logger.warning(f"Placemark not rendered: {e}")
            self._records[placemark] = record

    def _remove_rendered(self) -> int:
        removed = 0
        for record in self._records.values():
            removed += remove_handle(self._surface, record.handle)
        for handle in self._overlay_handles.values():
            removed += remove_handle(self._surface, handle)
        self._records.clear()
        self._overlay_handles.clear()
        self._registry = StyleRegistry()
        return removed

    def _walk_records(self) -> Iterator[tuple[Placemark, PlacemarkRecord]]:
        yield from self._placemark_records(self._placemarks)
        yield from self._container_records(self._containers)

    def _container_records(
        self, containers: Iterable[Container]
    ) -> Iterator[tuple[Placemark, PlacemarkRecord]]:
        for container in containers:
            yield from self._placemark_records(container.placemarks)
            yield from self._container_records(container.containers)

    def _placemark_records(
        self, placemarks: Iterable[Placemark]
    ) -> Iterator[tuple[Placemark, PlacemarkRecord]]:
        for placemark in placemarks:
            record = self._records.get(placemark)
            if record is not None:
                yield placemark, record

    def _publish(self, event_type: str, data: dict) -> None:
        if self._event_bus is not None:
            self._event_bus.publish(event_type, data)
