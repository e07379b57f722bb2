"""Ground overlay rendering and image deferral.

Overlays are drawn only once their image is in the cache. Missing images
are queued by URL and flushed to the downloader; ``on_overlay_ready`` then
draws every overlay (root or nested) that uses the URL. An overlay inside
a hidden container is drawn but hidden.
"""

from __future__ import annotations

from typing import Iterable

import numpy as np
from loguru import logger

from kmlayer.assets import AssetDownloader, ImageCache
from kmlayer.handles import HandleKind, RenderedHandle, set_handle_visible
from kmlayer.model import Container, GroundOverlay
from kmlayer.surface import MapSurface, OverlayOptions
from kmlayer.visibility import container_visible


def _is_drawable(overlay: GroundOverlay) -> bool:
    return overlay.image_url is not None and overlay.lat_lng_box is not None


class OverlayCoordinator:
    """Tracks ground overlay image URLs waiting for download."""

    def __init__(self, cache: ImageCache, downloader: AssetDownloader) -> None:
        self._cache = cache
        self._downloader = downloader
        self._pending: dict[str, None] = {}
        self._flushed = False

    @property
    def pending(self) -> list[str]:
        return list(self._pending)

    @property
    def needs_flush(self) -> bool:
        return not self._flushed

    def reset(self) -> None:
        self._pending.clear()
        self._flushed = False

    def collect(
        self,
        overlays: Iterable[GroundOverlay],
        containers: Iterable[Container],
        surface: MapSurface,
        handles: dict[GroundOverlay, RenderedHandle],
        visible: bool = True,
    ) -> int:
        """Draw cached overlays and queue the rest, recursing into containers.

        Overlays missing an image URL or a bounding box are skipped for
        good. Returns the number of overlays drawn.
        """
        drawn = 0
        for overlay in overlays:
            if not _is_drawable(overlay):
                logger.debug("Skipping ground overlay without image URL or bounds")
                continue
            if overlay in handles:
                continue
            image = self._cache.get(overlay.image_url)
            if image is not None:
                handles[overlay] = self._draw(overlay, image, surface, visible)
                drawn += 1
            elif overlay.image_url not in self._pending:
                self._pending[overlay.image_url] = None
                logger.debug(f"Overlay image queued: {overlay.image_url}")
        for container in containers:
            drawn += self.collect(
                container.ground_overlays,
                container.containers,
                surface,
                handles,
                container_visible(container, visible),
            )
        return drawn

    def flush_pending(self) -> int:
        """Trigger one download per queued URL and empty the queue."""
        self._flushed = True
        urls = list(self._pending)
        self._pending.clear()
        for url in urls:
            self._downloader.download_overlay(url)
        if urls:
            logger.debug(f"Overlay downloads triggered: {len(urls)}")
        return len(urls)

    def on_overlay_ready(
        self,
        url: str,
        overlays: Iterable[GroundOverlay],
        containers: Iterable[Container],
        surface: MapSurface,
        handles: dict[GroundOverlay, RenderedHandle],
    ) -> int:
        """Draw every not-yet-drawn overlay whose image is ``url``."""
        image = self._cache.get(url)
        if image is None:
            logger.warning(f"Overlay image ready but not cached: {url}")
            return 0
        return self._draw_matching(url, image, overlays, containers, surface, handles, True)

    def _draw_matching(
        self,
        url: str,
        image: np.ndarray,
        overlays: Iterable[GroundOverlay],
        containers: Iterable[Container],
        surface: MapSurface,
        handles: dict[GroundOverlay, RenderedHandle],
        visible: bool,
    ) -> int:
        drawn = 0
        for overlay in overlays:
            if overlay.image_url != url or not _is_drawable(overlay) or overlay in handles:
                continue
            handles[overlay] = self._draw(overlay, image, surface, visible)
            drawn += 1
        for container in containers:
            drawn += self._draw_matching(
                url,
                image,
                container.ground_overlays,
                container.containers,
                surface,
                handles,
                container_visible(container, visible),
            )
        return drawn

    @staticmethod
    def _draw(
        overlay: GroundOverlay,
        image: np.ndarray,
        surface: MapSurface,
        visible: bool,
    ) -> RenderedHandle:
        options = OverlayOptions(
            image_url=overlay.image_url,
            image=image,
            bounds=overlay.lat_lng_box,
            rotation=overlay.rotation,
            transparency=overlay.transparency,
            z_index=overlay.z_index,
        )
        handle = RenderedHandle(HandleKind.OVERLAY, surface.add_image_overlay(options))
        if not visible:
            set_handle_visible(surface, handle, False)
        return handle
