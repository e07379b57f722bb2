"""Marker icon deferral.

Icons that are not cached when a point renders are queued here by URL.
``flush_pending`` hands the queue to the downloader in one pass; when a
download lands, ``on_icon_ready`` patches the icon onto markers that are
already on the surface instead of recreating them.
"""

from __future__ import annotations

from typing import Iterable

import cv2
import numpy as np
from loguru import logger

from kmlayer.assets import AssetDownloader, ImageCache
from kmlayer.handles import PlacemarkRecord
from kmlayer.model import Placemark, Style
from kmlayer.surface import IconDescriptor, MapSurface


def scale_icon(image: np.ndarray, scale: float) -> np.ndarray:
    """Resample an icon bitmap by a scale factor (1.0 = unchanged)."""
    if scale == 1.0:
        return image
    height, width = image.shape[:2]
    new_w = max(1, int(width * scale))
    new_h = max(1, int(height * scale))
    interpolation = cv2.INTER_AREA if scale < 1.0 else cv2.INTER_LINEAR
    return cv2.resize(image, (new_w, new_h), interpolation=interpolation)


def icon_style_for(url: str, style: Style | None, inline_style: Style | None) -> Style | None:
    """Pick the style whose icon URL is ``url``; an inline icon wins."""
    if inline_style is not None and inline_style.is_set("icon_url"):
        return inline_style if inline_style.icon_url == url else None
    if style is not None and style.icon_url == url:
        return style
    return None


class IconCoordinator:
    """Tracks icon URLs waiting for download, de-duplicated."""

    def __init__(
        self,
        cache: ImageCache,
        downloader: AssetDownloader,
        force_refresh: bool = False,
    ) -> None:
        self._cache = cache
        self._downloader = downloader
        self._force_refresh = force_refresh
        # dict keeps first-request order for deterministic flushing
        self._pending: dict[str, None] = {}
        self._flushed = False

    @property
    def pending(self) -> list[str]:
        return list(self._pending)

    @property
    def needs_flush(self) -> bool:
        return not self._flushed or self._force_refresh

    def reset(self) -> None:
        """Forget queued URLs and the flushed flag (new document load)."""
        self._pending.clear()
        self._flushed = False

    def request_icon(self, url: str, scale: float = 1.0) -> IconDescriptor | None:
        """Return a ready icon for ``url``, or queue it and return None."""
        if not self._force_refresh:
            image = self._cache.get(url)
            if image is not None:
                return IconDescriptor(url=url, image=scale_icon(image, scale), scale=scale)
        if url not in self._pending:
            self._pending[url] = None
            logger.debug(f"Icon queued: {url}")
        return None

    def flush_pending(self) -> int:
        """Trigger one download per queued URL and empty the queue."""
        self._flushed = True
        urls = list(self._pending)
        self._pending.clear()
        for url in urls:
            self._downloader.download_icon(url)
        if urls:
            logger.debug(f"Icon downloads triggered: {len(urls)}")
        return len(urls)

    def on_icon_ready(
        self,
        url: str,
        records: Iterable[tuple[Placemark, PlacemarkRecord]],
        surface: MapSurface,
    ) -> int:
        """Apply a downloaded icon to every rendered marker that uses it.

        Returns the number of markers patched.
        """
        image = self._cache.get(url)
        if image is None:
            logger.warning(f"Icon ready but not cached: {url}")
            return 0

        scaled: dict[float, IconDescriptor] = {}
        patched = 0
        for placemark, record in records:
            if record.handle is None:
                continue
            style = icon_style_for(url, record.style, placemark.inline_style)
            if style is None:
                continue
            scale = style.icon_scale
            if scale not in scaled:
                scaled[scale] = IconDescriptor(url=url, image=scale_icon(image, scale), scale=scale)
            for leaf in record.handle.points():
                surface.set_point_icon(leaf.ref, scaled[scale])
                patched += 1
        return patched
