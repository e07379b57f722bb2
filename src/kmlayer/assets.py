"""Image cache and download collaborators.

The layer core only asks two things of this module: "is this URL already
decoded?" (ImageCache.get) and "start fetching this URL" (AssetDownloader).
Completion is reported through a CallbackQueue, never as a return value.

HttpAssetDownloader fetches with httpx on a small thread pool, keeps raw
bytes in an on-disk cache (sha256 of the URL, same layout idea as the geo
tile cache), decodes with OpenCV and posts the ready notification.
"""

from __future__ import annotations

import hashlib
import threading
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from urllib.parse import unquote, urlparse

import cv2
import httpx
import numpy as np
from loguru import logger

from kmlayer.config import Settings, settings as default_settings
from kmlayer.dispatch import AssetKind, CallbackQueue


class AssetFetchError(Exception):
    """Raised when a downloaded asset cannot be turned into an image."""


class ImageCache(ABC):
    """Lookup of decoded images by URL."""

    @abstractmethod
    def get(self, url: str) -> np.ndarray | None:
        """Return the decoded image, or None if it is not cached."""


class MemoryImageCache(ImageCache):
    """Thread-safe in-process image cache."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._images: dict[str, np.ndarray] = {}

    def get(self, url: str) -> np.ndarray | None:
        with self._lock:
            return self._images.get(url)

    def put(self, url: str, image: np.ndarray) -> None:
        with self._lock:
            self._images[url] = image

    def discard(self, url: str) -> None:
        with self._lock:
            self._images.pop(url, None)

    def __contains__(self, url: object) -> bool:
        with self._lock:
            return url in self._images

    def __len__(self) -> int:
        with self._lock:
            return len(self._images)


class AssetDownloader(ABC):
    """Fire-and-forget download trigger."""

    @abstractmethod
    def download_icon(self, url: str) -> None:
        """Start fetching a marker icon."""

    @abstractmethod
    def download_overlay(self, url: str) -> None:
        """Start fetching a ground overlay image."""


def decode_image(data: bytes) -> np.ndarray:
    """Decode PNG/JPEG/GIF bytes, keeping any alpha channel."""
    buffer = np.frombuffer(data, dtype=np.uint8)
    image = cv2.imdecode(buffer, cv2.IMREAD_UNCHANGED) if buffer.size else None
    if image is None:
        raise AssetFetchError(f"Undecodable image ({len(data)} bytes)")
    return image


class HttpAssetDownloader(AssetDownloader):
    """Downloads images on worker threads and posts ready callbacks.

    Workers only write to the image cache and the callback queue. A failed
    download is logged and produces no callback; requesting the URL again
    later starts a fresh attempt.
    """

    def __init__(
        self,
        cache: MemoryImageCache,
        callbacks: CallbackQueue,
        settings: Settings | None = None,
    ) -> None:
        self._cache = cache
        self._callbacks = callbacks
        self._settings = settings or default_settings
        self._pool = ThreadPoolExecutor(
            max_workers=max(1, self._settings.download_workers),
            thread_name_prefix="kmlayer-download",
        )
        cache_dir = self._settings.asset_cache_dir
        self._cache_dir = Path(cache_dir).expanduser() if cache_dir else None

    def download_icon(self, url: str) -> None:
        self._pool.submit(self._run, AssetKind.ICON, url)

    def download_overlay(self, url: str) -> None:
        self._pool.submit(self._run, AssetKind.OVERLAY, url)

    def close(self, wait: bool = True) -> None:
        """Stop the worker pool; without ``wait`` queued downloads are dropped."""
        self._pool.shutdown(wait=wait, cancel_futures=not wait)

    def _run(self, kind: AssetKind, url: str) -> None:
        try:
            image = decode_image(self._fetch_bytes(url))
        except (httpx.HTTPError, AssetFetchError, OSError) as e:
            logger.warning(f"{kind.value} download failed for {url}: {e}")
            return
        self._cache.put(url, image)
        self._callbacks.post(kind, url)

    def _fetch_bytes(self, url: str) -> bytes:
        parsed = urlparse(url)
        if parsed.scheme in ("", "file"):
            return Path(unquote(parsed.path)).read_bytes()

        cache_path = self._cache_path(url)
        if cache_path is not None and cache_path.exists():
            try:
                return cache_path.read_bytes()
            except OSError as e:
                logger.warning(f"Asset cache read failed: {e}")

        with httpx.Client(
            timeout=self._settings.download_timeout,
            follow_redirects=True,
        ) as client:
            resp = client.get(url, headers={"User-Agent": self._settings.user_agent})
            resp.raise_for_status()
        data = resp.content

        if cache_path is not None:
            try:
                cache_path.parent.mkdir(parents=True, exist_ok=True)
                cache_path.write_bytes(data)
            except OSError as e:
                logger.warning(f"Asset cache save failed: {e}")
        return data

    def _cache_path(self, url: str) -> Path | None:
        if self._cache_dir is None:
            return None
        key = hashlib.sha256(url.encode()).hexdigest()
        return self._cache_dir / key[:2] / key
