"""Shared fixtures for kmlayer tests."""

from __future__ import annotations

import random

import numpy as np
import pytest
from loguru import logger

from kmlayer.assets import AssetDownloader, MemoryImageCache
from kmlayer.config import Settings
from kmlayer.controller import LayerController
from kmlayer.surface import InMemorySurface


class RecordingDownloader(AssetDownloader):
    """Downloader that only records what it was asked to fetch."""

    def __init__(self) -> None:
        self.icons: list[str] = []
        self.overlays: list[str] = []

    def download_icon(self, url: str) -> None:
        self.icons.append(url)

    def download_overlay(self, url: str) -> None:
        self.overlays.append(url)


def make_image(width: int = 32, height: int = 32) -> np.ndarray:
    image = np.zeros((height, width, 4), dtype=np.uint8)
    image[..., 3] = 255
    return image


@pytest.fixture
def surface():
    return InMemorySurface("old")


@pytest.fixture
def cache():
    return MemoryImageCache()


@pytest.fixture
def downloader():
    return RecordingDownloader()


@pytest.fixture
def settings():
    return Settings(asset_cache_dir="")


@pytest.fixture
def controller(surface, cache, downloader, settings):
    return LayerController(surface, cache, downloader, settings=settings, rng=random.Random(7))


@pytest.fixture
def warning_log():
    """Messages logged at WARNING or above while the test runs."""
    messages: list[str] = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="WARNING")
    yield messages
    logger.remove(handler_id)


@pytest.fixture
def image_factory():
    return make_image
