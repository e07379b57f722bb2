"""Hands asset-ready notifications from download workers to the controller thread.

Download workers finish on arbitrary threads. They only post here; the
layer owner drains the queue on the thread that owns the LayerController
(see ``LayerController.process_callbacks``), so controller state is never
touched from a foreign thread.
"""

from __future__ import annotations

import queue
from enum import Enum


class AssetKind(Enum):
    ICON = "icon"
    OVERLAY = "overlay"


class CallbackQueue:
    """Thread-safe FIFO of (AssetKind, url) ready notifications."""

    def __init__(self) -> None:
        self._queue: queue.Queue[tuple[AssetKind, str]] = queue.Queue()

    def post(self, kind: AssetKind, url: str) -> None:
        self._queue.put_nowait((kind, url))

    def drain(self) -> list[tuple[AssetKind, str]]:
        """Remove and return everything posted so far."""
        items: list[tuple[AssetKind, str]] = []
        while True:
            try:
                items.append(self._queue.get_nowait())
            except queue.Empty:
                return items

    def __len__(self) -> int:
        return self._queue.qsize()
