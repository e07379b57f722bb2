"""Thread-safe pub/sub for layer lifecycle events.

The controller publishes "layer_activated" and "layer_deactivated" so a
map owner (UI, web bridge, legend panel) can follow rendering state
without polling the controller.
"""

from __future__ import annotations

import queue
import threading

from loguru import logger

LAYER_ACTIVATED = "layer_activated"
LAYER_DEACTIVATED = "layer_deactivated"


class EventBus:
    """Simple thread-safe pub/sub for pushing events to subscribers."""

    def __init__(self, maxsize: int = 100) -> None:
        self._lock = threading.Lock()
        self._maxsize = maxsize
        self._subscribers: list[queue.Queue] = []

    def subscribe(self) -> queue.Queue:
        """Subscribe to events. Returns a Queue that receives all events."""
        q: queue.Queue = queue.Queue(maxsize=self._maxsize)
        with self._lock:
            self._subscribers.append(q)
        return q

    def unsubscribe(self, q: queue.Queue) -> None:
        with self._lock:
            if q in self._subscribers:
                self._subscribers.remove(q)

    def publish(self, event_type: str, data: dict | None = None) -> None:
        msg: dict = {"type": event_type}
        if data is not None:
            msg["data"] = data
        with self._lock:
            for q in self._subscribers:
                _offer(q, msg)


def _offer(q: queue.Queue, msg: dict) -> None:
    # Full queue: drop the oldest message so the newest state always lands
    try:
        q.put_nowait(msg)
        return
    except queue.Full:
        pass
    try:
        q.get_nowait()
    except queue.Empty:
        pass
    try:
        q.put_nowait(msg)
    except queue.Full:
        logger.debug(f"Event dropped: {msg['type']}")
