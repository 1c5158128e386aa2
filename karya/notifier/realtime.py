"""
Realtime channel

Clients subscribe by joining a room named after their own user id; lifecycle
events are published to the recipient's room. The in-process registry below
backs a single server process (and tests). A multi-process deployment plugs
in another RealtimeChannel implementation.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Protocol

logger = logging.getLogger(__name__)

Subscriber = Callable[[str, dict[str, Any]], None]


class RealtimeChannel(Protocol):
    """Best-effort push to connected clients."""

    def publish(self, channel_key: str, event: str, payload: dict[str, Any]) -> None:
        ...


class RoomRegistry:
    """Thread-safe in-process registry of rooms and their subscribers."""

    def __init__(self):
        self._rooms: dict[str, list[Subscriber]] = {}
        self._lock = threading.Lock()

    def join(self, room: str, subscriber: Subscriber) -> None:
        with self._lock:
            self._rooms.setdefault(str(room), []).append(subscriber)
        logger.debug(f"Subscriber joined room {room}")

    def leave(self, room: str, subscriber: Subscriber) -> None:
        with self._lock:
            subscribers = self._rooms.get(str(room), [])
            if subscriber in subscribers:
                subscribers.remove(subscriber)
            if not subscribers:
                self._rooms.pop(str(room), None)

    def room_size(self, room: str) -> int:
        with self._lock:
            return len(self._rooms.get(str(room), []))

    def publish(self, channel_key: str, event: str, payload: dict[str, Any]) -> None:
        """Deliver ``event`` to every subscriber of ``channel_key``.

        A failing subscriber is logged and skipped so the others still
        receive the event.
        """
        with self._lock:
            subscribers = list(self._rooms.get(str(channel_key), []))

        if not subscribers:
            logger.debug(f"No subscribers in room {channel_key} for {event}")
            return

        for subscriber in subscribers:
            try:
                subscriber(event, payload)
            except Exception as e:
                logger.warning(f"Subscriber in room {channel_key} failed on {event}: {e}")
