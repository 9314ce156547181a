"""Application context: shared caches, values, listeners and scheduled tasks."""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

from imserverkit.cache import MemoryCache
from imserverkit.client import IMClient
from imserverkit.models import MessageResp


@dataclass
class OnlineStatus:
    """A user's online state on one device kind."""

    uid: str = ""
    device_flag: int = 0
    online: bool = False
    socket_id: int = 0
    online_count: int = 0
    total_online_count: int = 0


OnlineStatusListener = Callable[[list[OnlineStatus]], None]
EventCommit = Callable[[Exception | None], None]
EventListener = Callable[[bytes, EventCommit], None]
MessagesListener = Callable[[list[MessageResp]], None]


class ScheduledTask:
    """Runs a function repeatedly, every ``interval``, on a background thread."""

    def __init__(self, interval: timedelta | float, func: Callable[[], Any]) -> None:
        seconds = interval.total_seconds() if isinstance(interval, timedelta) else float(interval)
        if seconds <= 0:
            raise ValueError("interval must be positive")
        self._interval = seconds
        self._func = func
        self._stopped = threading.Event()
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def _run(self) -> None:
        while not self._stopped.wait(self._interval):
            self._func()

    def stop(self) -> bool:
        """Stop further runs; return False if it was already stopped."""
        if self._stopped.is_set():
            return False
        self._stopped.set()
        if threading.current_thread() is not self._thread:
            self._thread.join(timeout=self._interval + 1)
        return True


class AppContext:
    """Holds services and registries shared across the application."""

    def __init__(self, client: IMClient | None = None) -> None:
        self.client = client
        self._memory_cache: MemoryCache | None = None
        self._values: dict[str, Any] = {}
        self._lock = threading.Lock()
        self._online_status_listeners: list[OnlineStatusListener] = []
        self._event_listeners: dict[str, list[EventListener]] = {}
        self._messages_listeners: list[MessagesListener] = []

    def memory_cache(self) -> MemoryCache:
        """The shared in-memory cache, created on first use."""
        with self._lock:
            if self._memory_cache is None:
                self._memory_cache = MemoryCache()
            return self._memory_cache

    def set_value(self, value: Any, key: str) -> None:
        with self._lock:
            self._values[key] = value

    def value(self, key: str) -> Any:
        """The stored value, or None if the key was never set."""
        with self._lock:
            return self._values.get(key)

    def add_online_status_listener(self, listener: OnlineStatusListener) -> None:
        self._online_status_listeners.append(listener)

    def online_status_listeners(self) -> list[OnlineStatusListener]:
        return list(self._online_status_listeners)

    def add_event_listener(self, event: str, listener: EventListener) -> None:
        self._event_listeners.setdefault(event, []).append(listener)

    def event_listeners(self, event: str) -> list[EventListener]:
        return list(self._event_listeners.get(event, []))

    def add_messages_listener(self, listener: MessagesListener) -> None:
        self._messages_listeners.append(listener)

    def notify_messages_listeners(self, messages: list[MessageResp]) -> None:
        """Hand the messages to every messages listener, in registration order."""
        for listener in list(self._messages_listeners):
            listener(messages)

    def schedule(self, interval: timedelta | float, func: Callable[[], Any]) -> ScheduledTask:
        """Run ``func`` every ``interval`` until the returned task is stopped."""
        return ScheduledTask(interval, func)