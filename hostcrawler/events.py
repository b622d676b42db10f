"""
Crawl notifications.

The graph and the scheduler publish discrete event values to an
EventBus. Delivery is best-effort: subscribers are called inline and
their failures are logged, and the replay buffer drops the oldest
events once full, so publishing never blocks the crawl loop.
"""

import logging
import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List


@dataclass(frozen=True)
class HostDiscovered:
    host: str
    discovery_time: datetime
    attributes: Dict[str, str]


@dataclass(frozen=True)
class ConnectionDiscovered:
    parent: str
    child: str
    weight: int

    def __post_init__(self):
        if self.weight <= 0:
            raise ValueError(f"Edge weight must be positive, got {self.weight}")


@dataclass(frozen=True)
class Status:
    status: str
    progress: float = 0.0

    def __post_init__(self):
        if not 0.0 <= self.progress <= 1.0:
            raise ValueError(f"Progress must be within [0, 1], got {self.progress}")


class EventBus:
    def __init__(self, maxlen: int = 1000, logger=None):
        self._buffer = deque(maxlen=maxlen)
        self._subscribers: List[Callable] = []
        self._lock = threading.Lock()
        self.logger = logger or logging.getLogger(__name__)

    def subscribe(self, callback: Callable):
        with self._lock:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: Callable):
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    def publish(self, event):
        with self._lock:
            self._buffer.append(event)
            subscribers = list(self._subscribers)

        for callback in subscribers:
            try:
                callback(event)
            except Exception:
                self.logger.exception("Event subscriber %r failed on %r", callback, event)

    def drain(self) -> list:
        """Return and forget every buffered event."""
        with self._lock:
            events = list(self._buffer)
            self._buffer.clear()
        return events

    def __len__(self):
        with self._lock:
            return len(self._buffer)
