from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Optional

from fingerpress.core.types import EngineEvent, EventType

logger = logging.getLogger(__name__)

Listener = Callable[[EngineEvent], None]


@dataclass(eq=False)
class Subscription:
    """Handle returned by EventBus.subscribe(). close() is idempotent."""
    bus: "EventBus"
    event_type: Optional[EventType]
    callback: Listener
    closed: bool = False

    def close(self) -> None:
        if self.closed:
            return
        self.bus._remove(self)
        self.closed = True

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


@dataclass(eq=False)
class EventBus:
    """
    Listener registry owned by one engine instance.

    Listeners are called synchronously in subscription order. A listener
    that raises is logged and skipped; delivery to the rest continues.
    """
    _by_type: Dict[EventType, List[Subscription]] = field(default_factory=dict)
    _all: List[Subscription] = field(default_factory=list)

    def subscribe(self, event_type: EventType, callback: Listener) -> Subscription:
        sub = Subscription(bus=self, event_type=event_type, callback=callback)
        self._by_type.setdefault(event_type, []).append(sub)
        return sub

    def subscribe_all(self, callback: Listener) -> Subscription:
        sub = Subscription(bus=self, event_type=None, callback=callback)
        self._all.append(sub)
        return sub

    @contextmanager
    def subscription(self, event_type: Optional[EventType], callback: Listener) -> Iterator[Subscription]:
        """Scoped subscribe: the listener is removed when the block exits."""
        if event_type is None:
            sub = self.subscribe_all(callback)
        else:
            sub = self.subscribe(event_type, callback)
        try:
            yield sub
        finally:
            sub.close()

    def listener_count(self, event_type: Optional[EventType] = None) -> int:
        if event_type is None:
            return len(self._all) + sum(len(v) for v in self._by_type.values())
        return len(self._by_type.get(event_type, []))

    def publish(self, event: EngineEvent) -> None:
        # copy: listeners may unsubscribe while being notified
        targets = list(self._by_type.get(event.type, [])) + list(self._all)
        for sub in targets:
            if sub.closed:
                continue
            try:
                sub.callback(event)
            except Exception:
                logger.exception("listener failed for %s", event.type.value)

    def _remove(self, sub: Subscription) -> None:
        if sub.event_type is None:
            bucket = self._all
        else:
            bucket = self._by_type.get(sub.event_type, [])
        try:
            bucket.remove(sub)
        except ValueError:
            pass
