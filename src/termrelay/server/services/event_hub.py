"""Event fan-out to every attached consumer (UI window / WebSocket)."""

from __future__ import annotations

import asyncio
import logging
import queue
import threading
import uuid
from dataclasses import dataclass, field
from typing import AsyncIterator, Literal

logger = logging.getLogger(__name__)

EventType = Literal["session_data", "session_exit", "chat_delta", "chat_end"]

SUBSCRIBER_QUEUE_SIZE = 10000

# Never dropped for a lagging subscriber; at most one per session or chat
TERMINAL_EVENTS = frozenset({"session_exit", "chat_end"})


@dataclass
class RelayEvent:
    """An event pushed to consumers.

    ``key`` is the terminal session id for session events and the request
    token for chat events.
    """

    type: EventType
    key: str
    data: bytes = b""
    text: str = ""
    exit_code: int | None = None


@dataclass
class Subscription:
    """One consumer's view of the event stream."""

    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    # queue.Queue because publishers are PTY pump threads as well as asyncio tasks.
    # Unbounded here; EventHub.publish applies SUBSCRIBER_QUEUE_SIZE to data events.
    _queue: queue.Queue = field(default_factory=queue.Queue)
    closed: bool = False
    dropped: int = 0

    def get(self, timeout: float | None = None) -> RelayEvent | None:
        """Block for the next event; None on timeout."""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def get_nowait(self) -> RelayEvent | None:
        try:
            return self._queue.get_nowait()
        except queue.Empty:
            return None

    def drain(self) -> list[RelayEvent]:
        events = []
        while True:
            event = self.get_nowait()
            if event is None:
                return events
            events.append(event)

    async def __aiter__(self) -> AsyncIterator[RelayEvent]:
        while not self.closed:
            event = self.get_nowait()
            if event is None:
                # Yield to the event loop briefly before polling again
                await asyncio.sleep(0.02)
                continue
            yield event


class EventHub:
    """Publishes RelayEvents to all current subscribers.

    Events published while nobody is subscribed are dropped. Each subscriber
    sees events from a single publisher in publish order. A subscriber more
    than SUBSCRIBER_QUEUE_SIZE events behind loses data and delta events but
    still receives every session_exit and chat_end.
    """

    def __init__(self):
        self._subscribers: list[Subscription] = []
        self._lock = threading.Lock()

    def subscribe(self) -> Subscription:
        sub = Subscription()
        with self._lock:
            self._subscribers.append(sub)
        logger.debug("Subscriber %s attached (%d total)", sub.id, len(self._subscribers))
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        sub.closed = True
        with self._lock:
            if sub in self._subscribers:
                self._subscribers.remove(sub)

    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def publish(self, event: RelayEvent) -> None:
        # Held across the loop so concurrent publishers can't interleave
        # differently for different subscribers
        with self._lock:
            for sub in self._subscribers:
                if event.type in TERMINAL_EVENTS or sub._queue.qsize() < SUBSCRIBER_QUEUE_SIZE:
                    sub._queue.put_nowait(event)
                else:
                    sub.dropped += 1
                    if sub.dropped == 1 or sub.dropped % 1000 == 0:
                        logger.warning(
                            "Subscriber %s is not keeping up; dropped %d events",
                            sub.id,
                            sub.dropped,
                        )

    def close(self) -> None:
        with self._lock:
            subs = list(self._subscribers)
            self._subscribers.clear()
        for sub in subs:
            sub.closed = True
