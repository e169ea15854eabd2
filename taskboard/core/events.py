"""Change notifications published by the record stores."""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Dict, Generic, List, Literal, Optional, TypeVar

from pydantic import BaseModel

logger = logging.getLogger(__name__)

T = TypeVar("T")

ChangeEventType = Literal["set", "delete"]


class ChangeEvent(BaseModel):
    type: ChangeEventType
    table: str
    id: str
    value: Optional[Dict[str, Any]] = None
    previous_value: Optional[Dict[str, Any]] = None


class Subscription:
    """Handle returned by EventChannel.subscribe"""

    def __init__(self, channel: "EventChannel", callback: Callable):
        self._channel = channel
        self._callback = callback
        self.active = True

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self._channel._remove(self._callback)


class EventChannel(Generic[T]):
    """Synchronous publish/subscribe channel.

    Subscribers are called in subscription order on the publishing task. A
    subscriber that raises is logged and skipped; the others still receive
    the event.
    """

    def __init__(self, name: str = "events"):
        self.name = name
        self._subscribers: List[Callable[[T], Any]] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, callback: Callable[[T], Any]) -> Subscription:
        self._subscribers.append(callback)
        return Subscription(self, callback)

    def _remove(self, callback: Callable[[T], Any]) -> None:
        try:
            self._subscribers.remove(callback)
        except ValueError:
            pass

    def publish(self, event: T) -> None:
        # Copy so subscribers may unsubscribe while being notified
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception:
                logger.exception("Subscriber of %s failed handling event", self.name)

    @asynccontextmanager
    async def listen(self, maxsize: int = 0) -> AsyncIterator["asyncio.Queue[T]"]:
        """Subscribe an asyncio.Queue for the lifetime of the context"""
        queue: "asyncio.Queue[T]" = asyncio.Queue(maxsize)

        def _enqueue(event: T) -> None:
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning("Dropping %s event for slow listener", self.name)

        subscription = self.subscribe(_enqueue)
        try:
            yield queue
        finally:
            subscription.unsubscribe()
