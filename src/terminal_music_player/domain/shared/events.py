"""Bounded broadcast channel for player events."""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections import deque
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable

from terminal_music_player.domain.music.events import MusicEvent, PlaybackError
from terminal_music_player.domain.music.value_objects import ErrorKind
from terminal_music_player.domain.shared.constants import EventConstants
from terminal_music_player.domain.shared.exceptions import SubscriptionClosedError
from terminal_music_player.domain.shared.messages import ErrorMessages, LogTemplates

logger = logging.getLogger(__name__)

EventHandler = Callable[[MusicEvent], Awaitable[None]]


class Subscription:
    """One consumer's view of the channel.

    Events are buffered up to ``capacity``. On overflow the oldest unread
    event is dropped, and the next read yields a ``PlaybackError`` with kind
    ``EVENTS_DROPPED`` carrying the number of lost events before the rest.
    """

    def __init__(
        self,
        channel: EventChannel,
        name: str,
        capacity: int,
        event_types: tuple[type[MusicEvent], ...] | None = None,
    ) -> None:
        self._channel = channel
        self.name = name
        self.capacity = max(1, capacity)
        self._event_types = event_types
        self._buffer: deque[MusicEvent] = deque()
        self._dropped = 0
        self._last_dropped_sequence = 0
        self._ready = asyncio.Event()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        return len(self._buffer) + (1 if self._dropped else 0)

    def accepts(self, event: MusicEvent) -> bool:
        return self._event_types is None or isinstance(event, self._event_types)

    def _push(self, event: MusicEvent) -> None:
        if self._closed or not self.accepts(event):
            return
        if len(self._buffer) >= self.capacity:
            lost = self._buffer.popleft()
            self._dropped += 1
            self._last_dropped_sequence = lost.sequence
            logger.debug(LogTemplates.EVENTS_DROPPED, self.name, self._dropped)
        self._buffer.append(event)
        self._ready.set()

    def _pop(self) -> MusicEvent | None:
        if self._dropped:
            marker = PlaybackError(
                kind=ErrorKind.EVENTS_DROPPED,
                message=ErrorMessages.EVENTS_DROPPED.format(count=self._dropped),
                dropped_count=self._dropped,
                sequence=self._last_dropped_sequence,
            )
            self._dropped = 0
            return marker
        if self._buffer:
            return self._buffer.popleft()
        return None

    def get_nowait(self) -> MusicEvent:
        """Return the next buffered event or raise ``asyncio.QueueEmpty``."""
        event = self._pop()
        if event is None:
            raise asyncio.QueueEmpty
        return event

    async def get(self) -> MusicEvent:
        """Wait for the next event.

        Raises:
            SubscriptionClosedError: If the subscription is closed and drained.
        """
        while True:
            event = self._pop()
            if event is not None:
                return event
            if self._closed:
                raise SubscriptionClosedError(self.name)
            self._ready.clear()
            await self._ready.wait()

    def drain(self) -> list[MusicEvent]:
        """Return every buffered event without waiting."""
        events: list[MusicEvent] = []
        while (event := self._pop()) is not None:
            events.append(event)
        return events

    def close(self) -> None:
        """Stop receiving events. Already buffered events can still be read."""
        if self._closed:
            return
        self._closed = True
        self._ready.set()
        self._channel.unsubscribe(self)

    def __aiter__(self) -> AsyncIterator[MusicEvent]:
        return self

    async def __anext__(self) -> MusicEvent:
        try:
            return await self.get()
        except SubscriptionClosedError:
            raise StopAsyncIteration from None


class EventChannel:
    """Single producer, multi-consumer broadcast of player events.

    ``publish`` stamps a monotonically increasing sequence number and fans the
    event out to every subscription without awaiting, so it is safe to call
    from inside the controller's critical sections. Callback listeners are
    served by one pump task each; exceptions in handlers are logged but do not
    stop the pump.
    """

    def __init__(self, default_capacity: int = EventConstants.DEFAULT_SUBSCRIBER_CAPACITY) -> None:
        self._default_capacity = default_capacity
        self._subscriptions: list[Subscription] = []
        self._listeners: dict[EventHandler, tuple[Subscription, asyncio.Task[None]]] = {}
        self._sequence = itertools.count(1)
        self._last_sequence = 0
        self._names = itertools.count(1)
        self._closed = False

    @property
    def last_sequence(self) -> int:
        return self._last_sequence

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(
        self,
        capacity: int | None = None,
        *,
        name: str | None = None,
        event_types: Iterable[type[MusicEvent]] | None = None,
    ) -> Subscription:
        subscription = Subscription(
            self,
            name=name or f"subscriber-{next(self._names)}",
            capacity=capacity or self._default_capacity,
            event_types=tuple(event_types) if event_types is not None else None,
        )
        if self._closed:
            subscription._closed = True
            return subscription
        self._subscriptions.append(subscription)
        logger.debug("Subscribed %s (capacity %d)", subscription.name, subscription.capacity)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)
            logger.debug("Unsubscribed %s", subscription.name)

    def publish(self, event: MusicEvent) -> MusicEvent:
        """Stamp and broadcast an event. Returns the stamped event."""
        if self._closed:
            return event
        stamped = event.with_sequence(next(self._sequence))
        self._last_sequence = stamped.sequence
        for subscription in list(self._subscriptions):
            subscription._push(stamped)
        return stamped

    def add_listener(
        self,
        handler: EventHandler,
        *,
        event_types: Iterable[type[MusicEvent]] | None = None,
        capacity: int | None = None,
    ) -> Subscription:
        """Call ``handler`` for every event from a dedicated pump task."""
        name = getattr(handler, "__qualname__", None) or repr(handler)
        subscription = self.subscribe(capacity, name=name, event_types=event_types)
        task = asyncio.get_running_loop().create_task(
            self._pump(subscription, handler), name=f"event-listener:{name}"
        )
        self._listeners[handler] = (subscription, task)
        return subscription

    async def remove_listener(self, handler: EventHandler) -> None:
        entry = self._listeners.pop(handler, None)
        if entry is None:
            return
        subscription, task = entry
        subscription.close()
        await asyncio.gather(task, return_exceptions=True)

    async def close(self) -> None:
        """Close every subscription and let listener pumps finish their backlog."""
        if self._closed:
            return
        self._closed = True
        for subscription in list(self._subscriptions):
            subscription.close()
        tasks = [task for _, task in self._listeners.values()]
        self._listeners.clear()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _pump(self, subscription: Subscription, handler: EventHandler) -> None:
        async for event in subscription:
            try:
                await handler(event)
            except Exception:
                logger.exception(LogTemplates.LISTENER_FAILED, type(event).__name__)
