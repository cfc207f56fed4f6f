"""Broadcast channel interface and an in-process implementation.

The hosted events endpoint is consumed through the protocols below.
``LocalBroadcastChannel`` fans events out inside one process and, like the
hosted endpoint, echoes every publish back to the publisher's own
subscription.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from collections import defaultdict
from collections.abc import Callable, Mapping
from typing import Any, Protocol

from smack_talk.services.transport import TransportError

logger = logging.getLogger(__name__)

EventCallback = Callable[[Mapping[str, Any]], None]
ErrorCallback = Callable[[BaseException], None]


class BroadcastError(TransportError):
    """Raised when connecting or publishing to the broadcast channel fails."""


class Subscription(Protocol):
    def unsubscribe(self) -> None: ...


class ChannelHandle(Protocol):
    def subscribe(self, on_event: EventCallback, on_error: ErrorCallback) -> Subscription: ...

    async def close(self) -> None: ...


class BroadcastChannel(Protocol):
    async def connect(self, channel_name: str) -> ChannelHandle: ...

    async def publish(self, channel_name: str, event: Mapping[str, Any]) -> None: ...


class LocalSubscription:
    """Subscription registered on a :class:`LocalBroadcastChannel`."""

    def __init__(
        self,
        channel: LocalBroadcastChannel,
        channel_name: str,
        on_event: EventCallback,
        on_error: ErrorCallback,
    ) -> None:
        self._channel = channel
        self._channel_name = channel_name
        self._on_event = on_event
        self._on_error = on_error
        self.active = True

    def deliver(self, envelope: Mapping[str, Any]) -> None:
        if not self.active:
            return
        try:
            self._on_event(envelope)
        except Exception as exc:
            logger.exception("Subscriber on %s failed to handle an event", self._channel_name)
            self._on_error(exc)

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self._channel._remove(self._channel_name, self)


class LocalChannelHandle:
    """Connection to one named channel."""

    def __init__(self, channel: LocalBroadcastChannel, channel_name: str) -> None:
        self._channel = channel
        self.channel_name = channel_name
        self._subscriptions: list[LocalSubscription] = []
        self.closed = False

    def subscribe(self, on_event: EventCallback, on_error: ErrorCallback) -> LocalSubscription:
        if self.closed:
            raise BroadcastError(f"Channel {self.channel_name} is closed")
        subscription = LocalSubscription(self._channel, self.channel_name, on_event, on_error)
        self._channel._subscribers[self.channel_name].append(subscription)
        self._subscriptions.append(subscription)
        return subscription

    async def close(self) -> None:
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions.clear()
        self.closed = True


class LocalBroadcastChannel:
    """In-process pub/sub with asynchronous delivery."""

    def __init__(self) -> None:
        self._subscribers: dict[str, list[LocalSubscription]] = defaultdict(list)

    async def connect(self, channel_name: str) -> LocalChannelHandle:
        logger.info("Connected to local channel %s", channel_name)
        return LocalChannelHandle(self, channel_name)

    async def publish(self, channel_name: str, event: Mapping[str, Any]) -> None:
        loop = asyncio.get_running_loop()
        for subscription in list(self._subscribers.get(channel_name, ())):
            # Each subscriber gets its own copy, delivered on a later loop turn.
            envelope = {"event": copy.deepcopy(dict(event))}
            loop.call_soon(subscription.deliver, envelope)

    def subscriber_count(self, channel_name: str) -> int:
        return len(self._subscribers.get(channel_name, ()))

    def _remove(self, channel_name: str, subscription: LocalSubscription) -> None:
        subscribers = self._subscribers.get(channel_name)
        if subscribers and subscription in subscribers:
            subscribers.remove(subscription)
