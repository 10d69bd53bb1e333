"""Subscription channel for backend-emitted events."""

import asyncio
from enum import Enum
from typing import Callable, Dict, List, Union

from loguru import logger

Payload = Union[str, bytes, bytearray]
Handler = Callable[[Payload], None]

# Channel names used by the desktop backend
LEGACY_CHANNELS = {
    "log-event": "progress",
    "top-k-event": "rank-snapshot",
    "commit-event": "commit-ack",
}


class EventKind(str, Enum):
    """Independently timed event streams."""

    PROGRESS = "progress"
    RANK_SNAPSHOT = "rank-snapshot"
    COMMIT_ACK = "commit-ack"

    @classmethod
    def from_channel(cls, name: str) -> "EventKind":
        """Resolve an event kind from its name or a legacy channel name."""
        return cls(LEGACY_CHANNELS.get(name, name))


class Subscription:
    """Handle for one registered handler.

    ``release`` may be called any number of times. Used as a context manager
    the subscription is released on every exit path.
    """

    def __init__(self, channel: "EventChannel", kind: EventKind, handler: Handler):
        self.channel = channel
        self.kind = kind
        self.handler = handler
        self.active = True

    def release(self) -> None:
        if not self.active:
            return
        self.active = False
        self.channel._unregister(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


class EventChannel:
    """Fan-out of serialized event payloads to subscribed handlers.

    Handlers run on the caller's thread, one after another. Payloads are
    passed through untouched; decoding is the consumer's job.
    """

    def __init__(self):
        self._subscriptions: Dict[EventKind, List[Subscription]] = {kind: [] for kind in EventKind}
        self.closed = False

    def subscribe(self, kind: Union[EventKind, str], handler: Handler) -> Subscription:
        if self.closed:
            raise RuntimeError("Cannot subscribe to a closed channel")
        kind = EventKind.from_channel(kind)
        subscription = Subscription(self, kind, handler)
        self._subscriptions[kind].append(subscription)
        logger.debug(f"Subscribed handler to {kind.value} events")
        return subscription

    def _unregister(self, subscription: Subscription) -> None:
        subscriptions = self._subscriptions[subscription.kind]
        if subscription in subscriptions:
            subscriptions.remove(subscription)
            logger.debug(f"Released {subscription.kind.value} subscription")

    def subscriber_count(self, kind: EventKind) -> int:
        return len(self._subscriptions[kind])

    def dispatch(self, kind: Union[EventKind, str], payload: Payload) -> int:
        """Deliver a payload to every live handler of ``kind`` right away.

        Returns the number of handlers the payload reached. Handler failures
        are logged and never reach the producer.
        """
        if self.closed:
            return 0
        kind = EventKind.from_channel(kind)

        delivered = 0
        # Copy so handlers may release subscriptions while we iterate
        for subscription in list(self._subscriptions[kind]):
            if not subscription.active:
                continue
            try:
                subscription.handler(payload)
                delivered += 1
            except Exception as e:
                logger.exception(f"Handler for {kind.value} event failed: {e}")
        return delivered

    def emit(self, kind: Union[EventKind, str], payload: Payload) -> None:
        """Schedule delivery on the running event loop without waiting for it."""
        loop = asyncio.get_running_loop()
        loop.call_soon(self.dispatch, kind, payload)

    def close(self) -> None:
        for subscriptions in self._subscriptions.values():
            for subscription in list(subscriptions):
                subscription.release()
        self.closed = True
