"""Reactive state containers and explicit message passing between stores.

A ``Store`` owns one immutable state object (a frozen dataclass). Consumers
subscribe to a *slice* of it through a selector; a listener only runs when
its slice actually changes, so a component watching the item count is not
woken up by an unrelated sync flag flipping.

Stores never observe each other's state to trigger work. Cross-store
reactions (sign-in -> cart reconciliation) go through a ``MessageBus``:
the publisher awaits every handler registered for the message type.
"""

import dataclasses
from collections import defaultdict
from collections.abc import Awaitable, Callable
from typing import Any, Generic, TypeVar

import structlog

logger = structlog.get_logger(__name__)

S = TypeVar("S")

Listener = Callable[[Any, Any], None]
Selector = Callable[[Any], Any]
Unsubscribe = Callable[[], None]


def _identity(state):
    return state


class Store(Generic[S]):
    """Holds a frozen dataclass state and notifies slice subscribers on change."""

    def __init__(self, initial_state: S) -> None:
        self._state = initial_state
        self._subscriptions: list[tuple[Selector, Listener]] = []

    @property
    def state(self) -> S:
        return self._state

    def subscribe(self, listener: Listener, selector: Selector | None = None) -> Unsubscribe:
        """Call ``listener(new_slice, old_slice)`` whenever the selected slice changes.

        Returns a callable that removes the subscription.
        """
        entry = (selector or _identity, listener)
        self._subscriptions.append(entry)

        def unsubscribe() -> None:
            if entry in self._subscriptions:
                self._subscriptions.remove(entry)

        return unsubscribe

    def _set_state(self, **changes) -> None:
        previous = self._state
        current = dataclasses.replace(previous, **changes)
        if current == previous:
            return
        self._state = current

        # Copy: listeners may unsubscribe while being notified
        for selector, listener in list(self._subscriptions):
            old_slice = selector(previous)
            new_slice = selector(current)
            if new_slice != old_slice:
                listener(new_slice, old_slice)


Handler = Callable[[Any], Awaitable[None]]


class MessageBus:
    """In-process publish/subscribe for messages exchanged between stores."""

    def __init__(self) -> None:
        self._handlers: dict[type, list[Handler]] = defaultdict(list)

    def register(self, message_type: type, handler: Handler) -> None:
        self._handlers[message_type].append(handler)

    def unregister(self, message_type: type, handler: Handler) -> None:
        handlers = self._handlers.get(message_type, [])
        if handler in handlers:
            handlers.remove(handler)

    async def publish(self, message) -> None:
        """Deliver ``message`` to its handlers, one after another."""
        handlers = list(self._handlers.get(type(message), []))
        logger.debug(
            "message_published",
            message_type=type(message).__name__,
            handler_count=len(handlers),
        )
        for handler in handlers:
            await handler(message)
