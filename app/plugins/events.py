"""
Event Bus

EventBus: in-process publish/subscribe used by every part of the plugin
runtime to announce and observe lifecycle transitions (`cms:*`, `plugin:*`)
and domain events (`content:*`, `media:*`, `user:*`).

Delivery is synchronous and fire-and-forget: every listener registered at
emit time is called exactly once; a listener's exception is caught, logged,
and never reaches the emitter or the remaining listeners.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)

EventCallback = Callable[..., Any]
Unsubscribe = Callable[[], None]


class _OnceListener:
    """Wrapper that removes itself from the bus before its first call."""

    __slots__ = ("bus", "event", "callback", "fired")

    def __init__(self, bus: EventBus, event: str, callback: EventCallback) -> None:
        self.bus = bus
        self.event = event
        self.callback = callback
        self.fired = False

    def __call__(self, *args: Any) -> Any:
        if self.fired:
            return None
        self.fired = True
        self.bus.off(self.event, self)
        return self.callback(*args)


class EventBus:
    """
    Publish/subscribe keyed by event name.

    Listeners for one event are kept in an insertion-ordered set (a dict with
    None values), so registering the same callable twice stores it once.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, dict[EventCallback, None]] = {}

    # ── Subscription ──────────────────────────────────────────────────────────

    def on(self, event: str, callback: EventCallback) -> Unsubscribe:
        """Subscribe to an event; returns an idempotent unsubscribe function."""
        self._listeners.setdefault(event, {})[callback] = None

        def unsubscribe() -> None:
            self.off(event, callback)

        return unsubscribe

    def once(self, event: str, callback: EventCallback) -> Unsubscribe:
        """Subscribe to an event and unsubscribe automatically after the first call."""
        return self.on(event, _OnceListener(self, event, callback))

    def off(self, event: str, callback: EventCallback) -> None:
        """
        Remove a callback from an event.

        Accepts either the registered callable or the original callback of a
        `once` subscription. The event entry is dropped once it has no listeners.
        """
        callbacks = self._listeners.get(event)
        if not callbacks:
            return

        if callback in callbacks:
            del callbacks[callback]
        else:
            for registered in list(callbacks):
                if isinstance(registered, _OnceListener) and registered.callback == callback:
                    del callbacks[registered]
                    break

        if not callbacks:
            del self._listeners[event]

    # ── Emission ──────────────────────────────────────────────────────────────

    def emit(self, event: str, *args: Any) -> None:
        """
        Call every listener registered for `event` at the moment of the call.

        Listeners added or removed during delivery do not affect this emit.
        Coroutine results are not awaited here; use emit_async() for that.
        """
        for callback in self._snapshot(event):
            try:
                result = callback(*args)
                if inspect.iscoroutine(result):
                    # emit() is synchronous; close the coroutine instead of leaking it
                    result.close()
                    logger.warning("Async listener for %s ignored by emit(); use emit_async()", event)
            except Exception:
                logger.exception("Error in event listener for %s", event)

    async def emit_async(self, event: str, *args: Any) -> None:
        """Like emit(), but awaits listeners that return awaitables."""
        for callback in self._snapshot(event):
            try:
                result = callback(*args)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Error in event listener for %s", event)

    def _snapshot(self, event: str) -> list[EventCallback]:
        callbacks = self._listeners.get(event)
        return list(callbacks) if callbacks else []

    # ── Introspection ─────────────────────────────────────────────────────────

    def has_listeners(self, event: str) -> bool:
        """Return True if at least one listener is registered for the event."""
        return bool(self._listeners.get(event))

    def listener_count(self, event: str) -> int:
        """Return the number of listeners registered for the event."""
        return len(self._listeners.get(event, ()))

    def event_names(self) -> list[str]:
        """Return the names of all events that currently have listeners."""
        return list(self._listeners)

    def remove_all_listeners(self, event: str | None = None) -> None:
        """Remove all listeners for one event, or for every event."""
        if event is not None:
            self._listeners.pop(event, None)
        else:
            self._listeners.clear()
