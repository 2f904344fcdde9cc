"""Built-in event sinks for registry notifications."""

from __future__ import annotations

import logging
from collections.abc import Callable

from docledger.registry.events import (
    DocumentEntered,
    DocumentListed,
    DocumentVerified,
    RegistryEvent,
)

logger = logging.getLogger(__name__)

EventCallback = Callable[[RegistryEvent], None]


class NullEventSink:
    """A safe no-op sink for callers that do not observe notifications."""

    def emit(self, event: RegistryEvent) -> None:
        return None


class MemoryEventSink:
    """Keeps every notification in emission order."""

    def __init__(self) -> None:
        self._events: list[RegistryEvent] = []

    def emit(self, event: RegistryEvent) -> None:
        self._events.append(event)

    @property
    def events(self) -> list[RegistryEvent]:
        return list(self._events)

    def of_type(self, event_type: type[RegistryEvent]) -> list[RegistryEvent]:
        """Return recorded events that are instances of ``event_type``."""
        return [event for event in self._events if isinstance(event, event_type)]

    def clear(self) -> None:
        self._events.clear()


class LoggingEventSink:
    """Mirrors notifications to the application log."""

    def __init__(self, log: logging.Logger | None = None, level: int = logging.INFO) -> None:
        self._log = log or logger
        self._level = level

    def emit(self, event: RegistryEvent) -> None:
        if isinstance(event, DocumentVerified):
            self._log.log(self._level, "%s: %s", event.event_type, event.message)
        elif isinstance(event, (DocumentEntered, DocumentListed)):
            self._log.log(
                self._level,
                "%s: hash=%s signer=%s signature_bytes=%d timestamp=%s",
                event.event_type,
                event.hash.hex(),
                event.signer,
                len(event.signature),
                event.timestamp.isoformat(),
            )


class FanoutEventSink:
    """Delivers each notification to every subscriber in subscription order.

    A failing subscriber is logged and skipped; the remaining subscribers still
    receive the event.
    """

    def __init__(self, subscribers: list[EventCallback] | None = None) -> None:
        self._subscribers: list[EventCallback] = list(subscribers or [])

    def subscribe(self, callback: EventCallback) -> None:
        self._subscribers.append(callback)

    def unsubscribe(self, callback: EventCallback) -> None:
        """Remove ``callback``; unknown callbacks are ignored."""
        try:
            self._subscribers.remove(callback)
        except ValueError:
            pass

    def emit(self, event: RegistryEvent) -> None:
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception:  # noqa: BLE001 - one subscriber must not starve the rest
                logger.warning(
                    "Subscriber %r failed on %s", callback, event.event_type, exc_info=True
                )
