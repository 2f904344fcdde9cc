"""Application bootstrap wiring ports, adapters, and the registry."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from docledger.app.adapters import FanoutEventSink, JSONLJournal, LoggingEventSink
from docledger.app.ports import EventSinkPort, JournalPort
from docledger.config import Settings, get_settings
from docledger.registry import DocumentRegistry

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ApplicationContainer:
    """Aggregates the wired registry and its collaborators for the CLI layer."""

    settings: Settings
    registry: DocumentRegistry
    events: FanoutEventSink
    journal: JSONLJournal | None


def create_journal(settings: Settings) -> JSONLJournal | None:
    """Return the configured journal, or None when journaling is disabled."""
    if not settings.journal_enabled:
        return None

    return JSONLJournal(
        settings.get_journal_path(),
        hmac_key=settings.get_journal_hmac_key(),
        fsync=settings.journal_fsync,
    )


def bootstrap_application(
    settings: Settings | None = None,
    *,
    event_sink: EventSinkPort | None = None,
) -> ApplicationContainer:
    """Instantiate the registry and its adapters.

    Args:
        settings: Settings to use (defaults to the global settings)
        event_sink: Extra sink subscribed to every registry notification
    """

    active_settings = settings or get_settings()

    events = FanoutEventSink()
    if active_settings.log_events:
        events.subscribe(LoggingEventSink().emit)
    if event_sink is not None:
        events.subscribe(event_sink.emit)

    journal = create_journal(active_settings)
    journal_port: JournalPort | None = journal

    registry = DocumentRegistry(
        event_sink=events,
        journal=journal_port,
        page_size=active_settings.page_size,
    )
    logger.debug(
        "Registry ready with %d records (journal=%s)",
        registry.count(),
        journal.journal_path if journal is not None else "disabled",
    )

    return ApplicationContainer(
        settings=active_settings,
        registry=registry,
        events=events,
        journal=journal,
    )
