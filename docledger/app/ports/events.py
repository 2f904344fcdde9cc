"""Event sink port interface for registry notifications."""

from typing import Protocol

from docledger.registry.events import RegistryEvent


class EventSinkPort(Protocol):
    """Port interface for consuming registry notifications.

    Implementations should be synchronous and quick. ``emit`` is called after
    the registry has released its lock, one notification at a time and in the
    order the operations were applied, so a sink may read from or register
    into the registry it observes.

    Exceptions raised by ``emit`` are logged by the registry and otherwise
    ignored.
    """

    def emit(self, event: RegistryEvent) -> None:
        """Deliver a single notification."""
        ...
