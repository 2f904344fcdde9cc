"""Journal port interface for durable registration storage."""

from collections.abc import Iterator
from typing import Protocol

from docledger.registry.models import DocumentRecord


class JournalPort(Protocol):
    """Port interface for the registry's persistence collaborator.

    Adapters implementing this port must provide:
    - Append-only storage of registrations in insertion order
    - Replay of every stored record on startup
    - Integrity verification of the stored history

    Side effects: Writes to durable storage (offline).
    """

    def append(self, record: DocumentRecord) -> None:
        """Durably store ``record``; raising leaves the registry unchanged."""
        ...

    def replay(self) -> Iterator[DocumentRecord]:
        """Yield previously stored records in insertion order."""
        ...

    def verify(self) -> tuple[bool, str | None]:
        """Verify journal integrity.

        Returns:
            Tuple of (is_valid, error_message). error_message is None if valid.
        """
        ...
