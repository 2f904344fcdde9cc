"""In-process document registry with an insertion-ordered enumeration index."""

from __future__ import annotations

import logging
import threading
from collections import deque
from collections.abc import Callable, Iterator
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from docledger.registry.errors import (
    DuplicateHash,
    InvalidHash,
    InvalidSigner,
    JournalError,
    NotFound,
)
from docledger.registry.events import (
    DocumentEntered,
    DocumentListed,
    DocumentVerified,
    RegistryEvent,
)
from docledger.registry.models import (
    DocumentRecord,
    RecordPage,
    VerificationOutcome,
    VerificationResult,
    is_null_account,
)
from docledger.utils.hashing import ZERO_HASH, parse_document_hash
from docledger.utils.locking import ReadWriteLock

if TYPE_CHECKING:
    from docledger.app.ports import EventSinkPort, JournalPort

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _coerce_hash(value: Any) -> bytes:
    try:
        return parse_document_hash(value)
    except (TypeError, ValueError) as exc:
        raise InvalidHash(str(exc)) from exc


class DocumentRegistry:
    """Append-only registry binding document hashes to signing accounts.

    The record map and the enumeration index live behind one read/write lock:
    ``register`` takes the write side, every other operation the read side.
    Notifications are queued while the lock is held and handed to the injected
    event sink after it is released, so they are observed in the order the
    operations were applied and a sink may call back into the registry.

    When a journal is supplied, its history is replayed on construction and
    every registration is appended to it before becoming visible.
    """

    def __init__(
        self,
        *,
        event_sink: EventSinkPort | None = None,
        journal: JournalPort | None = None,
        clock: Callable[[], datetime] | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        """Initialize the registry.

        Args:
            event_sink: Receiver for registry notifications (optional)
            journal: Durable storage for registrations (optional)
            clock: Source of insertion timestamps (defaults to UTC now)
            page_size: Default number of records per page when enumerating
        """
        if page_size < 1:
            raise ValueError(f"page_size must be >= 1, got {page_size}")

        self._lock = ReadWriteLock()
        self._records: dict[bytes, DocumentRecord] = {}
        self._index: list[bytes] = []
        self._last_timestamp: datetime | None = None

        self._event_sink = event_sink
        self._pending: deque[RegistryEvent] = deque()
        self._pending_lock = threading.Lock()
        self._delivering = False
        self._journal = journal
        self._clock = clock or _utc_now
        self._page_size = page_size

        if journal is not None:
            self._replay(journal)

    # ---------------------------------------------------------------------#
    # Internal helpers
    # ---------------------------------------------------------------------#

    def _replay(self, journal: JournalPort) -> None:
        """Rebuild state from the journal without emitting notifications."""
        with self._lock.write():
            for record in journal.replay():
                if record.hash == ZERO_HASH:
                    raise JournalError("Journal contains a registration for the reserved zero hash")
                if is_null_account(record.signing_account):
                    raise JournalError(
                        f"Journal registers {record.hash_hex} to the null account {record.signing_account!r}"
                    )
                if record.hash in self._records:
                    raise JournalError(
                        f"Journal contains duplicate registration for {record.hash_hex}"
                    )
                self._insert(record)

        logger.debug("Replayed %d registrations from journal", len(self._index))

    def _insert(self, record: DocumentRecord) -> None:
        self._records[record.hash] = record
        self._index.append(record.hash)
        if self._last_timestamp is None or record.timestamp > self._last_timestamp:
            self._last_timestamp = record.timestamp

    def _next_timestamp(self) -> datetime:
        # Clock skew must never reorder timestamps against insertion order.
        now = self._clock()
        if self._last_timestamp is not None and now < self._last_timestamp:
            return self._last_timestamp
        return now

    def _enqueue(self, *events: RegistryEvent) -> None:
        """Queue notifications. Callers hold the registry lock."""
        if self._event_sink is None or not events:
            return
        with self._pending_lock:
            self._pending.extend(events)

    def _deliver_pending(self) -> None:
        """Drain queued notifications to the sink. Callers must not hold the registry lock.

        Only one thread drains at a time; a notification queued while another
        thread is draining is delivered by that thread, in queue order.
        """
        if self._event_sink is None:
            return

        with self._pending_lock:
            if self._delivering:
                return
            self._delivering = True

        drained = False
        try:
            while True:
                with self._pending_lock:
                    if not self._pending:
                        self._delivering = False
                        drained = True
                        return
                    event = self._pending.popleft()
                self._emit(event)
        finally:
            if not drained:
                with self._pending_lock:
                    self._delivering = False

    def _emit(self, event: RegistryEvent) -> None:
        if self._event_sink is None:
            return
        try:
            self._event_sink.emit(event)
        except Exception:  # noqa: BLE001 - notifications are fire-and-forget
            logger.warning("Event sink failed to accept %s", event.event_type, exc_info=True)

    # ---------------------------------------------------------------------#
    # Public API
    # ---------------------------------------------------------------------#

    def register(
        self,
        document_hash: bytes | str,
        signing_account: str | None,
        signature: bytes = b"",
    ) -> DocumentRecord:
        """Register ``document_hash`` as signed by ``signing_account``.

        Args:
            document_hash: 32 raw bytes or 64 hex characters
            signing_account: Identifier of the claimed signer
            signature: Opaque signature bytes, stored as given

        Returns:
            The stored record

        Raises:
            InvalidSigner: If the signer is null or empty
            InvalidHash: If the hash is malformed or the reserved zero hash
            TypeError: If the signature is not bytes-like
            DuplicateHash: If the hash is already registered
        """
        if not isinstance(signing_account, str) or is_null_account(signing_account):
            raise InvalidSigner(f"Signing account must be a non-null identifier, got {signing_account!r}")

        key = _coerce_hash(document_hash)
        if key == ZERO_HASH:
            raise InvalidHash("The all-zero document hash is reserved and cannot be registered")

        if not isinstance(signature, bytes | bytearray | memoryview):
            raise TypeError(f"Signature must be bytes, got {type(signature).__name__}")
        blob = bytes(signature)

        with self._lock.write():
            if key in self._records:
                raise DuplicateHash(key)

            record = DocumentRecord(
                hash=key,
                signing_account=signing_account,
                signature=blob,
                timestamp=self._next_timestamp(),
            )

            if self._journal is not None:
                self._journal.append(record)

            self._insert(record)
            logger.debug("Registered %s for %s", record.hash_hex, signing_account)
            self._enqueue(DocumentEntered.from_record(record))

        self._deliver_pending()
        return record

    def verify(self, document_hash: bytes | str, signing_account: str | None) -> VerificationResult:
        """Classify a hash/signer pair. Never raises.

        Only the recorded signer identity is compared; the stored signature is
        not checked against the hash.
        """
        try:
            key: bytes | None = parse_document_hash(document_hash)
        except (TypeError, ValueError):
            key = None

        with self._lock.read():
            record = self._records.get(key) if key is not None else None
            if record is None:
                outcome = VerificationOutcome.NOT_FOUND
            elif record.signing_account != signing_account:
                outcome = VerificationOutcome.WRONG_SIGNER
            else:
                outcome = VerificationOutcome.VALID

            result = VerificationResult.of(outcome)
            self._enqueue(DocumentVerified(message=result.message))

        self._deliver_pending()
        return result

    def list_documents(self) -> None:
        """Emit a ``DocumentListed`` notification for every record in insertion order."""
        with self._lock.read():
            self._enqueue(*(DocumentListed.from_record(self._records[key]) for key in self._index))

        self._deliver_pending()

    def page(self, cursor: int = 0, limit: int | None = None) -> RecordPage:
        """Return up to ``limit`` records starting at index position ``cursor``."""
        size = self._page_size if limit is None else limit
        if cursor < 0:
            raise ValueError(f"cursor must be >= 0, got {cursor}")
        if size < 1:
            raise ValueError(f"limit must be >= 1, got {size}")

        with self._lock.read():
            keys = self._index[cursor : cursor + size]
            records = tuple(self._records[key] for key in keys)
            end = cursor + len(keys)
            next_cursor = end if end < len(self._index) else None

        return RecordPage(records=records, next_cursor=next_cursor)

    def iter_documents(self, page_size: int | None = None, *, start: int = 0) -> Iterator[DocumentRecord]:
        """Lazily yield records in insertion order, one page at a time.

        The read lock is held only while a page is fetched, never while the
        caller consumes it. Pass ``start`` to resume from an index position.
        """
        cursor: int | None = start
        while cursor is not None:
            current = self.page(cursor, page_size)
            yield from current.records
            cursor = current.next_cursor

    def count(self) -> int:
        """Return the number of stored records."""
        with self._lock.read():
            return len(self._index)

    def get(self, document_hash: bytes | str) -> DocumentRecord:
        """Return the record for ``document_hash``.

        Raises:
            InvalidHash: If the hash is malformed
            NotFound: If no record exists
        """
        key = _coerce_hash(document_hash)
        with self._lock.read():
            record = self._records.get(key)
        if record is None:
            raise NotFound(key)
        return record

    def contains(self, document_hash: bytes | str) -> bool:
        try:
            key = parse_document_hash(document_hash)
        except (TypeError, ValueError):
            return False
        with self._lock.read():
            return key in self._records

    def __len__(self) -> int:
        return self.count()

    def __contains__(self, document_hash: object) -> bool:
        if not isinstance(document_hash, (bytes, bytearray, str)):
            return False
        return self.contains(document_hash)

    def __iter__(self) -> Iterator[DocumentRecord]:
        return self.iter_documents()
