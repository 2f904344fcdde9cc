"""Append-only JSONL journal persisting registrations with a sealed hash chain."""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
import os
from collections.abc import Iterator
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from docledger.registry.errors import JournalError
from docledger.registry.models import DocumentRecord
from docledger.utils.crypto import decode_bytes, encode_bytes, load_or_create_hmac_key
from docledger.utils.hashing import compute_sha256

logger = logging.getLogger(__name__)

GENESIS_HASH = "0" * 64
GENESIS_SEAL = "0" * 64


class JournalEntry(BaseModel):
    """Single journal line describing one registration.

    Entries are linked in a hash chain and sealed with an HMAC that also covers
    the previous entry's seal, so edits, reordering and deletion are detectable.
    """

    sequence: int = Field(..., ge=1, description="Monotonic sequence number starting at 1")
    document_hash: str = Field(..., description="Hex-encoded 32-byte document hash")
    signing_account: str = Field(..., description="Claimed signing account")
    signature: str = Field(default="", description="Base64-encoded signature blob")
    timestamp: str = Field(..., description="ISO 8601 registration timestamp in UTC")
    previous_hash: str = Field(
        default=GENESIS_HASH,
        description="entry_hash of the previous entry. First entry has 64 zeros.",
    )
    entry_hash: str | None = Field(
        default=None,
        description="SHA-256 of entry content including previous_hash (excluding this field)",
    )
    seal: str | None = Field(default=None, description="HMAC seal chaining to the previous seal")

    @classmethod
    def from_record(cls, record: DocumentRecord, *, sequence: int, previous_hash: str) -> JournalEntry:
        return cls(
            sequence=sequence,
            document_hash=record.hash.hex(),
            signing_account=record.signing_account,
            signature=encode_bytes(record.signature),
            timestamp=record.timestamp.isoformat(),
            previous_hash=previous_hash,
        )

    def compute_hash(self) -> str:
        """Compute deterministic hash of entry content.

        Returns:
            SHA-256 hash of entry (excluding entry_hash and seal fields)
        """
        data = self.model_dump(mode="json", exclude={"entry_hash", "seal"})
        content = json.dumps(data, sort_keys=True, separators=(",", ":"))
        return compute_sha256(content.encode("utf-8"))

    def to_record(self) -> DocumentRecord:
        return DocumentRecord(
            hash=self.document_hash,
            signing_account=self.signing_account,
            signature=decode_bytes(self.signature),
            timestamp=datetime.fromisoformat(self.timestamp),
        )

    def model_post_init(self, __context: Any) -> None:
        """Compute hash after initialization if not set."""
        if self.entry_hash is None:
            self.entry_hash = self.compute_hash()


class JSONLJournal:
    """Durable journal of registrations stored as JSONL.

    One JSON object per line, appended and fsynced per registration. A sealed
    ``.meta`` sidecar records the current tip so truncation is detectable.
    """

    def __init__(self, journal_path: Path, *, hmac_key: bytes | None = None, fsync: bool = True) -> None:
        """Initialize the journal.

        Args:
            journal_path: Path to JSONL journal file
            hmac_key: Key for sealing entries (defaults to an on-disk secret next to the journal)
            fsync: Whether to fsync after every append
        """
        self.journal_path = journal_path
        self.journal_path.parent.mkdir(parents=True, exist_ok=True)

        self._metadata_path = journal_path.with_suffix(".meta")
        if hmac_key is None:
            self._hmac_key = load_or_create_hmac_key(journal_path.with_suffix(".key"), length=32)
        else:
            self._hmac_key = hmac_key
        self._fsync = fsync

        self._last_hash = GENESIS_HASH
        self._last_sequence = 0
        self._last_seal = GENESIS_SEAL

        self._bootstrap_state()

    # ---------------------------------------------------------------------#
    # Internal helpers
    # ---------------------------------------------------------------------#

    def _bootstrap_state(self) -> None:
        """Restore last known hash/sequence/seal from the journal."""
        entries = self._read_entries()

        if entries:
            last_entry = entries[-1]
            self._last_hash = last_entry.entry_hash or GENESIS_HASH
            self._last_sequence = last_entry.sequence
            self._last_seal = last_entry.seal or GENESIS_SEAL

        self._ensure_metadata_initialized()

    def _ensure_metadata_initialized(self) -> None:
        """Create metadata file if missing."""
        try:
            metadata = self._load_metadata()
        except ValueError:
            # Metadata exists but is invalid; leave untouched so verify() surfaces it.
            return

        if metadata is None:
            last_hash = None if self._last_sequence == 0 else self._last_hash
            self._write_metadata(self._last_sequence, last_hash)

    def _read_entries(self) -> list[JournalEntry]:
        """Load journal entries from disk."""
        if not self.journal_path.exists():
            return []

        entries: list[JournalEntry] = []
        with open(self.journal_path, encoding="utf-8") as fh:
            for line_num, raw_line in enumerate(fh, 1):
                line = raw_line.strip()
                if not line:
                    continue

                try:
                    entries.append(JournalEntry.model_validate_json(line))
                except ValidationError as exc:
                    raise JournalError(
                        f"Invalid entry at line {line_num} in {self.journal_path}: {exc}"
                    ) from exc

        return entries

    def _compute_seal(self, entry: JournalEntry, previous_seal: str) -> str:
        """Compute HMAC seal for an entry."""
        payload = "|".join(
            [
                str(entry.sequence),
                entry.previous_hash,
                entry.entry_hash or "",
                previous_seal,
            ]
        ).encode("utf-8")

        return hmac.new(self._hmac_key, payload, hashlib.sha256).hexdigest()

    def _compute_metadata_hmac(self, last_sequence: int, last_hash: str | None) -> str:
        payload = f"{last_sequence}:{last_hash or GENESIS_HASH}".encode("utf-8")
        return hmac.new(self._hmac_key, payload, hashlib.sha256).hexdigest()

    def _write_metadata(self, last_sequence: int, last_hash: str | None) -> None:
        """Persist metadata describing the current tip of the journal."""
        payload = {
            "version": 1,
            "last_sequence": last_sequence,
            "last_hash": last_hash,
            "hmac": self._compute_metadata_hmac(last_sequence, last_hash),
        }
        data = json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")

        fd = os.open(self._metadata_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        try:
            os.write(fd, data)
            if self._fsync:
                os.fsync(fd)
        finally:
            os.close(fd)

    def _load_metadata(self) -> dict[str, Any] | None:
        """Load and validate journal metadata."""
        try:
            raw = self._metadata_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Journal metadata is not valid JSON: {exc}") from exc

        expected_hmac = self._compute_metadata_hmac(
            int(data.get("last_sequence", 0)), data.get("last_hash")
        )
        actual_hmac = data.get("hmac")

        if not isinstance(actual_hmac, str) or not hmac.compare_digest(expected_hmac, actual_hmac):
            raise ValueError("Journal metadata HMAC mismatch")

        return data

    # ---------------------------------------------------------------------#
    # Public API
    # ---------------------------------------------------------------------#

    def append(self, record: DocumentRecord) -> None:
        """Append ``record`` to the journal.

        A failed write leaves the file and the tip as they were before the call.

        Raises:
            OSError: If the journal cannot be written
        """
        sequence = self._last_sequence + 1
        entry = JournalEntry.from_record(record, sequence=sequence, previous_hash=self._last_hash)
        entry.seal = self._compute_seal(entry, self._last_seal)

        tip = (self._last_sequence, self._last_hash, self._last_seal)
        try:
            offset = self.journal_path.stat().st_size
        except FileNotFoundError:
            offset = 0

        try:
            with open(self.journal_path, "a", encoding="utf-8") as fh:
                fh.write(entry.model_dump_json() + "\n")
                fh.flush()
                if self._fsync:
                    os.fsync(fh.fileno())

            self._last_sequence = sequence
            self._last_hash = entry.entry_hash or GENESIS_HASH
            self._last_seal = entry.seal

            self._write_metadata(sequence, entry.entry_hash)
        except Exception:
            self._rollback(offset, tip)
            raise

    def _rollback(self, offset: int, tip: tuple[int, str, str]) -> None:
        """Cut the journal back to ``offset`` and restore the previous tip."""
        self._last_sequence, self._last_hash, self._last_seal = tip
        try:
            if self.journal_path.exists():
                os.truncate(self.journal_path, offset)
            last_hash = None if self._last_sequence == 0 else self._last_hash
            self._write_metadata(self._last_sequence, last_hash)
        except OSError:
            logger.error(
                "Could not roll back journal %s to %d bytes; run 'docledger journal verify'",
                self.journal_path,
                offset,
                exc_info=True,
            )

    def replay(self) -> Iterator[DocumentRecord]:
        """Yield stored records in insertion order.

        Raises:
            JournalError: If a line cannot be parsed into a record
        """
        for entry in self._read_entries():
            try:
                yield entry.to_record()
            except (ValidationError, ValueError) as exc:
                raise JournalError(
                    f"Journal entry {entry.sequence} does not describe a valid record: {exc}"
                ) from exc

    def read_all(self) -> list[JournalEntry]:
        """Read all raw journal entries in order."""
        return self._read_entries()

    def verify(self) -> tuple[bool, str | None]:
        """Verify integrity of hash chain, seals and metadata.

        Returns:
            Tuple of (is_valid, error_message). error_message is None if valid.
        """
        try:
            metadata = self._load_metadata()
        except ValueError as exc:
            return False, f"Journal metadata integrity failure: {exc}"

        try:
            entries = self._read_entries()
        except JournalError as exc:
            return False, str(exc)

        if not entries:
            if metadata and metadata.get("last_sequence", 0) > 0:
                return False, "Journal appears truncated (no entries but metadata expects data)."
            return True, None

        previous_hash = GENESIS_HASH
        previous_seal = GENESIS_SEAL
        seen: set[str] = set()

        for idx, entry in enumerate(entries, 1):
            if entry.entry_hash is None or entry.seal is None:
                return False, f"Entry {idx} is missing its hash or seal; journal corrupted."

            expected_hash = entry.compute_hash()
            if not hmac.compare_digest(entry.entry_hash, expected_hash):
                return (
                    False,
                    f"Entry {idx} has invalid hash (expected '{expected_hash}', got '{entry.entry_hash}').",
                )

            if entry.previous_hash != previous_hash:
                return (
                    False,
                    f"Entry {idx} breaks hash chain (expected previous_hash='{previous_hash}', "
                    f"found '{entry.previous_hash}').",
                )

            expected_seal = self._compute_seal(entry, previous_seal)
            if not hmac.compare_digest(entry.seal, expected_seal):
                return False, f"Entry {idx} has invalid seal; journal may have been tampered."

            if entry.sequence != idx:
                return False, f"Entry {idx} sequence mismatch (expected {idx}, got {entry.sequence})."

            if entry.document_hash in seen:
                return False, f"Entry {idx} registers {entry.document_hash} a second time."
            seen.add(entry.document_hash)

            previous_hash = entry.entry_hash
            previous_seal = entry.seal

        if metadata is None:
            return False, "Journal metadata file is missing."

        last_entry = entries[-1]
        meta_sequence = int(metadata.get("last_sequence", 0))
        meta_hash = metadata.get("last_hash")

        if meta_sequence != last_entry.sequence:
            return (
                False,
                f"Journal metadata sequence mismatch (expected {last_entry.sequence}, got {meta_sequence}).",
            )

        if meta_hash != last_entry.entry_hash:
            return False, "Journal metadata hash mismatch; possible truncation or tampering detected."

        return True, None
