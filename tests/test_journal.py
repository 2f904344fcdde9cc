"""Tests for the JSONL registration journal."""

import hashlib
import json
from pathlib import Path

import pytest

from docledger.app.adapters import JournalEntry, JSONLJournal, MemoryEventSink
from docledger.registry import DocumentRegistry, DuplicateHash, JournalError

KEY = b"k" * 32


def _h(label: str) -> bytes:
    return hashlib.sha256(label.encode("utf-8")).digest()


def _journal(temp_dir: Path) -> JSONLJournal:
    return JSONLJournal(temp_dir / "registry.jsonl", hmac_key=KEY, fsync=False)


def _rewrite_line(path: Path, index: int, **changes) -> None:
    lines = path.read_text(encoding="utf-8").splitlines()
    payload = json.loads(lines[index])
    payload.update(changes)
    lines[index] = json.dumps(payload)
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def test_registrations_survive_reopen(temp_dir: Path):
    registry = DocumentRegistry(journal=_journal(temp_dir))
    first = registry.register(_h("a"), "alice", b"\x00\x01")
    second = registry.register(_h("b"), "bob", b"")

    reopened = DocumentRegistry(journal=_journal(temp_dir))

    assert reopened.count() == 2
    assert list(reopened.iter_documents()) == [first, second]
    assert reopened.verify(_h("a"), "alice").is_valid


def test_replay_emits_no_events(temp_dir: Path):
    DocumentRegistry(journal=_journal(temp_dir)).register(_h("a"), "alice", b"sig")

    sink = MemoryEventSink()
    DocumentRegistry(journal=_journal(temp_dir), event_sink=sink)

    assert sink.events == []


def test_duplicate_rejected_after_reopen(temp_dir: Path):
    DocumentRegistry(journal=_journal(temp_dir)).register(_h("a"), "alice", b"sig")

    reopened = DocumentRegistry(journal=_journal(temp_dir))
    with pytest.raises(DuplicateHash):
        reopened.register(_h("a"), "bob", b"sig")

    assert len(_journal(temp_dir).read_all()) == 1


def test_timestamps_stay_monotonic_after_reopen(temp_dir: Path):
    first = DocumentRegistry(journal=_journal(temp_dir)).register(_h("a"), "alice")

    reopened = DocumentRegistry(journal=_journal(temp_dir), clock=lambda: first.timestamp.replace(year=2000))
    second = reopened.register(_h("b"), "alice")

    assert second.timestamp == first.timestamp


def test_entries_are_chained_and_sealed(temp_dir: Path):
    registry = DocumentRegistry(journal=_journal(temp_dir))
    registry.register(_h("a"), "alice")
    registry.register(_h("b"), "bob")

    entries = _journal(temp_dir).read_all()
    assert [entry.sequence for entry in entries] == [1, 2]
    assert entries[0].previous_hash == "0" * 64
    assert entries[1].previous_hash == entries[0].entry_hash
    assert all(entry.seal for entry in entries)
    assert entries[0].document_hash == _h("a").hex()


def test_entry_hash_is_deterministic():
    kwargs = dict(
        sequence=1,
        document_hash=_h("a").hex(),
        signing_account="alice",
        signature="",
        timestamp="2026-10-19T10:00:00+00:00",
    )
    assert JournalEntry(**kwargs).entry_hash == JournalEntry(**kwargs).entry_hash
    assert len(JournalEntry(**kwargs).entry_hash) == 64


def test_verify_clean_journal(temp_dir: Path):
    journal = _journal(temp_dir)
    assert journal.verify() == (True, None)

    registry = DocumentRegistry(journal=journal)
    registry.register(_h("a"), "alice")
    registry.register(_h("b"), "bob")

    assert _journal(temp_dir).verify() == (True, None)


def test_verify_detects_edited_signer(temp_dir: Path):
    registry = DocumentRegistry(journal=_journal(temp_dir))
    registry.register(_h("a"), "alice")
    registry.register(_h("b"), "bob")

    _rewrite_line(temp_dir / "registry.jsonl", 0, signing_account="mallory")

    valid, error = _journal(temp_dir).verify()
    assert valid is False
    assert "invalid hash" in error


def test_verify_detects_recomputed_entry(temp_dir: Path):
    """Rewriting an entry and its hash still breaks the seal."""
    registry = DocumentRegistry(journal=_journal(temp_dir))
    registry.register(_h("a"), "alice")

    path = temp_dir / "registry.jsonl"
    entry = JournalEntry.model_validate_json(path.read_text(encoding="utf-8").splitlines()[0])
    forged = entry.model_copy(update={"signing_account": "mallory", "entry_hash": None})
    forged.entry_hash = forged.compute_hash()
    path.write_text(forged.model_dump_json() + "\n", encoding="utf-8")

    valid, error = _journal(temp_dir).verify()
    assert valid is False
    assert "invalid seal" in error


def test_verify_detects_truncation(temp_dir: Path):
    registry = DocumentRegistry(journal=_journal(temp_dir))
    registry.register(_h("a"), "alice")
    registry.register(_h("b"), "bob")

    path = temp_dir / "registry.jsonl"
    first_line = path.read_text(encoding="utf-8").splitlines()[0]
    path.write_text(first_line + "\n", encoding="utf-8")

    valid, error = _journal(temp_dir).verify()
    assert valid is False
    assert "metadata" in error


def test_verify_detects_wrong_key(temp_dir: Path):
    DocumentRegistry(journal=_journal(temp_dir)).register(_h("a"), "alice")

    other = JSONLJournal(temp_dir / "registry.jsonl", hmac_key=b"x" * 32, fsync=False)
    valid, error = other.verify()
    assert valid is False
    assert "metadata" in error


def test_corrupt_line_raises_journal_error(temp_dir: Path):
    path = temp_dir / "registry.jsonl"
    path.write_text("{not json}\n", encoding="utf-8")

    with pytest.raises(JournalError):
        _journal(temp_dir)


def test_replayed_duplicate_is_rejected(temp_dir: Path):
    DocumentRegistry(journal=_journal(temp_dir)).register(_h("a"), "alice")

    path = temp_dir / "registry.jsonl"
    line = path.read_text(encoding="utf-8").splitlines()[0]
    path.write_text(f"{line}\n{line}\n", encoding="utf-8")

    with pytest.raises(JournalError):
        DocumentRegistry(journal=_journal(temp_dir))


def test_failed_append_leaves_registry_unchanged(temp_dir: Path):
    class FailingJournal:
        def append(self, record):
            raise OSError("disk full")

        def replay(self):
            return iter(())

        def verify(self):
            return True, None

    sink = MemoryEventSink()
    registry = DocumentRegistry(journal=FailingJournal(), event_sink=sink)

    with pytest.raises(OSError):
        registry.register(_h("a"), "alice")

    assert registry.count() == 0
    assert sink.events == []
    assert not registry.contains(_h("a"))


def test_default_key_created_next_to_journal(temp_dir: Path):
    JSONLJournal(temp_dir / "registry.jsonl", fsync=False)
    assert (temp_dir / "registry.key").exists()
    assert (temp_dir / "registry.meta").exists()


def test_failed_metadata_write_rolls_back_append(temp_dir: Path, monkeypatch: pytest.MonkeyPatch):
    journal = _journal(temp_dir)
    registry = DocumentRegistry(journal=journal)
    write_metadata = journal._write_metadata
    calls = {"count": 0}

    def flaky_write_metadata(*args, **kwargs):
        calls["count"] += 1
        if calls["count"] == 1:
            raise OSError("disk full")
        return write_metadata(*args, **kwargs)

    monkeypatch.setattr(journal, "_write_metadata", flaky_write_metadata)

    with pytest.raises(OSError):
        registry.register(_h("a"), "alice")

    assert registry.count() == 0
    assert journal.read_all() == []

    registry.register(_h("a"), "alice")

    reopened = DocumentRegistry(journal=_journal(temp_dir))
    assert reopened.count() == 1
    assert reopened.get(_h("a")).signing_account == "alice"
    assert _journal(temp_dir).verify() == (True, None)


def test_failed_append_after_existing_entries_keeps_chain(temp_dir: Path, monkeypatch: pytest.MonkeyPatch):
    journal = _journal(temp_dir)
    registry = DocumentRegistry(journal=journal)
    registry.register(_h("a"), "alice")
    write_metadata = journal._write_metadata
    calls = {"count": 0}

    def flaky_write_metadata(*args, **kwargs):
        calls["count"] += 1
        if calls["count"] == 1:
            raise OSError("disk full")
        return write_metadata(*args, **kwargs)

    monkeypatch.setattr(journal, "_write_metadata", flaky_write_metadata)

    with pytest.raises(OSError):
        registry.register(_h("b"), "bob")

    registry.register(_h("c"), "carol")

    entries = _journal(temp_dir).read_all()
    assert [entry.sequence for entry in entries] == [1, 2]
    assert entries[1].previous_hash == entries[0].entry_hash
    assert _journal(temp_dir).verify() == (True, None)


@pytest.mark.parametrize(
    "changes",
    [
        {"document_hash": "00" * 32},
        {"signing_account": "0x" + "0" * 40},
    ],
)
def test_replay_rejects_reserved_values(temp_dir: Path, changes):
    DocumentRegistry(journal=_journal(temp_dir)).register(_h("a"), "alice")
    _rewrite_line(temp_dir / "registry.jsonl", 0, **changes)

    with pytest.raises(JournalError):
        DocumentRegistry(journal=_journal(temp_dir))
