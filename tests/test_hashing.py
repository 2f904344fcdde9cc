"""Tests for document hash helpers."""

import hashlib
from pathlib import Path

import pytest

from docledger.utils.hashing import (
    ZERO_HASH,
    compute_document_hash,
    compute_document_hash_file,
    compute_sha256,
    parse_document_hash,
)


def test_compute_document_hash_matches_sha256():
    assert compute_document_hash(b"content") == hashlib.sha256(b"content").digest()
    assert compute_sha256(b"content") == hashlib.sha256(b"content").hexdigest()


def test_compute_document_hash_file(temp_dir: Path):
    path = temp_dir / "doc.txt"
    path.write_bytes(b"x" * 200_000)

    assert compute_document_hash_file(path, chunk_size=4096) == hashlib.sha256(b"x" * 200_000).digest()


def test_parse_document_hash_forms():
    digest = hashlib.sha256(b"doc").digest()

    assert parse_document_hash(digest) == digest
    assert parse_document_hash(bytearray(digest)) == digest
    assert parse_document_hash(digest.hex()) == digest
    assert parse_document_hash("0x" + digest.hex().upper()) == digest
    assert parse_document_hash(f"  {digest.hex()}  ") == digest


@pytest.mark.parametrize("value", ["", "0x", "ab" * 31, "gg" * 32, b"\x01" * 31])
def test_parse_document_hash_rejects_malformed(value):
    with pytest.raises(ValueError):
        parse_document_hash(value)


def test_parse_document_hash_rejects_other_types():
    with pytest.raises(TypeError):
        parse_document_hash(12345)  # type: ignore[arg-type]


def test_zero_hash_is_parseable():
    assert parse_document_hash("00" * 32) == ZERO_HASH
