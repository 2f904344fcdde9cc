"""Hashing utilities for document identifiers and deterministic content hashing."""

import hashlib
from pathlib import Path

DOCUMENT_HASH_SIZE = 32
ZERO_HASH = bytes(DOCUMENT_HASH_SIZE)


def compute_sha256(content: bytes) -> str:
    """Compute SHA-256 hash of content.

    Args:
        content: Bytes to hash

    Returns:
        Hexadecimal hash string
    """
    return hashlib.sha256(content).hexdigest()


def compute_document_hash(content: bytes) -> bytes:
    """Return the raw 32-byte SHA-256 digest used as a document key."""
    return hashlib.sha256(content).digest()


def compute_document_hash_file(file_path: Path, chunk_size: int = 65536) -> bytes:
    """Compute the 32-byte document hash of a file.

    Args:
        file_path: Path to file
        chunk_size: Size of chunks to read (default 64KB)

    Returns:
        Raw SHA-256 digest

    Raises:
        FileNotFoundError: If file does not exist
        PermissionError: If file cannot be read
    """
    sha256 = hashlib.sha256()

    with open(file_path, "rb") as f:
        while True:
            chunk = f.read(chunk_size)
            if not chunk:
                break
            sha256.update(chunk)

    return sha256.digest()


def parse_document_hash(value: bytes | bytearray | str) -> bytes:
    """Normalize a document hash to 32 raw bytes.

    Accepts raw bytes or a 64-character hex string with an optional ``0x`` prefix.

    Raises:
        ValueError: If ``value`` is not a well-formed 32-byte hash
        TypeError: If ``value`` is neither bytes nor str
    """
    if isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
    elif isinstance(value, str):
        text = value.strip()
        if text[:2].lower() == "0x":
            text = text[2:]
        if len(text) != DOCUMENT_HASH_SIZE * 2:
            raise ValueError(
                f"Document hash must be {DOCUMENT_HASH_SIZE * 2} hex characters, got {len(text)}"
            )
        try:
            raw = bytes.fromhex(text)
        except ValueError as exc:
            raise ValueError(f"Document hash is not valid hexadecimal: {value!r}") from exc
    else:
        raise TypeError(f"Unsupported document hash type: {type(value)!r}")

    if len(raw) != DOCUMENT_HASH_SIZE:
        raise ValueError(f"Document hash must be {DOCUMENT_HASH_SIZE} bytes, got {len(raw)}")
    return raw
