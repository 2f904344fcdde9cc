"""Utility modules for docledger."""

from docledger.utils.hashing import (
    DOCUMENT_HASH_SIZE,
    ZERO_HASH,
    compute_document_hash,
    compute_document_hash_file,
    compute_sha256,
    parse_document_hash,
)

__all__ = [
    "DOCUMENT_HASH_SIZE",
    "ZERO_HASH",
    "compute_document_hash",
    "compute_document_hash_file",
    "compute_sha256",
    "parse_document_hash",
]
