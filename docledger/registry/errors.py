"""Exception hierarchy for the document registry."""

from __future__ import annotations


class RegistryError(Exception):
    """Base exception for all document registry errors."""


class InvalidSigner(RegistryError, ValueError):
    """Raised when a registration names a null or empty signing account."""


class InvalidHash(RegistryError, ValueError):
    """Raised when a document hash is malformed or is the reserved zero hash."""


class DuplicateHash(RegistryError):
    """Raised when registering a hash that already has a record."""

    def __init__(self, document_hash: bytes) -> None:
        self.document_hash = document_hash
        super().__init__(f"Document hash already registered: {document_hash.hex()}")


class NotFound(RegistryError, LookupError):
    """Raised when no record exists for a requested hash."""

    def __init__(self, document_hash: bytes) -> None:
        self.document_hash = document_hash
        super().__init__(f"Document hash not registered: {document_hash.hex()}")


class JournalError(RegistryError):
    """Raised when the registration journal cannot be read or is corrupt."""
