"""Document registry: records, verification outcomes and the store itself."""

from docledger.registry.errors import (
    DuplicateHash,
    InvalidHash,
    InvalidSigner,
    JournalError,
    NotFound,
    RegistryError,
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
)
from docledger.registry.store import DocumentRegistry

__all__ = [
    "DocumentEntered",
    "DocumentListed",
    "DocumentRecord",
    "DocumentRegistry",
    "DocumentVerified",
    "DuplicateHash",
    "InvalidHash",
    "InvalidSigner",
    "JournalError",
    "NotFound",
    "RecordPage",
    "RegistryError",
    "RegistryEvent",
    "VerificationOutcome",
    "VerificationResult",
]
