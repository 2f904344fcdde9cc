"""Registry data model: stored records, verification results and pages."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from docledger.utils.crypto import encode_bytes
from docledger.utils.hashing import parse_document_hash

_NULL_ACCOUNT_RE = re.compile(r"^(0x)?0+$", re.IGNORECASE)


def is_null_account(account: str | None) -> bool:
    """Return True for the null signer: missing, blank, or the all-zero address."""

    if account is None:
        return True
    text = account.strip()
    if not text:
        return True
    return _NULL_ACCOUNT_RE.match(text) is not None


class DocumentRecord(BaseModel):
    """A registered document.

    Records are immutable once stored. ``hash`` and ``signature`` are raw bytes;
    JSON dumps render the hash as hex and the signature as base64.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    hash: bytes = Field(..., description="32-byte document content hash")
    signing_account: str = Field(..., min_length=1, description="Claimed signing account")
    signature: bytes = Field(default=b"", description="Opaque signature blob (may be empty)")
    timestamp: datetime = Field(..., description="UTC time assigned by the store at insertion")

    @field_validator("hash", mode="before")
    @classmethod
    def _normalize_hash(cls, value: object) -> bytes:
        if isinstance(value, (bytes, bytearray, str)):
            return parse_document_hash(value)
        raise ValueError(f"Unsupported document hash type: {type(value)!r}")

    @field_serializer("hash", when_used="json")
    def _serialize_hash(self, value: bytes) -> str:
        return value.hex()

    @field_serializer("signature", when_used="json")
    def _serialize_signature(self, value: bytes) -> str:
        return encode_bytes(value)

    @property
    def hash_hex(self) -> str:
        return self.hash.hex()


class VerificationOutcome(str, Enum):
    """Classification of a hash/signer pair."""

    NOT_FOUND = "not_found"
    WRONG_SIGNER = "wrong_signer"
    VALID = "valid"

    @property
    def message(self) -> str:
        return _OUTCOME_MESSAGES[self]


_OUTCOME_MESSAGES = {
    VerificationOutcome.NOT_FOUND: "document does not exist in the contract",
    VerificationOutcome.WRONG_SIGNER: "document was not signed by the indicated account",
    VerificationOutcome.VALID: "document is correct",
}


class VerificationResult(BaseModel):
    """Outcome of :meth:`DocumentRegistry.verify`."""

    model_config = ConfigDict(frozen=True)

    outcome: VerificationOutcome
    message: str

    @classmethod
    def of(cls, outcome: VerificationOutcome) -> VerificationResult:
        return cls(outcome=outcome, message=outcome.message)

    @property
    def is_valid(self) -> bool:
        return self.outcome is VerificationOutcome.VALID


@dataclass(frozen=True, slots=True)
class RecordPage:
    """One page of records in insertion order.

    ``next_cursor`` is the index position to resume from, or ``None`` once the
    end of the enumeration index was reached.
    """

    records: tuple[DocumentRecord, ...]
    next_cursor: int | None
