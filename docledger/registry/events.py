"""Notifications emitted by the document registry."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Self

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from docledger.registry.models import DocumentRecord
from docledger.utils.crypto import encode_bytes


class _RecordEvent(BaseModel):
    """Notification carrying every field of a stored record."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    hash: bytes
    signer: str
    signature: bytes
    timestamp: datetime

    @field_serializer("hash", when_used="json")
    def _serialize_hash(self, value: bytes) -> str:
        return value.hex()

    @field_serializer("signature", when_used="json")
    def _serialize_signature(self, value: bytes) -> str:
        return encode_bytes(value)

    @classmethod
    def from_record(cls, record: DocumentRecord) -> Self:
        return cls(
            hash=record.hash,
            signer=record.signing_account,
            signature=record.signature,
            timestamp=record.timestamp,
        )


class DocumentEntered(_RecordEvent):
    """Emitted once for every successful registration."""

    event_type: Literal["document_entered"] = "document_entered"


class DocumentListed(_RecordEvent):
    """Emitted once per record, in insertion order, by a listing."""

    event_type: Literal["document_listed"] = "document_listed"


class DocumentVerified(BaseModel):
    """Emitted on every verification with the resulting message."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    event_type: Literal["document_verified"] = "document_verified"
    message: str = Field(..., description="Verification outcome message")


RegistryEvent = DocumentEntered | DocumentVerified | DocumentListed
