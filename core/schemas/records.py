"""
Schemas & Canonicalization
File: records.py

Purpose: Persisted shapes exchanged with the record store - certificate
records carrying their Merkle evidence, and anchoring batches.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


# How an artifact hash was derived
HashKind = Literal["canonical", "content"]


class BatchStatus(str, Enum):
    """
    Anchoring lifecycle of a batch.

    ASSEMBLED -> PENDING_ANCHOR -> ANCHORED is the happy path. A pending
    submission that errors moves to FAILED; an operator may ABANDON a
    submission that never confirmed. FAILED and ABANDONED batches may be
    re-submitted. ANCHORED is terminal.
    """
    ASSEMBLED = "ASSEMBLED"
    PENDING_ANCHOR = "PENDING_ANCHOR"
    ANCHORED = "ANCHORED"
    FAILED = "FAILED"
    ABANDONED = "ABANDONED"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CertificateRecord(BaseModel):
    """
    Stored record for one issued credential.

    merkle_root / inclusion_proof / batch_id are absent until the credential
    has been placed in a batch. The proof is kept in its persisted wire form
    (list of {"position", "data"} entries) and decoded at verification time.
    """

    model_config = ConfigDict(extra="forbid")

    certificate_id: str = Field(..., min_length=1)
    artifact_hash: str = Field(..., description="0x-prefixed leaf hash")
    hash_kind: HashKind = Field(default="canonical")
    batch_id: Optional[str] = Field(default=None)
    merkle_root: Optional[str] = Field(default=None)
    inclusion_proof: Optional[list[dict[str, Any]]] = Field(default=None)

    @property
    def is_batched(self) -> bool:
        """Whether the record carries everything needed for a proof check."""
        return (
            self.batch_id is not None
            and self.merkle_root is not None
            and self.inclusion_proof is not None
        )


class BatchRecord(BaseModel):
    """An issuer-scoped set of leaves anchored together under one root."""

    model_config = ConfigDict(extra="forbid")

    batch_id: str = Field(..., min_length=1)
    issuer_id: Optional[str] = Field(default=None)
    leaves: list[str] = Field(default_factory=list)
    root: str
    status: BatchStatus = Field(default=BatchStatus.ASSEMBLED)
    anchor_tx_ref: Optional[str] = Field(default=None)
    anchor_attempts: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=_utcnow)
    anchored_at: Optional[datetime] = Field(default=None)
    last_error: Optional[str] = Field(default=None)

    @property
    def leaf_count(self) -> int:
        return len(self.leaves)

    @property
    def is_anchored(self) -> bool:
        return self.status == BatchStatus.ANCHORED
