"""
Proof Packages

Portable, self-describing JSON document handed to a credential holder so
anyone can check inclusion offline and then look up the anchored root:

    {
      "version": "1.0",
      "certificateId": "...",
      "hash": "0x...",
      "hashKind": "canonical",
      "merkleRoot": "0x...",
      "merkleProof": [{"position": "right", "data": "0x..."}, ...],
      "batchId": "42",
      "txHash": "0x...",
      "issuer": {"id": "...", "name": "..."},
      "issuedAt": "2024-03-01T00:00:00.000Z",
      "verificationInstructions": {...}
    }
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from core.crypto.hashing import is_hash, normalize_hash
from core.merkle import decode_proof, verify_inclusion
from core.schemas.canonical import normalize_date
from core.schemas.errors import CertAnchorException, ErrorCodes, ProofFormatException
from core.schemas.records import BatchRecord, CertificateRecord, HashKind
from core.schemas.verification import CheckResult


PROOF_PACKAGE_VERSION = "1.0"


class IssuerInfo(BaseModel):
    """Issuer identity embedded in a proof package."""

    model_config = ConfigDict(extra="forbid")

    id: Optional[str] = None
    name: Optional[str] = None


class ProofPackage(BaseModel):
    """Holder-facing inclusion proof for one credential."""

    model_config = ConfigDict(
        extra="forbid",
        populate_by_name=True,
    )

    version: str = Field(default=PROOF_PACKAGE_VERSION)
    certificate_id: str = Field(..., alias="certificateId", min_length=1)
    hash: str = Field(..., description="0x-prefixed artifact hash (the Merkle leaf)")
    hash_kind: HashKind = Field(default="canonical", alias="hashKind")
    merkle_root: str = Field(..., alias="merkleRoot")
    merkle_proof: list[dict[str, Any]] = Field(default_factory=list, alias="merkleProof")
    batch_id: str = Field(..., alias="batchId")
    tx_hash: Optional[str] = Field(default=None, alias="txHash")
    issuer: Optional[IssuerInfo] = None
    issued_at: Optional[str] = Field(default=None, alias="issuedAt")
    verification_instructions: dict[str, str] = Field(
        default_factory=dict,
        alias="verificationInstructions",
    )


def _instructions(batch_id: str) -> dict[str, str]:
    return {
        "step1": "Fold merkleProof over hash and compare the result with merkleRoot",
        "step2": f"Query the ledger for the batch root: getBatchRoot({batch_id})",
        "step3": "Compare merkleRoot with the anchored root",
    }


def build_proof_package(
    record: CertificateRecord,
    *,
    batch: Optional[BatchRecord] = None,
    issuer: Optional[IssuerInfo | dict[str, Any]] = None,
    issued_at: Any = None,
) -> ProofPackage:
    """
    Build the proof package of a batched credential.

    Args:
        record: Certificate record carrying batch id, root and proof
        batch: Batch record, used for the anchoring transaction reference
        issuer: Issuer identity to embed
        issued_at: Issue date in any form accepted by normalize_date

    Raises:
        CertAnchorException: If the record has not been placed in a batch
    """
    if not record.is_batched:
        raise CertAnchorException(
            f"Certificate {record.certificate_id!r} has no batch proof yet",
            code=ErrorCodes.LEAF_NOT_FOUND,
            details={"certificate_id": record.certificate_id},
        )

    if isinstance(issuer, dict):
        issuer = IssuerInfo.model_validate(issuer)
    if issuer is None and batch is not None and batch.issuer_id:
        issuer = IssuerInfo(id=batch.issuer_id)

    return ProofPackage(
        certificate_id=record.certificate_id,
        hash=record.artifact_hash,
        hash_kind=record.hash_kind,
        merkle_root=record.merkle_root,
        merkle_proof=list(record.inclusion_proof),
        batch_id=record.batch_id,
        tx_hash=batch.anchor_tx_ref if batch is not None else None,
        issuer=issuer,
        issued_at=normalize_date(issued_at) if issued_at is not None else None,
        verification_instructions=_instructions(record.batch_id),
    )


def verify_proof_package(package: ProofPackage) -> list[CheckResult]:
    """
    Offline checks of a proof package.

    Covers the hash format, the proof wire format and the fold to the
    stated root. Whether that root is anchored is a ledger question and is
    left to the verification engine.
    """
    checks: list[CheckResult] = []

    for check_id, value in (("hash_format", package.hash), ("root_format", package.merkle_root)):
        if is_hash(value):
            checks.append(CheckResult.passed(check_id, f"{check_id.split('_')[0]} is a 32-byte hash"))
        else:
            checks.append(CheckResult.failed(check_id, f"Not a 32-byte hash: {value!r}"))
    if not all(c.ok for c in checks):
        return checks

    try:
        proof = decode_proof(package.merkle_proof)
    except ProofFormatException as e:
        checks.append(CheckResult.failed("proof_format", e.message, details=e.details))
        return checks
    checks.append(CheckResult.passed("proof_format", f"Proof decodes to {len(proof)} steps"))

    if verify_inclusion(package.hash, proof, package.merkle_root):
        checks.append(CheckResult.passed("proof_valid", "Proof reproduces merkleRoot"))
    else:
        checks.append(CheckResult.failed(
            "proof_valid",
            "Proof does not reproduce merkleRoot",
            details={"hash": normalize_hash(package.hash), "merkle_root": normalize_hash(package.merkle_root)},
        ))

    if package.tx_hash is None:
        checks.append(CheckResult.warning("tx_hash", "No anchoring transaction recorded"))

    return checks


def dumps_proof_package(package: ProofPackage, *, indent: Optional[int] = 2) -> str:
    """Serialize a proof package to JSON with camelCase keys."""
    return package.model_dump_json(by_alias=True, indent=indent)


def loads_proof_package(data: str | bytes) -> ProofPackage:
    """Parse a proof package from JSON."""
    return ProofPackage.model_validate_json(data)
