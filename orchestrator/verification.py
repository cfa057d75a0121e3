"""
Verification Engine

Decides whether a presented credential (or uploaded file, or bare hash)
is an anchored, untampered member of an issued batch.

Per request the engine walks a fixed state machine:

    Received -> Recomputed -> LocalChecked -> ChainChecked -> Decided

and short-circuits to Decided as soon as the verdict is known:
- no stored record                         -> NotFound
- record never batched (no proof/root)     -> NotAnchored, no chain call
- hash, proof decode or proof fold failure -> Invalid, no chain call
- root absent on the ledger                -> NotAnchored
- root on the ledger differs               -> Invalid
- root on the ledger equals the record     -> Valid
- ledger unreachable within retry budget   -> Unavailable

Verdicts are computed fresh on every request and never written back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import BinaryIO, Optional, Union

from core.config import RuntimeConfig, get_default_config
from core.credentials import RawCredential, canonicalize_credential
from core.crypto.hashing import hash_content, normalize_hash
from core.ledger import AnchoredRootReader, RetryPolicy, call_with_retry
from core.merkle import decode_proof, verify_inclusion
from core.schemas.errors import LedgerException, ProofFormatException
from core.schemas.records import CertificateRecord, HashKind
from core.schemas.verification import (
    CheckResult,
    VerificationEvidence,
    VerificationReport,
    VerificationState,
    VerificationVerdict,
)
from core.store import RecordStore


logger = logging.getLogger(__name__)


@dataclass
class _Run:
    """Mutable accumulator for one verification request."""
    transitions: list[VerificationState] = field(
        default_factory=lambda: [VerificationState.RECEIVED]
    )
    evidence: VerificationEvidence = field(default_factory=VerificationEvidence)
    checks: list[CheckResult] = field(default_factory=list)

    def advance(self, state: VerificationState) -> None:
        self.transitions.append(state)

    def decide(self, verdict: VerificationVerdict, error=None) -> VerificationReport:
        self.transitions.append(VerificationState.DECIDED)
        return VerificationReport(
            verdict=verdict,
            state=VerificationState.DECIDED,
            transitions=list(self.transitions),
            evidence=self.evidence,
            checks=list(self.checks),
            error=error,
        )


class VerificationEngine:
    """
    Read-only verification over a record store and a ledger reader.

    Usage:
        engine = VerificationEngine(store, ledger)
        report = engine.verify_credential(fields)
        report.verdict  # VerificationVerdict.VALID
    """

    def __init__(
        self,
        store: RecordStore,
        ledger: AnchoredRootReader,
        *,
        retry_policy: Optional[RetryPolicy] = None,
        config: Optional[RuntimeConfig] = None,
    ) -> None:
        self.store = store
        self.ledger = ledger
        if retry_policy is None:
            retry_policy = RetryPolicy.from_config((config or get_default_config()).ledger)
        self.retry_policy = retry_policy

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def verify_credential(
        self,
        fields: RawCredential,
        *,
        certificate_id: Optional[str] = None,
    ) -> VerificationReport:
        """
        Verify presented credential fields.

        The record is looked up by certificate id (argument first, then the
        id inside the fields) and otherwise by the recomputed hash. A record
        found by id whose hash differs from the recomputed one means the
        presented fields were altered.
        """
        run = _Run()
        canonical = canonicalize_credential(fields)
        artifact_hash = canonical.artifact_hash
        run.evidence.artifact_hash = artifact_hash
        run.evidence.hash_kind = "canonical"
        run.advance(VerificationState.RECOMPUTED)

        lookup_id = certificate_id or canonical.payload.certificate_id
        if lookup_id:
            record = self.store.get_certificate_record(lookup_id)
            if record is not None and normalize_hash(record.artifact_hash) != artifact_hash:
                run.evidence.certificate_id = record.certificate_id
                run.evidence.batch_id = record.batch_id
                run.evidence.merkle_root = record.merkle_root
                run.evidence.hash_matched = False
                run.checks.append(CheckResult.failed(
                    "hash_match",
                    "Recomputed hash differs from the stored artifact hash",
                    details={"recomputed": artifact_hash, "stored": record.artifact_hash},
                ))
                run.advance(VerificationState.LOCAL_CHECKED)
                return self._finish(run, VerificationVerdict.INVALID)
        else:
            record = self.store.find_record_by_hash(artifact_hash)

        return self._decide_for_record(run, artifact_hash, record)

    def verify_hash(self, artifact_hash: str, *, hash_kind: HashKind = "canonical") -> VerificationReport:
        """Verify a bare artifact hash."""
        run = _Run()
        run.evidence.hash_kind = hash_kind
        try:
            normalized = normalize_hash(artifact_hash)
        except (ValueError, TypeError) as e:
            run.checks.append(CheckResult.failed(
                "hash_format",
                f"Not a 32-byte hash: {e}",
            ))
            return self._finish(run, VerificationVerdict.INVALID)

        run.evidence.artifact_hash = normalized
        run.advance(VerificationState.RECOMPUTED)
        return self._decide_for_record(run, normalized, self.store.find_record_by_hash(normalized))

    def verify_file(self, data: Union[bytes, bytearray, BinaryIO]) -> VerificationReport:
        """
        Verify an uploaded artifact by its SHA-256 content hash.

        Content hashes and canonical hashes are separate leaf kinds; a file
        only matches a record anchored under its own content hash.
        """
        run = _Run()
        artifact_hash = hash_content(data)
        run.evidence.artifact_hash = artifact_hash
        run.evidence.hash_kind = "content"
        run.advance(VerificationState.RECOMPUTED)
        return self._decide_for_record(run, artifact_hash, self.store.find_record_by_hash(artifact_hash))

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def _decide_for_record(
        self,
        run: _Run,
        artifact_hash: str,
        record: Optional[CertificateRecord],
    ) -> VerificationReport:
        if record is None:
            run.checks.append(CheckResult.failed("record_exists", "No stored record for this credential"))
            return self._finish(run, VerificationVerdict.NOT_FOUND)

        run.evidence.certificate_id = record.certificate_id
        run.evidence.hash_kind = record.hash_kind
        run.evidence.batch_id = record.batch_id
        run.evidence.merkle_root = record.merkle_root
        run.evidence.hash_matched = True
        run.checks.append(CheckResult.passed("record_exists", "Stored record found"))

        if not record.is_batched:
            run.checks.append(CheckResult.warning(
                "batched",
                "Record has not been placed in an anchoring batch",
            ))
            run.advance(VerificationState.LOCAL_CHECKED)
            return self._finish(run, VerificationVerdict.NOT_ANCHORED)

        if not self._local_check(run, artifact_hash, record):
            run.advance(VerificationState.LOCAL_CHECKED)
            return self._finish(run, VerificationVerdict.INVALID)
        run.advance(VerificationState.LOCAL_CHECKED)

        return self._chain_check(run, record)

    def _local_check(self, run: _Run, artifact_hash: str, record: CertificateRecord) -> bool:
        try:
            proof = decode_proof(record.inclusion_proof)
        except ProofFormatException as e:
            run.evidence.proof_valid = False
            run.checks.append(CheckResult.failed("proof_format", e.message, details=e.details))
            return False

        if not verify_inclusion(artifact_hash, proof, record.merkle_root):
            run.evidence.proof_valid = False
            run.checks.append(CheckResult.failed(
                "proof_valid",
                "Inclusion proof does not reproduce the stored root",
                details={"steps": len(proof)},
            ))
            return False

        run.evidence.proof_valid = True
        run.checks.append(CheckResult.passed(
            "proof_valid",
            "Inclusion proof reproduces the stored root",
            details={"steps": len(proof)},
        ))
        return True

    def _chain_check(self, run: _Run, record: CertificateRecord) -> VerificationReport:
        batch_id = record.batch_id
        batch = self.store.get_batch(batch_id)
        if batch is not None:
            run.evidence.tx_ref = batch.anchor_tx_ref

        try:
            anchored_root = call_with_retry(
                self.ledger.get_anchored_root,
                batch_id,
                policy=self.retry_policy,
                context=batch_id,
            )
        except LedgerException as e:
            return self._unavailable(run, batch_id, e)
        except Exception as e:
            return self._unavailable(run, batch_id, LedgerException(
                f"Ledger read failed: {type(e).__name__}: {e}",
                details={"last_error": f"{type(e).__name__}: {e}"},
            ))

        if anchored_root is not None:
            try:
                anchored_root = normalize_hash(anchored_root)
            except (ValueError, TypeError) as e:
                return self._unavailable(run, batch_id, LedgerException(
                    f"Ledger returned a malformed root: {e}",
                    details={"anchored_root": str(anchored_root)},
                ))

        run.advance(VerificationState.CHAIN_CHECKED)
        run.evidence.anchored_root = anchored_root

        if anchored_root is None:
            run.checks.append(CheckResult.warning(
                "root_anchored",
                f"No root anchored for batch {batch_id}",
            ))
            return self._finish(run, VerificationVerdict.NOT_ANCHORED)

        if anchored_root != normalize_hash(record.merkle_root):
            run.evidence.root_matched = False
            run.checks.append(CheckResult.failed(
                "root_matched",
                "Anchored root differs from the stored root",
                details={"anchored": anchored_root, "stored": record.merkle_root},
            ))
            return self._finish(run, VerificationVerdict.INVALID)

        run.evidence.root_matched = True
        run.checks.append(CheckResult.passed("root_matched", "Anchored root matches the stored root"))
        return self._finish(run, VerificationVerdict.VALID)

    def _unavailable(self, run: _Run, batch_id: str, e: LedgerException) -> VerificationReport:
        logger.warning(f"Ledger unavailable for batch {batch_id}: {e.message}")
        details = dict(e.details)
        details.setdefault("batch_id", batch_id)
        run.checks.append(CheckResult.failed("ledger_reachable", e.message, details=details))
        error = e.to_error_model()
        error.details = details
        return self._finish(run, VerificationVerdict.UNAVAILABLE, error=error)

    def _finish(self, run: _Run, verdict: VerificationVerdict, error=None) -> VerificationReport:
        report = run.decide(verdict, error=error)
        logger.info(
            f"Verification of {run.evidence.certificate_id or run.evidence.artifact_hash}: "
            f"{verdict.value}"
        )
        return report
