"""
Batch Anchoring

Assembles issued credentials into batches, commits each batch to a Merkle
tree, persists per-credential proofs, and anchors the batch root on the
ledger.

Lifecycle of a batch (see BatchStatus):

    ASSEMBLED --anchor_batch--> PENDING_ANCHOR --confirmed--> ANCHORED
                                     |   ^
                          error      |   |  reanchor_batch / anchor_batch
                                     v   |
                               FAILED / ABANDONED

Entering PENDING_ANCHOR is an atomic compare-and-set on the record store,
so at most one submission per batch is ever in flight. Marking a batch
anchored happens exactly once.
"""

from __future__ import annotations

import concurrent.futures
import logging
from dataclasses import dataclass
from functools import partial
from typing import Iterable, Optional, Sequence

from core.config import AnchoringConfig, get_default_config
from core.credentials import RawCredential, canonicalize_many
from core.crypto.hashing import normalize_hash
from core.ledger import RootAnchorer
from core.merkle import (
    InclusionProof,
    build_merkle_tree,
    encode_proof,
    prove_all,
    prove_inclusion,
)
from core.schemas.errors import (
    AnchorConflictException,
    AnchorSubmissionException,
    BatchNotFoundException,
    BatchStateConflictException,
    BatchTooLargeException,
    CertAnchorException,
    DuplicateLeafException,
    EmptyBatchException,
    ErrorCodes,
    RecordConflictException,
)
from core.schemas.records import BatchRecord, BatchStatus, CertificateRecord, HashKind
from core.store import RecordStore


logger = logging.getLogger(__name__)


# Statuses from which a new submission may start
SUBMITTABLE_STATUSES = (BatchStatus.ASSEMBLED, BatchStatus.FAILED, BatchStatus.ABANDONED)
RESUBMITTABLE_STATUSES = (BatchStatus.FAILED, BatchStatus.ABANDONED)


@dataclass(frozen=True)
class BatchItem:
    """One credential to be placed in a batch."""
    certificate_id: str
    artifact_hash: str
    hash_kind: HashKind = "canonical"


@dataclass(frozen=True)
class AnchorOutcome:
    """
    Result of an anchoring submission.

    status is ANCHORED when the ledger confirmed within the timeout, and
    PENDING_ANCHOR when the submission is still in flight.
    """
    batch_id: str
    status: BatchStatus
    root: str
    tx_ref: Optional[str] = None
    attempts: int = 0

    @property
    def anchored(self) -> bool:
        return self.status == BatchStatus.ANCHORED

    @property
    def pending(self) -> bool:
        return self.status == BatchStatus.PENDING_ANCHOR


def items_from_credentials(
    pairs: Iterable[tuple[str, RawCredential]],
    *,
    max_workers: Optional[int] = None,
) -> list[BatchItem]:
    """
    Canonicalize (certificate_id, credential) pairs into batch items.

    Hashing runs in parallel; the output keeps the input order.
    """
    pairs = list(pairs)
    canonical = canonicalize_many([raw for _, raw in pairs], max_workers=max_workers)
    return [
        BatchItem(certificate_id=certificate_id, artifact_hash=c.artifact_hash)
        for (certificate_id, _), c in zip(pairs, canonical)
    ]


class BatchAnchoringService:
    """
    Issuance-side batch lifecycle.

    Usage:
        service = BatchAnchoringService(store, ledger)
        service.assemble_batch("42", items, issuer_id="inst-1")
        outcome = service.anchor_batch("42")
        if outcome.pending:
            ...  # confirmation arrives later via the completion callback
    """

    def __init__(
        self,
        store: RecordStore,
        anchorer: RootAnchorer,
        *,
        config: Optional[AnchoringConfig] = None,
        executor: Optional[concurrent.futures.Executor] = None,
    ) -> None:
        self.store = store
        self.anchorer = anchorer
        self.config = config or get_default_config().anchoring
        self._executor = executor
        self._owns_executor = executor is None

    # ------------------------------------------------------------------
    # Assembly
    # ------------------------------------------------------------------

    def assemble_batch(
        self,
        batch_id: str,
        items: Sequence[BatchItem],
        *,
        issuer_id: Optional[str] = None,
    ) -> BatchRecord:
        """
        Build the Merkle tree of a batch and persist every credential proof.

        The batch and its records are written in one store operation, so a
        conflict leaves nothing behind.

        Raises:
            EmptyBatchException: If items is empty
            BatchTooLargeException: If items exceeds max_batch_size
            DuplicateLeafException: If two items share an artifact hash
            BatchConflictException: If batch_id already exists
            RecordConflictException: If a credential already belongs to
                another batch, or its hash to another credential
        """
        items = list(items)
        if not items:
            raise EmptyBatchException(f"Batch {batch_id!r} has no credentials", batch_id=batch_id)
        if len(items) > self.config.max_batch_size:
            raise BatchTooLargeException(batch_id, len(items), self.config.max_batch_size)

        leaves = [normalize_hash(item.artifact_hash) for item in items]
        duplicates = _find_duplicates(leaves)
        if duplicates:
            raise DuplicateLeafException(
                f"Batch {batch_id!r} contains {len(duplicates)} duplicate artifact hashes",
                duplicates=duplicates,
                details={"batch_id": batch_id},
            )

        tree = build_merkle_tree(leaves)
        proofs = prove_all(tree)
        records = [
            CertificateRecord(
                certificate_id=item.certificate_id,
                artifact_hash=leaf,
                hash_kind=item.hash_kind,
                batch_id=batch_id,
                merkle_root=tree.root,
                inclusion_proof=encode_proof(proofs[leaf]),
            )
            for item, leaf in zip(items, leaves)
        ]

        batch = self.store.put_batch(
            batch_id,
            tree.leaves,
            tree.root,
            issuer_id=issuer_id,
            records=records,
        )

        logger.info(
            f"Assembled batch {batch_id}: {len(leaves)} credentials, "
            f"depth {tree.depth}, root {tree.root}"
        )
        return batch

    # ------------------------------------------------------------------
    # Anchoring
    # ------------------------------------------------------------------

    def anchor_batch(self, batch_id: str, *, timeout: Optional[float] = None) -> AnchorOutcome:
        """
        Submit the batch root to the ledger.

        Args:
            batch_id: An ASSEMBLED, FAILED or ABANDONED batch
            timeout: Seconds to wait for confirmation (default from config)

        Returns:
            AnchorOutcome; PENDING_ANCHOR if the ledger did not confirm in time

        Raises:
            BatchNotFoundException: If the batch is unknown
            AnchorConflictException: If the batch is already pending or anchored
            AnchorSubmissionException: If the ledger rejected the submission
        """
        batch = self._require_batch(batch_id)
        pending = self._enter_pending(batch, SUBMITTABLE_STATUSES)
        return self._submit(pending, timeout)

    def reanchor_batch(self, batch_id: str, *, timeout: Optional[float] = None) -> AnchorOutcome:
        """
        Re-submit a FAILED or ABANDONED batch.

        The tree is rebuilt from the stored leaves first; a batch whose
        leaves no longer reproduce its root is never re-submitted.

        Raises:
            BatchStateConflictException: If the batch is not FAILED or ABANDONED
            CertAnchorException: ROOT_MISMATCH if the stored leaves changed
        """
        batch = self._require_batch(batch_id)
        if batch.status not in RESUBMITTABLE_STATUSES:
            raise BatchStateConflictException(
                batch_id,
                actual=batch.status.value,
                expected=[s.value for s in RESUBMITTABLE_STATUSES],
                target=BatchStatus.PENDING_ANCHOR.value,
            )

        rebuilt = build_merkle_tree(batch.leaves)
        if rebuilt.root != batch.root:
            raise CertAnchorException(
                f"Stored leaves of batch {batch_id!r} do not reproduce its root",
                code=ErrorCodes.ROOT_MISMATCH,
                details={"batch_id": batch_id, "stored_root": batch.root, "rebuilt_root": rebuilt.root},
            )

        pending = self._enter_pending(batch, RESUBMITTABLE_STATUSES)
        logger.info(f"Re-anchoring batch {batch_id} (attempt {pending.anchor_attempts})")
        return self._submit(pending, timeout)

    def confirm_anchor(self, batch_id: str, tx_ref: str) -> BatchRecord:
        """
        Record an externally observed confirmation.

        Valid for pending and abandoned batches (a submission abandoned by an
        operator may still land). Idempotent for the same tx_ref.
        """
        batch = self._require_batch(batch_id)
        if batch.status in (BatchStatus.ASSEMBLED, BatchStatus.FAILED):
            raise BatchStateConflictException(
                batch_id,
                actual=batch.status.value,
                expected=[
                    BatchStatus.PENDING_ANCHOR.value,
                    BatchStatus.ABANDONED.value,
                    BatchStatus.ANCHORED.value,
                ],
                target=BatchStatus.ANCHORED.value,
            )
        return self.store.mark_anchored(batch_id, tx_ref)

    def abandon_anchor(self, batch_id: str, *, reason: str = "abandoned") -> BatchRecord:
        """Give up on a pending submission so the batch can be re-submitted."""
        self._require_batch(batch_id)
        batch = self.store.transition_batch(
            batch_id,
            [BatchStatus.PENDING_ANCHOR],
            BatchStatus.ABANDONED,
            last_error=reason,
        )
        logger.warning(f"Abandoned pending anchoring of batch {batch_id}: {reason}")
        return batch

    def regenerate_proof(self, batch_id: str, artifact_hash: str) -> InclusionProof:
        """Recompute an inclusion proof from the stored leaves of a batch."""
        batch = self._require_batch(batch_id)
        return prove_inclusion(build_merkle_tree(batch.leaves), artifact_hash)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_batch(self, batch_id: str) -> BatchRecord:
        batch = self.store.get_batch(batch_id)
        if batch is None:
            raise BatchNotFoundException(batch_id)
        return batch

    def _enter_pending(self, batch: BatchRecord, allowed: Sequence[BatchStatus]) -> BatchRecord:
        try:
            return self.store.transition_batch(
                batch.batch_id,
                allowed,
                BatchStatus.PENDING_ANCHOR,
                expected_attempts=batch.anchor_attempts,
                anchor_attempts=batch.anchor_attempts + 1,
                last_error=None,
            )
        except BatchStateConflictException as e:
            raise AnchorConflictException(
                f"Batch {batch.batch_id!r} is {e.actual}; refusing a second submission",
                batch_id=batch.batch_id,
                status=e.actual,
            ) from e

    def _get_executor(self) -> concurrent.futures.Executor:
        if self._executor is None:
            self._executor = concurrent.futures.ThreadPoolExecutor(
                max_workers=self.config.max_workers or 4,
                thread_name_prefix="anchor",
            )
        return self._executor

    def _submit(self, batch: BatchRecord, timeout: Optional[float]) -> AnchorOutcome:
        effective_timeout = self.config.submit_timeout_s if timeout is None else timeout
        attempt = batch.anchor_attempts
        logger.info(f"Submitting root {batch.root} for batch {batch.batch_id} (attempt {attempt})")

        future = self._get_executor().submit(
            self.anchorer.anchor_root, batch.root, batch_id=batch.batch_id
        )
        future.add_done_callback(partial(self._on_submission_done, batch.batch_id, attempt))

        try:
            tx_ref = future.result(timeout=effective_timeout)
        except concurrent.futures.TimeoutError:
            logger.warning(
                f"Anchoring of batch {batch.batch_id} not confirmed after "
                f"{effective_timeout}s; left pending"
            )
            return AnchorOutcome(
                batch_id=batch.batch_id,
                status=BatchStatus.PENDING_ANCHOR,
                root=batch.root,
                attempts=attempt,
            )
        except Exception as e:
            self._record_failure(batch.batch_id, attempt, e)
            raise AnchorSubmissionException(
                f"Anchoring of batch {batch.batch_id!r} failed: {e}",
                batch_id=batch.batch_id,
                error=str(e),
            ) from e

        try:
            anchored = self.store.mark_anchored(batch.batch_id, tx_ref)
        except BatchStateConflictException as e:
            raise AnchorConflictException(
                f"Batch {batch.batch_id!r} was already anchored by an earlier submission",
                batch_id=batch.batch_id,
                status=e.actual,
            ) from e
        return AnchorOutcome(
            batch_id=batch.batch_id,
            status=anchored.status,
            root=anchored.root,
            tx_ref=anchored.anchor_tx_ref,
            attempts=attempt,
        )

    def _record_failure(self, batch_id: str, attempt: int, error: BaseException) -> None:
        try:
            self.store.transition_batch(
                batch_id,
                [BatchStatus.PENDING_ANCHOR],
                BatchStatus.FAILED,
                expected_attempts=attempt,
                last_error=str(error) or type(error).__name__,
            )
            logger.error(f"Anchoring of batch {batch_id} failed (attempt {attempt}): {error}")
        except BatchStateConflictException:
            # Already recorded, abandoned, or superseded by a newer attempt
            pass

    def _on_submission_done(self, batch_id: str, attempt: int, future: concurrent.futures.Future) -> None:
        """Record the outcome of a submission, including late ones."""
        if future.cancelled():
            self._record_failure(batch_id, attempt, concurrent.futures.CancelledError("submission cancelled"))
            return
        error = future.exception()
        if error is not None:
            self._record_failure(batch_id, attempt, error)
            return
        try:
            self.store.mark_anchored(batch_id, future.result())
        except CertAnchorException as e:
            logger.error(f"Could not record confirmation of batch {batch_id}: {e.message}")

    def close(self) -> None:
        """Shut down the executor if this service created it."""
        if self._owns_executor and self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def __enter__(self) -> "BatchAnchoringService":
        return self

    def __exit__(self, *args) -> None:
        self.close()


def _find_duplicates(leaves: Sequence[str]) -> list[str]:
    seen: set[str] = set()
    duplicates: list[str] = []
    for leaf in leaves:
        if leaf in seen and leaf not in duplicates:
            duplicates.append(leaf)
        seen.add(leaf)
    return duplicates
