"""
In-Memory Record Store

Thread-safe RecordStore used by tests and single-process deployments.
All mutations happen under one re-entrant lock, which makes
transition_batch a true compare-and-set. Records are copied on the way in
and on the way out so callers never share mutable state with the store.
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

from core.crypto.hashing import normalize_hash
from core.schemas.errors import (
    BatchConflictException,
    BatchNotFoundException,
    BatchStateConflictException,
    RecordConflictException,
)
from core.schemas.records import BatchRecord, BatchStatus, CertificateRecord


logger = logging.getLogger(__name__)


class InMemoryRecordStore:
    """Dictionary-backed implementation of RecordStore."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._records: dict[str, CertificateRecord] = {}
        self._by_hash: dict[str, str] = {}
        self._batches: dict[str, BatchRecord] = {}

    # ------------------------------------------------------------------
    # Certificate records
    # ------------------------------------------------------------------

    def get_certificate_record(self, certificate_id: str) -> Optional[CertificateRecord]:
        with self._lock:
            record = self._records.get(certificate_id)
            return record.model_copy(deep=True) if record else None

    def find_record_by_hash(self, artifact_hash: str) -> Optional[CertificateRecord]:
        try:
            key = normalize_hash(artifact_hash)
        except ValueError:
            return None
        with self._lock:
            certificate_id = self._by_hash.get(key)
            if certificate_id is None:
                return None
            return self._records[certificate_id].model_copy(deep=True)

    def put_certificate_record(self, record: CertificateRecord) -> CertificateRecord:
        key = normalize_hash(record.artifact_hash)
        stored = record.model_copy(update={"artifact_hash": key}, deep=True)
        with self._lock:
            owner = self._by_hash.get(key)
            if owner is not None and owner != stored.certificate_id:
                raise RecordConflictException(stored.certificate_id)

            previous = self._records.get(stored.certificate_id)
            if previous is not None and previous.artifact_hash != key:
                self._by_hash.pop(previous.artifact_hash, None)

            self._records[stored.certificate_id] = stored
            self._by_hash[key] = stored.certificate_id
        return stored.model_copy(deep=True)

    # ------------------------------------------------------------------
    # Batches
    # ------------------------------------------------------------------

    def put_batch(
        self,
        batch_id: str,
        leaves: Sequence[str],
        root: str,
        *,
        issuer_id: Optional[str] = None,
        records: Sequence[CertificateRecord] = (),
    ) -> BatchRecord:
        batch = BatchRecord(
            batch_id=batch_id,
            issuer_id=issuer_id,
            leaves=[normalize_hash(leaf) for leaf in leaves],
            root=normalize_hash(root),
        )
        staged = [
            r.model_copy(update={"artifact_hash": normalize_hash(r.artifact_hash)}, deep=True)
            for r in records
        ]
        with self._lock:
            if batch_id in self._batches:
                raise BatchConflictException(batch_id)
            # Validate everything before the first write
            seen: set[str] = set()
            seen_hashes: set[str] = set()
            for record in staged:
                certificate_id = record.certificate_id
                existing = self._records.get(certificate_id)
                owner = self._by_hash.get(record.artifact_hash, certificate_id)
                if (
                    certificate_id in seen
                    or record.artifact_hash in seen_hashes
                    or owner != certificate_id
                    or (existing is not None and existing.batch_id not in (None, batch_id))
                ):
                    raise RecordConflictException(certificate_id)
                seen.add(certificate_id)
                seen_hashes.add(record.artifact_hash)

            self._batches[batch_id] = batch
            for record in staged:
                previous = self._records.get(record.certificate_id)
                if previous is not None and previous.artifact_hash != record.artifact_hash:
                    self._by_hash.pop(previous.artifact_hash, None)
                self._records[record.certificate_id] = record
                self._by_hash[record.artifact_hash] = record.certificate_id
        logger.debug(f"Stored batch {batch_id} with {batch.leaf_count} leaves and {len(staged)} records")
        return batch.model_copy(deep=True)

    def get_batch(self, batch_id: str) -> Optional[BatchRecord]:
        with self._lock:
            batch = self._batches.get(batch_id)
            return batch.model_copy(deep=True) if batch else None

    def _require_batch(self, batch_id: str) -> BatchRecord:
        batch = self._batches.get(batch_id)
        if batch is None:
            raise BatchNotFoundException(batch_id)
        return batch

    def transition_batch(
        self,
        batch_id: str,
        expected: Sequence[BatchStatus],
        new_status: BatchStatus,
        *,
        expected_attempts: Optional[int] = None,
        **updates: Any,
    ) -> BatchRecord:
        expected_statuses = [BatchStatus(s) for s in expected]
        target = BatchStatus(new_status)
        with self._lock:
            batch = self._require_batch(batch_id)
            stale = expected_attempts is not None and batch.anchor_attempts != expected_attempts
            if batch.status not in expected_statuses or stale:
                raise BatchStateConflictException(
                    batch_id,
                    actual=batch.status.value,
                    expected=[s.value for s in expected_statuses],
                    target=target.value,
                )
            updated = batch.model_copy(update={**updates, "status": target}, deep=True)
            self._batches[batch_id] = updated
        logger.debug(f"Batch {batch_id}: {batch.status.value} -> {target.value}")
        return updated.model_copy(deep=True)

    def mark_anchored(self, batch_id: str, tx_ref: str) -> BatchRecord:
        with self._lock:
            batch = self._require_batch(batch_id)
            if batch.status == BatchStatus.ANCHORED:
                if batch.anchor_tx_ref == tx_ref:
                    return batch.model_copy(deep=True)
                raise BatchStateConflictException(
                    batch_id,
                    actual=batch.status.value,
                    expected=[
                        BatchStatus.ASSEMBLED.value,
                        BatchStatus.PENDING_ANCHOR.value,
                        BatchStatus.FAILED.value,
                        BatchStatus.ABANDONED.value,
                    ],
                    target=BatchStatus.ANCHORED.value,
                )
            updated = batch.model_copy(
                update={
                    "status": BatchStatus.ANCHORED,
                    "anchor_tx_ref": tx_ref,
                    "anchored_at": datetime.now(timezone.utc),
                    "last_error": None,
                },
                deep=True,
            )
            self._batches[batch_id] = updated
        logger.info(f"Batch {batch_id} anchored (tx={tx_ref})")
        return updated.model_copy(deep=True)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def list_batches(self) -> list[BatchRecord]:
        """All batches in insertion order."""
        with self._lock:
            return [b.model_copy(deep=True) for b in self._batches.values()]

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
