"""
Record Store Interface

Defines the persistence contract used by anchoring and verification.
Any durable backend (SQL table, document store) can implement it; the
in-memory store in this package is the reference implementation.
"""

from typing import Any, Optional, Protocol, Sequence, runtime_checkable

from core.schemas.records import BatchRecord, BatchStatus, CertificateRecord


@runtime_checkable
class RecordStore(Protocol):
    """Protocol for certificate and batch persistence."""

    def get_certificate_record(self, certificate_id: str) -> Optional[CertificateRecord]:
        """Return the record for a certificate id, or None."""
        ...

    def find_record_by_hash(self, artifact_hash: str) -> Optional[CertificateRecord]:
        """Return the record whose artifact hash matches, or None."""
        ...

    def put_certificate_record(self, record: CertificateRecord) -> CertificateRecord:
        """
        Insert or update a certificate record.

        Raises:
            RecordConflictException: If another certificate already owns
                the same artifact hash
        """
        ...

    def put_batch(
        self,
        batch_id: str,
        leaves: Sequence[str],
        root: str,
        *,
        issuer_id: Optional[str] = None,
        records: Sequence[CertificateRecord] = (),
    ) -> BatchRecord:
        """
        Create a batch in ASSEMBLED state together with its certificate records.

        All conflict checks happen before any write, in one atomic step:
        either the batch and every record are stored, or nothing is.

        Raises:
            BatchConflictException: If the batch id already exists
            RecordConflictException: If a record already belongs to another
                batch, or its hash to another certificate, or the records
                repeat a certificate id or hash
        """
        ...

    def get_batch(self, batch_id: str) -> Optional[BatchRecord]:
        """Return the batch record, or None."""
        ...

    def transition_batch(
        self,
        batch_id: str,
        expected: Sequence[BatchStatus],
        new_status: BatchStatus,
        *,
        expected_attempts: Optional[int] = None,
        **updates: Any,
    ) -> BatchRecord:
        """
        Atomically move a batch to new_status if its current status is in
        expected, applying field updates in the same step.

        When expected_attempts is given, anchor_attempts must match it too,
        so an outcome from an older submission cannot touch a newer one.

        Raises:
            BatchNotFoundException: If the batch id is unknown
            BatchStateConflictException: If the current status (or attempt
                counter) is not the expected one
        """
        ...

    def mark_anchored(self, batch_id: str, tx_ref: str) -> BatchRecord:
        """
        Record the anchoring transaction of a batch exactly once.

        Repeating the call with the same tx_ref is a no-op; a different
        tx_ref for an anchored batch is a conflict.

        Raises:
            BatchNotFoundException: If the batch id is unknown
            BatchStateConflictException: If already anchored with another tx_ref
        """
        ...
