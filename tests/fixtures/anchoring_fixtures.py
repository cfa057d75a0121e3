"""
Anchoring test fixtures.

Helpers that wire an in-memory record store and ledger into the anchoring
service and verification engine, and produce fully anchored batches.
"""

from typing import Any, Optional

from core.config import AnchoringConfig
from core.ledger import InMemoryLedger, RetryPolicy
from core.store import InMemoryRecordStore
from orchestrator.anchoring import BatchAnchoringService, items_from_credentials
from orchestrator.verification import VerificationEngine

from .common import make_credential_batch


def make_retry_policy(max_retries: int = 2) -> RetryPolicy:
    """A retry policy that never sleeps long and has no per-attempt timeout."""
    return RetryPolicy(
        max_retries=max_retries,
        initial_delay=0.0,
        backoff_factor=1.0,
        max_delay=0.0,
        attempt_timeout=None,
    )


def make_service(
    store: Optional[InMemoryRecordStore] = None,
    ledger: Optional[InMemoryLedger] = None,
    **config: Any,
) -> BatchAnchoringService:
    """Anchoring service over in-memory collaborators."""
    return BatchAnchoringService(
        store if store is not None else InMemoryRecordStore(),
        ledger if ledger is not None else InMemoryLedger(),
        config=AnchoringConfig(**config),
    )


def make_engine(
    store: InMemoryRecordStore,
    ledger: InMemoryLedger,
    max_retries: int = 2,
) -> VerificationEngine:
    """Verification engine with a fast retry policy."""
    return VerificationEngine(store, ledger, retry_policy=make_retry_policy(max_retries))


def make_anchored_batch(
    count: int = 5,
    batch_id: str = "1001",
    anchor: bool = True,
) -> tuple[InMemoryRecordStore, InMemoryLedger, list[dict[str, Any]]]:
    """
    Issue count credentials into one batch and (optionally) anchor it.

    Returns:
        (store, ledger, credentials)
    """
    store = InMemoryRecordStore()
    ledger = InMemoryLedger()
    credentials = make_credential_batch(count)
    items = items_from_credentials((c["certificateId"], c) for c in credentials)

    with make_service(store, ledger) as service:
        service.assemble_batch(batch_id, items, issuer_id="inst-042")
        if anchor:
            service.anchor_batch(batch_id, timeout=5.0)

    return store, ledger, credentials
