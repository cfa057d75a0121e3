"""
In-Memory Ledger

Implements both ledger capabilities on a dictionary. Roots are write-once
per batch id, mirroring an append-only contract. Failure injection hooks
let tests exercise transient outages and slow confirmations.
"""

import logging
import threading
import time
from typing import Callable, Optional

from core.crypto.hashing import keccak256, normalize_hash, to_hex
from core.merkle import EMPTY_TREE_ROOT
from core.schemas.errors import LedgerException, LedgerTransientException


logger = logging.getLogger(__name__)


class InMemoryLedger:
    """
    Dictionary-backed RootAnchorer and AnchoredRootReader.

    Args:
        submit_delay: Seconds anchor_root blocks before confirming
        transient_failures: Number of upcoming get_anchored_root calls that
            raise LedgerTransientException
        fail_submissions: When set, anchor_root raises LedgerException
    """

    def __init__(
        self,
        *,
        submit_delay: float = 0.0,
        transient_failures: int = 0,
        fail_submissions: bool = False,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._lock = threading.Lock()
        self._roots: dict[str, str] = {}
        self._tx_refs: dict[str, str] = {}
        self.submit_delay = submit_delay
        self.transient_failures = transient_failures
        self.fail_submissions = fail_submissions
        self.read_calls = 0
        self.submit_calls = 0
        self._sleep = sleep

    def anchor_root(self, root: str, *, batch_id: str) -> str:
        normalized = normalize_hash(root)
        with self._lock:
            self.submit_calls += 1
        if self.submit_delay:
            self._sleep(self.submit_delay)
        if self.fail_submissions:
            raise LedgerException(
                f"Anchoring rejected for batch {batch_id}",
                details={"batch_id": batch_id},
            )

        with self._lock:
            existing = self._roots.get(batch_id)
            if existing is not None:
                if existing != normalized:
                    raise LedgerException(
                        f"Batch {batch_id} already anchored with a different root",
                        details={"batch_id": batch_id, "anchored_root": existing},
                    )
                return self._tx_refs[batch_id]

            tx_ref = to_hex(keccak256(f"{batch_id}:{normalized}".encode("utf-8")))
            self._roots[batch_id] = normalized
            self._tx_refs[batch_id] = tx_ref
        logger.debug(f"Anchored root {normalized} for batch {batch_id}")
        return tx_ref

    def get_anchored_root(self, batch_id: str) -> Optional[str]:
        with self._lock:
            self.read_calls += 1
            if self.transient_failures > 0:
                self.transient_failures -= 1
                raise LedgerTransientException(
                    "Simulated ledger outage",
                    details={"batch_id": batch_id},
                )
            root = self._roots.get(batch_id)
        if root is None or root == EMPTY_TREE_ROOT:
            return None
        return root

    def set_root(self, batch_id: str, root: str) -> None:
        """Force a root, bypassing write-once. Test helper for divergence."""
        with self._lock:
            self._roots[batch_id] = normalize_hash(root)

    def tx_ref_for(self, batch_id: str) -> Optional[str]:
        with self._lock:
            return self._tx_refs.get(batch_id)
