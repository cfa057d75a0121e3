"""
Ledger Interfaces

The ledger is an append-only registry of Merkle roots keyed by batch id.
Writing a root and reading it back are separate capabilities: issuance
needs RootAnchorer, verification needs only AnchoredRootReader.
"""

from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class RootAnchorer(Protocol):
    """Submits a batch root to the ledger."""

    def anchor_root(self, root: str, *, batch_id: str) -> str:
        """
        Anchor a Merkle root under a batch id.

        Args:
            root: 0x-prefixed bytes32 root
            batch_id: Identifier the root is registered under

        Returns:
            Transaction reference of the confirmed anchoring

        Raises:
            LedgerException: If the submission was rejected or failed
        """
        ...


@runtime_checkable
class AnchoredRootReader(Protocol):
    """Reads anchored roots back from the ledger."""

    def get_anchored_root(self, batch_id: str) -> Optional[str]:
        """
        Return the root anchored for batch_id, or None if absent.

        Raises:
            LedgerTransientException: For network-level failures worth retrying
            LedgerException: For any other ledger failure
        """
        ...
