"""
Issuance and Verification Orchestration

Composes the pure commitment layer (canonicalization, Merkle trees) with
the record store and the ledger.

Public API:
- BatchAnchoringService: Assemble batches, anchor roots, recover failures
- BatchItem / AnchorOutcome: Inputs and results of anchoring
- VerificationEngine: Verdict for a credential, file or hash
- ProofPackage: Portable proof handed to credential holders
"""

from orchestrator.anchoring import (
    AnchorOutcome,
    BatchAnchoringService,
    BatchItem,
    items_from_credentials,
)
from orchestrator.verification import VerificationEngine
from orchestrator.proof_package import (
    IssuerInfo,
    ProofPackage,
    build_proof_package,
    dumps_proof_package,
    loads_proof_package,
    verify_proof_package,
)


__all__ = [
    # Anchoring
    "AnchorOutcome",
    "BatchAnchoringService",
    "BatchItem",
    "items_from_credentials",
    # Verification
    "VerificationEngine",
    # Proof packages
    "IssuerInfo",
    "ProofPackage",
    "build_proof_package",
    "dumps_proof_package",
    "loads_proof_package",
    "verify_proof_package",
]
