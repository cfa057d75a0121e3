"""
Credential canonicalization.

Usage:
    from core.credentials import canonicalize_credential

    result = canonicalize_credential({"certificateId": "CERT-1", "learner": {"_id": "L-9"}})
    result.canonical_string   # '{"certificateId":"CERT-1",...}'
    result.artifact_hash      # '0x...' (SHA-256, the Merkle leaf)
"""
from .canonicalizer import (
    CanonicalCredential,
    RawCredential,
    build_canonical_payload,
    canonicalize_credential,
    compute_artifact_hash,
    canonicalize_many,
)

__all__ = [
    "CanonicalCredential",
    "RawCredential",
    "build_canonical_payload",
    "canonicalize_credential",
    "compute_artifact_hash",
    "canonicalize_many",
]
