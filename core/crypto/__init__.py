"""
Core cryptographic utilities.

SHA-256 for artifact and content hashes, Keccak-256 for Merkle nodes.
"""
from .hashing import (
    HASH_SIZE,
    sha256,
    keccak256,
    hash_canonical,
    hash_content,
    to_hex,
    from_hex,
    normalize_hash,
    is_hash,
    hash_concat,
)

__all__ = [
    "HASH_SIZE",
    "sha256",
    "keccak256",
    "hash_canonical",
    "hash_content",
    "to_hex",
    "from_hex",
    "normalize_hash",
    "is_hash",
    "hash_concat",
]
