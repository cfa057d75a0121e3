"""
Hashing Utilities
Digest primitives and hex helpers shared by canonicalization and Merkle commitments.

This module provides:
- SHA-256 hashing for raw bytes (artifact hashes, file content hashes)
- Keccak-256 hashing (Ethereum flavour, NOT NIST SHA3-256) for tree nodes
- Canonical hashing for objects (via dumps_canonical)
- Hex encoding/decoding with 0x prefix and bytes32 normalization

Representation Rules:
- Every 32-byte hash crossing a module boundary is a 0x-prefixed lowercase
  hex string of 64 digits, i.e. the bytes32 form a Solidity verifier sees.
- normalize_hash() is the single place where foreign spellings (missing
  prefix, upper case) are brought into that form.
"""
from __future__ import annotations

import hashlib
from typing import Any, BinaryIO, Union

from Crypto.Hash import keccak

from core.schemas.canonical import dumps_canonical


HASH_SIZE = 32

_CHUNK_SIZE = 1024 * 1024


def sha256(data: bytes) -> bytes:
    """
    Compute SHA-256 hash of raw bytes.

    Args:
        data: Raw bytes to hash

    Returns:
        32-byte SHA-256 digest

    Example:
        >>> sha256(b"hello").hex()
        '2cf24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824'
    """
    return hashlib.sha256(data).digest()


def keccak256(data: bytes) -> bytes:
    """
    Compute the Ethereum Keccak-256 digest of raw bytes.

    This is the original Keccak padding used by the EVM `keccak256` opcode,
    which differs from hashlib.sha3_256.

    Example:
        >>> keccak256(b"").hex()
        'c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470'
    """
    return keccak.new(digest_bits=256, data=data).digest()


def hash_canonical(obj: Any) -> bytes:
    """
    Hash an object using canonical JSON serialization.

    Rule: digest = sha256(dumps_canonical(obj).encode("utf-8"))

    Args:
        obj: Any object that can be canonically serialized
             (Pydantic model, dict, list, primitives)

    Returns:
        32-byte SHA-256 digest of the canonical JSON

    Raises:
        CanonicalizationException: If object cannot be canonically serialized
    """
    canonical_json = dumps_canonical(obj)
    return sha256(canonical_json.encode("utf-8"))


def hash_content(data: Union[bytes, bytearray, BinaryIO]) -> str:
    """
    Direct SHA-256 content hash of an uploaded artifact.

    Accepts raw bytes or a readable binary stream (read in chunks).
    This is deliberately NOT the canonical-payload hash: a file is hashed
    exactly as received.

    Returns:
        0x-prefixed hex digest
    """
    if isinstance(data, (bytes, bytearray)):
        return to_hex(sha256(bytes(data)))

    digest = hashlib.sha256()
    while True:
        chunk = data.read(_CHUNK_SIZE)
        if not chunk:
            break
        digest.update(chunk)
    return to_hex(digest.digest())


def to_hex(data: bytes) -> str:
    """
    Convert bytes to hexadecimal string with 0x prefix.

    Example:
        >>> to_hex(bytes.fromhex("deadbeef"))
        '0xdeadbeef'
    """
    return "0x" + data.hex()


def from_hex(hex_string: str) -> bytes:
    """
    Convert hexadecimal string (with 0x prefix) to bytes.

    Raises:
        ValueError: If string doesn't start with 0x, has odd length,
                   or contains invalid hex characters

    Example:
        >>> from_hex("0xdeadbeef").hex()
        'deadbeef'
    """
    if not hex_string.startswith("0x"):
        raise ValueError(
            f"Hex string must start with '0x' prefix, got: {hex_string[:10]}..."
        )

    hex_content = hex_string[2:]

    if len(hex_content) % 2 != 0:
        raise ValueError(
            f"Hex string must have even length after 0x prefix, "
            f"got length {len(hex_content)}"
        )

    try:
        return bytes.fromhex(hex_content)
    except ValueError as e:
        raise ValueError(f"Invalid hex characters in string: {e}") from e


def normalize_hash(value: Union[str, bytes]) -> str:
    """
    Bring a 32-byte hash into canonical 0x-prefixed lowercase form.

    Accepts raw 32-byte values and hex strings with or without the 0x
    prefix, in any case.

    Raises:
        ValueError: If the value is not exactly 32 bytes of valid hex
    """
    if isinstance(value, (bytes, bytearray)):
        if len(value) != HASH_SIZE:
            raise ValueError(f"Hash must be {HASH_SIZE} bytes, got {len(value)}")
        return to_hex(bytes(value))

    if not isinstance(value, str):
        raise ValueError(f"Hash must be str or bytes, got {type(value).__name__}")

    text = value.strip()
    if text[:2] in ("0x", "0X"):
        text = text[2:]

    raw = from_hex("0x" + text)
    if len(raw) != HASH_SIZE:
        raise ValueError(f"Hash must be {HASH_SIZE} bytes, got {len(raw)}")
    return to_hex(raw)


def is_hash(value: Any) -> bool:
    """Check whether a value normalizes to a 32-byte hash."""
    try:
        normalize_hash(value)
    except ValueError:
        return False
    return True


def hash_concat(left: bytes, right: bytes) -> bytes:
    """
    Keccak-256 of two packed bytes32 values.

    Equivalent to Solidity `keccak256(abi.encodePacked(left, right))` for
    bytes32 arguments. This byte layout is the on-chain contract.
    """
    if len(left) != HASH_SIZE or len(right) != HASH_SIZE:
        raise ValueError(
            f"Packed operands must be {HASH_SIZE} bytes, "
            f"got {len(left)} and {len(right)}"
        )
    return keccak256(left + right)


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
