"""
Hashing Unit Tests
Tests for core/crypto/hashing.py

Tests:
- sha256 / keccak256 known values
- hash normalization across spellings
- content hashing of bytes and streams
- packed pair hashing used for Merkle parents
"""
import hashlib
import io

import pytest

from core.crypto.hashing import (
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


# keccak256 of the empty string (Ethereum's well-known empty hash)
KECCAK_EMPTY = "c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"


class TestSha256:
    """Tests for sha256() function."""

    def test_sha256_known_value(self):
        """sha256 matches hashlib."""
        assert sha256(b"hello") == hashlib.sha256(b"hello").digest()
        assert len(sha256(b"hello")) == HASH_SIZE

    def test_sha256_deterministic(self):
        data = b"test data for hashing"
        assert sha256(data) == sha256(data)


class TestKeccak256:
    """Tests for keccak256() - the Ethereum variant, not SHA3-256."""

    def test_empty_input_known_value(self):
        assert keccak256(b"").hex() == KECCAK_EMPTY

    def test_differs_from_sha3_256(self):
        """Legacy Keccak padding differs from the NIST SHA3 standard."""
        assert keccak256(b"abc") != hashlib.sha3_256(b"abc").digest()

    def test_function_selector(self):
        """First 4 bytes of keccak256 of a signature are the ABI selector."""
        assert keccak256(b"transfer(address,uint256)")[:4].hex() == "a9059cbb"


class TestHexConversion:
    """Tests for to_hex/from_hex."""

    def test_to_hex_adds_prefix(self):
        assert to_hex(bytes.fromhex("deadbeef")) == "0xdeadbeef"

    def test_from_hex_requires_prefix(self):
        with pytest.raises(ValueError, match="0x"):
            from_hex("deadbeef")

    def test_from_hex_odd_length(self):
        with pytest.raises(ValueError, match="even length"):
            from_hex("0xabc")

    def test_from_hex_invalid_chars(self):
        with pytest.raises(ValueError):
            from_hex("0xzz")


class TestNormalizeHash:
    """Tests for normalize_hash()."""

    def test_accepts_any_case_and_prefix(self):
        raw = sha256(b"x")
        lower = raw.hex()
        expected = "0x" + lower

        assert normalize_hash(lower) == expected
        assert normalize_hash(lower.upper()) == expected
        assert normalize_hash("0X" + lower.upper()) == expected
        assert normalize_hash("  0x" + lower + "\n") == expected
        assert normalize_hash(raw) == expected

    def test_rejects_wrong_length(self):
        with pytest.raises(ValueError, match="32 bytes"):
            normalize_hash("0x" + "ab" * 31)
        with pytest.raises(ValueError, match="32 bytes"):
            normalize_hash(b"\x00" * 33)

    def test_rejects_non_hex(self):
        with pytest.raises(ValueError):
            normalize_hash("0x" + "zz" * 32)

    def test_rejects_other_types(self):
        with pytest.raises(ValueError):
            normalize_hash(12345)

    def test_is_hash(self):
        assert is_hash("0x" + "00" * 32)
        assert not is_hash("0x1234")
        assert not is_hash(None)


class TestHashContent:
    """Tests for hash_content() - direct file hashing."""

    def test_bytes_matches_sha256(self):
        data = b"%PDF-1.7 certificate"
        assert hash_content(data) == "0x" + hashlib.sha256(data).hexdigest()

    def test_stream_matches_bytes(self):
        data = bytes(range(256)) * 1000
        assert hash_content(io.BytesIO(data)) == hash_content(data)

    def test_empty_stream(self):
        assert hash_content(io.BytesIO(b"")) == "0x" + hashlib.sha256(b"").hexdigest()


class TestHashCanonical:
    """Tests for hash_canonical()."""

    def test_key_order_does_not_matter(self):
        assert hash_canonical({"a": 1, "b": 2}) == hash_canonical({"b": 2, "a": 1})

    def test_values_matter(self):
        assert hash_canonical({"a": 1}) != hash_canonical({"a": 2})


class TestHashConcat:
    """Tests for hash_concat() - packed bytes32 pair."""

    def test_matches_keccak_of_concatenation(self):
        left, right = sha256(b"L"), sha256(b"R")
        assert hash_concat(left, right) == keccak256(left + right)

    def test_order_matters(self):
        left, right = sha256(b"L"), sha256(b"R")
        assert hash_concat(left, right) != hash_concat(right, left)

    def test_rejects_short_operands(self):
        with pytest.raises(ValueError, match="32 bytes"):
            hash_concat(b"short", sha256(b"R"))
