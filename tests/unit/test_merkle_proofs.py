"""
Merkle Proof Wire Format Tests
Tests for core/merkle/merkle_proofs.py
"""
import json

import pytest

from core.merkle import (
    ProofSide,
    ProofStep,
    build_merkle_tree,
    decode_proof,
    encode_proof,
    prove_inclusion,
    verify_inclusion,
)
from core.schemas.errors import ProofFormatException

from fixtures import make_leaf, make_leaves


class TestEncodeProof:
    """Tests for encode_proof()."""

    def test_wire_shape(self):
        h1, h2, h3 = make_leaves(3)
        proof = prove_inclusion(build_merkle_tree([h1, h2, h3]), h1)

        assert encode_proof(proof)[0] == {"position": "right", "data": h2}

    def test_json_serializable(self):
        leaves = make_leaves(5)
        proof = prove_inclusion(build_merkle_tree(leaves), leaves[3])

        assert json.loads(json.dumps(encode_proof(proof))) == encode_proof(proof)

    def test_empty(self):
        assert encode_proof(()) == []


class TestDecodeProof:
    """Tests for decode_proof()."""

    def test_decoded_proof_verifies(self):
        leaves = make_leaves(7)
        tree = build_merkle_tree(leaves)
        wire = encode_proof(prove_inclusion(tree, leaves[5]))

        assert verify_inclusion(leaves[5], decode_proof(wire), tree.root)

    def test_side_and_sibling_keys(self):
        sibling = make_leaf("s")
        proof = decode_proof([{"side": "left", "sibling": sibling.upper().replace("0X", "0x")}])

        assert proof == (ProofStep(sibling=sibling, side=ProofSide.LEFT),)

    def test_proof_steps_pass_through(self):
        step = ProofStep(make_leaf("s"), ProofSide.RIGHT)
        assert decode_proof([step]) == (step,)

    @pytest.mark.parametrize("raw", [None, "[]", b"[]", {"position": "left"}])
    def test_rejects_non_list(self, raw):
        with pytest.raises(ProofFormatException):
            decode_proof(raw)

    def test_rejects_unknown_side(self):
        with pytest.raises(ProofFormatException) as exc_info:
            decode_proof([{"position": "middle", "data": make_leaf("s")}])
        assert exc_info.value.details["step_index"] == 0

    def test_rejects_missing_side(self):
        with pytest.raises(ProofFormatException):
            decode_proof([{"data": make_leaf("s")}])

    def test_rejects_bad_hash(self):
        with pytest.raises(ProofFormatException) as exc_info:
            decode_proof([
                {"position": "left", "data": make_leaf("ok")},
                {"position": "right", "data": "0x1234"},
            ])
        assert exc_info.value.details["step_index"] == 1

    def test_rejects_non_mapping_entry(self):
        with pytest.raises(ProofFormatException):
            decode_proof(["left"])
