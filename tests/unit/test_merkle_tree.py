"""
Merkle Tree Unit Tests
Tests for core/merkle/merkle_tree.py

Required behavior:
1. Empty tree - defined zero sentinel, never an exception
2. Single leaf - root equals leaf, empty proof
3. Odd node promotion - trailing node carried up unchanged
4. Round-trip soundness - every leaf's proof verifies
5. Tamper sensitivity - any flipped bit in a sibling or the root fails
6. Positional sensitivity - reordering leaves changes the root
7. De-duplication - first occurrence kept, drops recorded
"""
import pytest

from core.crypto.hashing import from_hex, keccak256, to_hex
from core.merkle.merkle_tree import (
    EMPTY_TREE_ROOT,
    MerkleTree,
    ProofSide,
    ProofStep,
    merkle_parent,
    build_merkle_tree,
    build_merkle_root,
    prove_inclusion,
    prove_all,
    verify_inclusion,
    compute_tree_depth,
)
from core.schemas.errors import LeafNotFoundException

from fixtures import make_leaf, make_leaves


def _flip_bit(hex_hash: str, bit: int) -> str:
    raw = bytearray(from_hex(hex_hash))
    raw[bit // 8] ^= 1 << (bit % 8)
    return to_hex(bytes(raw))


class TestMerkleParent:
    """Tests for merkle_parent()."""

    def test_packed_keccak(self):
        a, b = make_leaf("a"), make_leaf("b")
        assert merkle_parent(a, b) == to_hex(keccak256(from_hex(a) + from_hex(b)))

    def test_not_commutative(self):
        a, b = make_leaf("a"), make_leaf("b")
        assert merkle_parent(a, b) != merkle_parent(b, a)

    def test_missing_operand_promotes(self):
        a = make_leaf("a")
        assert merkle_parent(a, None) == a
        assert merkle_parent(None, a) == a

    def test_both_missing_raises(self):
        with pytest.raises(ValueError):
            merkle_parent(None, None)

    def test_case_insensitive_inputs(self):
        a, b = make_leaf("a"), make_leaf("b")
        assert merkle_parent(a.upper().replace("0X", "0x"), b[2:]) == merkle_parent(a, b)


class TestEmptyTree:
    """Tests for empty tree behavior."""

    def test_empty_root_is_zero_sentinel(self):
        tree = build_merkle_tree([])

        assert tree.root == EMPTY_TREE_ROOT == "0x" + "00" * 32
        assert tree.is_empty
        assert tree.depth == 0

    def test_prove_on_empty_tree_raises_not_found(self):
        with pytest.raises(LeafNotFoundException):
            prove_inclusion(build_merkle_tree([]), make_leaf("x"))


class TestSingleLeaf:
    """Tests for single leaf tree behavior."""

    def test_root_equals_leaf(self):
        leaf = make_leaf("only")
        assert build_merkle_root([leaf]) == leaf

    def test_proof_is_empty_and_verifies(self):
        leaf = make_leaf("only")
        tree = build_merkle_tree([leaf])
        proof = prove_inclusion(tree, leaf)

        assert proof == ()
        assert verify_inclusion(leaf, proof, tree.root)


class TestThreeLeaves:
    """Leaves [h1, h2, h3]: h3 is promoted past the first level."""

    def test_layers(self):
        h1, h2, h3 = make_leaves(3)
        tree = build_merkle_tree([h1, h2, h3])

        assert tree.layers[0] == (h1, h2, h3)
        assert tree.layers[1] == (merkle_parent(h1, h2), h3)
        assert tree.root == merkle_parent(merkle_parent(h1, h2), h3)
        assert tree.depth == 2

    def test_proof_for_promoted_leaf(self):
        h1, h2, h3 = make_leaves(3)
        tree = build_merkle_tree([h1, h2, h3])
        proof = prove_inclusion(tree, h3)

        assert proof == (ProofStep(sibling=merkle_parent(h1, h2), side=ProofSide.LEFT),)
        assert verify_inclusion(h3, proof, tree.root)

    def test_proof_for_first_leaf(self):
        h1, h2, h3 = make_leaves(3)
        tree = build_merkle_tree([h1, h2, h3])
        proof = prove_inclusion(tree, h1)

        assert proof == (
            ProofStep(sibling=h2, side=ProofSide.RIGHT),
            ProofStep(sibling=h3, side=ProofSide.RIGHT),
        )


class TestRoundTrip:
    """Every leaf of every tree size verifies against its root."""

    @pytest.mark.parametrize("count", [1, 2, 3, 4, 5, 7, 8, 9, 16, 33])
    def test_all_leaves_verify(self, count):
        leaves = make_leaves(count)
        tree = build_merkle_tree(leaves)

        for leaf, proof in prove_all(tree).items():
            assert verify_inclusion(leaf, proof, tree.root), f"leaf {leaf} failed for n={count}"

    @pytest.mark.parametrize("count", [1, 2, 3, 5, 8, 13])
    def test_depth_matches_helper(self, count):
        tree = build_merkle_tree(make_leaves(count))
        assert tree.depth == compute_tree_depth(count)

    def test_proof_length_bounded_by_depth(self):
        tree = build_merkle_tree(make_leaves(11))
        for proof in prove_all(tree).values():
            assert len(proof) <= tree.depth

    def test_wrong_leaf_fails(self):
        leaves = make_leaves(4)
        tree = build_merkle_tree(leaves)
        proof = prove_inclusion(tree, leaves[0])

        assert not verify_inclusion(leaves[1], proof, tree.root)


class TestTamperSensitivity:
    """Single-bit mutations of siblings or root invalidate the proof."""

    def test_flipped_sibling_bits(self):
        leaves = make_leaves(6)
        tree = build_merkle_tree(leaves)
        leaf = leaves[2]
        proof = prove_inclusion(tree, leaf)

        for step_index in range(len(proof)):
            for bit in (0, 7, 100, 255):
                tampered = list(proof)
                step = tampered[step_index]
                tampered[step_index] = ProofStep(_flip_bit(step.sibling, bit), step.side)
                assert not verify_inclusion(leaf, tampered, tree.root)

    def test_flipped_root_bits(self):
        leaves = make_leaves(6)
        tree = build_merkle_tree(leaves)
        proof = prove_inclusion(tree, leaves[4])

        for bit in (0, 31, 128, 255):
            assert not verify_inclusion(leaves[4], proof, _flip_bit(tree.root, bit))

    def test_swapped_side(self):
        leaves = make_leaves(4)
        tree = build_merkle_tree(leaves)
        proof = list(prove_inclusion(tree, leaves[0]))
        proof[0] = ProofStep(proof[0].sibling, ProofSide.LEFT)

        assert not verify_inclusion(leaves[0], proof, tree.root)

    def test_dropped_step(self):
        leaves = make_leaves(4)
        tree = build_merkle_tree(leaves)
        proof = prove_inclusion(tree, leaves[0])

        assert not verify_inclusion(leaves[0], proof[:-1], tree.root)


class TestVerifyNeverRaises:
    """verify_inclusion returns False on malformed input."""

    @pytest.mark.parametrize("leaf", ["0x1234", "not hex", None, 42])
    def test_malformed_leaf(self, leaf):
        tree = build_merkle_tree(make_leaves(2))
        assert verify_inclusion(leaf, (), tree.root) is False

    def test_malformed_sibling(self):
        leaves = make_leaves(2)
        tree = build_merkle_tree(leaves)
        assert verify_inclusion(leaves[0], [ProofStep("0xzz", ProofSide.RIGHT)], tree.root) is False

    def test_missing_sibling(self):
        leaves = make_leaves(2)
        tree = build_merkle_tree(leaves)
        assert verify_inclusion(leaves[0], [ProofStep(None, ProofSide.RIGHT)], tree.root) is False

    def test_unknown_side(self):
        leaves = make_leaves(2)
        tree = build_merkle_tree(leaves)
        assert verify_inclusion(leaves[0], [ProofStep(leaves[1], "up")], tree.root) is False

    def test_malformed_root(self):
        leaves = make_leaves(2)
        assert verify_inclusion(leaves[0], (), "0x") is False

    def test_root_spelling_irrelevant(self):
        leaves = make_leaves(3)
        tree = build_merkle_tree(leaves)
        proof = prove_inclusion(tree, leaves[1])

        assert verify_inclusion(leaves[1], proof, tree.root[2:].upper())


class TestPositionalSensitivity:
    """Pairing is positional, not sorted."""

    def test_reordering_changes_root(self):
        leaves = make_leaves(4)
        assert build_merkle_root(leaves) != build_merkle_root(list(reversed(leaves)))

    def test_two_leaves_swapped(self):
        a, b = make_leaves(2)
        assert build_merkle_root([a, b]) != build_merkle_root([b, a])

    def test_deterministic(self):
        leaves = make_leaves(9)
        assert build_merkle_tree(leaves) == build_merkle_tree(list(leaves))


class TestDeduplication:
    """Duplicate leaves collapse to the first occurrence and are reported."""

    def test_duplicates_dropped_and_recorded(self):
        a, b, c = make_leaves(3)
        tree = build_merkle_tree([a, b, a, c])

        assert tree.leaves == (a, b, c)
        assert tree.dropped_duplicates == (a,)
        assert tree.root == build_merkle_root([a, b, c])

    def test_spelling_variants_are_duplicates(self):
        a = make_leaf("a")
        tree = build_merkle_tree([a, a[2:].upper()])

        assert tree.leaves == (a,)
        assert len(tree.dropped_duplicates) == 1

    def test_no_duplicates_nothing_dropped(self):
        tree = build_merkle_tree(make_leaves(3))
        assert tree.dropped_duplicates == ()

    def test_invalid_leaf_raises(self):
        with pytest.raises(ValueError):
            build_merkle_tree(["0x1234"])


class TestProveInclusion:
    """Lookup behavior of prove_inclusion()."""

    def test_unknown_leaf_raises(self):
        tree = build_merkle_tree(make_leaves(3))
        with pytest.raises(LeafNotFoundException) as exc_info:
            prove_inclusion(tree, make_leaf("stranger"))
        assert exc_info.value.code == "LEAF_NOT_FOUND"

    def test_malformed_leaf_raises_not_found(self):
        tree = build_merkle_tree(make_leaves(3))
        with pytest.raises(LeafNotFoundException):
            prove_inclusion(tree, "garbage")

    def test_index_of(self):
        leaves = make_leaves(3)
        tree = build_merkle_tree(leaves)

        assert tree.index_of(leaves[2]) == 2
        assert tree.index_of(make_leaf("stranger")) is None

    def test_tree_is_immutable(self):
        tree = build_merkle_tree(make_leaves(2))
        with pytest.raises(AttributeError):
            tree.layers = ()
        assert isinstance(tree, MerkleTree)


class TestComputeTreeDepth:
    """Tests for compute_tree_depth()."""

    @pytest.mark.parametrize("n,depth", [(0, 0), (1, 0), (2, 1), (3, 2), (4, 2), (5, 3), (8, 3), (9, 4)])
    def test_values(self, n, depth):
        assert compute_tree_depth(n) == depth
