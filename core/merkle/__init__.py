"""
Merkle Tree and Inclusion Proofs
Batch tree construction + proof generation/verification compatible with an
on-chain Solidity verifier.

This module provides:
- build_merkle_tree / build_merkle_root: Tree over a batch of artifact hashes
- prove_inclusion / prove_all: Sibling paths with explicit sides
- verify_inclusion: Stateless recomputation of the root from (leaf, proof)
- encode_proof / decode_proof: Persisted wire form of a proof

Canonical Commitment Rules:
1. Parent hashing: keccak256(bytes32(left) || bytes32(right))
2. Odd node promoted unchanged (no self-pairing)
3. Leaves de-duplicated, first occurrence keeps its position
4. Empty tree: bytes32 zero
5. Single leaf: root = leaf

Usage:
    from core.merkle import build_merkle_tree, prove_inclusion, verify_inclusion

    tree = build_merkle_tree(artifact_hashes)
    proof = prove_inclusion(tree, artifact_hashes[2])
    assert verify_inclusion(artifact_hashes[2], proof, tree.root)
"""
from .merkle_tree import (
    EMPTY_TREE_ROOT,
    InclusionProof,
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

from .merkle_proofs import (
    encode_proof,
    decode_proof,
)


__all__ = [
    # Core types
    "EMPTY_TREE_ROOT",
    "InclusionProof",
    "MerkleTree",
    "ProofSide",
    "ProofStep",
    # Core functions
    "merkle_parent",
    "build_merkle_tree",
    "build_merkle_root",
    "prove_inclusion",
    "prove_all",
    "verify_inclusion",
    "compute_tree_depth",
    # Wire format
    "encode_proof",
    "decode_proof",
]
