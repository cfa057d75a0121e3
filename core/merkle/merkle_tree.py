"""
Merkle Tree Implementation
Batch tree construction, inclusion proof generation, and proof verification.

Canonical Commitment Rules (Hard Contracts):
1. Leaves are artifact hashes (0x-prefixed bytes32), de-duplicated with set
   semantics before layer 0 is formed; first occurrence wins the position.
2. Parent hashing: parent = keccak256(bytes32(left) || bytes32(right)),
   identical to Solidity keccak256(abi.encodePacked(left, right)).
3. Odd trailing node is promoted to the next layer unchanged, never
   paired with itself.
4. Pairing is positional (2i with 2i+1), never by hash value.
5. Empty leaves: the tree has a single root layer holding EMPTY_TREE_ROOT
   (bytes32 zero).
6. Single leaf: root = leaf.

Everything here is a pure function over immutable values. The verifier
depends only on merkle_parent(), so it can be re-derived inside a contract
from (leaf, proof, root) alone.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Sequence

from core.crypto.hashing import HASH_SIZE, from_hex, hash_concat, normalize_hash, to_hex
from core.schemas.errors import LeafNotFoundException


logger = logging.getLogger(__name__)


# Empty tree sentinel: bytes32(0), what a contract returns for an unset root
EMPTY_TREE_ROOT: str = to_hex(bytes(HASH_SIZE))


class ProofSide(str, Enum):
    """Which side of the accumulator the sibling occupies."""
    LEFT = "left"
    RIGHT = "right"


@dataclass(frozen=True)
class ProofStep:
    """One level of an inclusion proof."""
    sibling: str
    side: ProofSide


# Ordered bottom-up; one entry per level where a sibling existed
InclusionProof = tuple[ProofStep, ...]


@dataclass(frozen=True)
class MerkleTree:
    """
    A built Merkle tree.

    Attributes:
        layers: Node hashes per height; layers[-1] holds exactly the root.
                For a non-empty tree layers[0] equals leaves.
        leaves: The de-duplicated leaf sequence (empty for an empty tree)
        dropped_duplicates: Leaves removed by de-duplication, in input order
    """
    layers: tuple[tuple[str, ...], ...]
    leaves: tuple[str, ...] = ()
    dropped_duplicates: tuple[str, ...] = ()

    @property
    def root(self) -> str:
        return self.layers[-1][0]

    @property
    def is_empty(self) -> bool:
        return not self.leaves

    @property
    def depth(self) -> int:
        """Number of layers above the leaves."""
        return len(self.layers) - 1

    def index_of(self, leaf: str) -> Optional[int]:
        """Position of a leaf in layer 0, or None."""
        try:
            target = normalize_hash(leaf)
        except ValueError:
            return None
        try:
            return self.leaves.index(target)
        except ValueError:
            return None


def merkle_parent(left: Optional[str], right: Optional[str]) -> str:
    """
    Combine two child nodes.

    A missing operand promotes the other one unchanged:
    merkle_parent(x, None) == x and merkle_parent(None, y) == y.

    Raises:
        ValueError: If both operands are missing or one is not a bytes32 hash
    """
    if left is None and right is None:
        raise ValueError("merkle_parent needs at least one operand")
    if right is None:
        return normalize_hash(left)
    if left is None:
        return normalize_hash(right)
    return to_hex(hash_concat(from_hex(normalize_hash(left)), from_hex(normalize_hash(right))))


def _next_layer(layer: Sequence[str]) -> tuple[str, ...]:
    return tuple(
        merkle_parent(layer[i], layer[i + 1] if i + 1 < len(layer) else None)
        for i in range(0, len(layer), 2)
    )


def _dedupe(leaves: Iterable[str]) -> tuple[tuple[str, ...], tuple[str, ...]]:
    seen: set[str] = set()
    unique: list[str] = []
    dropped: list[str] = []
    for leaf in leaves:
        normalized = normalize_hash(leaf)
        if normalized in seen:
            dropped.append(normalized)
            continue
        seen.add(normalized)
        unique.append(normalized)
    return tuple(unique), tuple(dropped)


def build_merkle_tree(leaves: Iterable[str]) -> MerkleTree:
    """
    Build a Merkle tree over a batch of artifact hashes.

    Duplicate leaves are collapsed (first occurrence keeps its position).
    That shifts the index of every later leaf, so the drop is recorded on
    the tree and logged rather than silently applied.

    Args:
        leaves: Artifact hashes; any hex spelling accepted by normalize_hash

    Returns:
        MerkleTree with all layers

    Raises:
        ValueError: If a leaf is not a 32-byte hex value

    Example:
        >>> tree = build_merkle_tree([h1, h2, h3])
        >>> tree.layers[1] == (merkle_parent(h1, h2), h3)
        True
    """
    unique, dropped = _dedupe(leaves)
    if dropped:
        logger.warning(
            f"Dropped {len(dropped)} duplicate leaves while building tree; "
            f"later leaf positions shift"
        )

    if not unique:
        return MerkleTree(layers=((EMPTY_TREE_ROOT,),), dropped_duplicates=dropped)

    layers: list[tuple[str, ...]] = [unique]
    while len(layers[-1]) > 1:
        layers.append(_next_layer(layers[-1]))

    return MerkleTree(layers=tuple(layers), leaves=unique, dropped_duplicates=dropped)


def build_merkle_root(leaves: Iterable[str]) -> str:
    """Compute only the root of build_merkle_tree(leaves)."""
    return build_merkle_tree(leaves).root


def prove_inclusion(tree: MerkleTree, leaf: str) -> InclusionProof:
    """
    Generate an inclusion proof for a leaf.

    Algorithm:
    1. Locate the leaf in layer 0
    2. At each layer below the root:
       - sibling index = index ^ 1
       - if the sibling exists, record it with the side it sits on
         (right when the current index is even)
       - a promoted odd node has no sibling and contributes no entry
       - move up: index = index // 2

    Raises:
        LeafNotFoundException: If the leaf is not in layer 0
    """
    index = tree.index_of(leaf)
    if index is None:
        raise LeafNotFoundException(
            f"Leaf not found in Merkle tree of {len(tree.leaves)} leaves",
            leaf=str(leaf),
        )

    steps: list[ProofStep] = []
    for layer in tree.layers[:-1]:
        sibling_index = index ^ 1
        if sibling_index < len(layer):
            side = ProofSide.RIGHT if index % 2 == 0 else ProofSide.LEFT
            steps.append(ProofStep(sibling=layer[sibling_index], side=side))
        index //= 2

    return tuple(steps)


def prove_all(tree: MerkleTree) -> dict[str, InclusionProof]:
    """Inclusion proofs for every leaf, keyed by leaf hash."""
    return {leaf: prove_inclusion(tree, leaf) for leaf in tree.leaves}


def verify_inclusion(leaf: str, proof: Sequence[ProofStep], claimed_root: str) -> bool:
    """
    Verify an inclusion proof against a claimed root.

    Folds the proof left to right starting from the leaf:
        side == left  -> acc = parent(sibling, acc)
        side == right -> acc = parent(acc, sibling)
    and compares the result to the claimed root after both are brought to
    the same canonical spelling.

    Never raises: malformed hashes or sides make the proof invalid.
    """
    try:
        acc = normalize_hash(leaf)
        for step in proof:
            if step.sibling is None:
                return False
            side = ProofSide(step.side)
            if side == ProofSide.LEFT:
                acc = merkle_parent(step.sibling, acc)
            else:
                acc = merkle_parent(acc, step.sibling)
        return acc == normalize_hash(claimed_root)
    except (ValueError, TypeError, AttributeError):
        return False


def compute_tree_depth(num_leaves: int) -> int:
    """
    Number of layers above the leaves for a tree of num_leaves unique leaves.

    0 for an empty or single-leaf tree.
    """
    depth = 0
    n = num_leaves
    while n > 1:
        n = (n + 1) // 2
        depth += 1
    return depth


__all__ = [
    "EMPTY_TREE_ROOT",
    "ProofSide",
    "ProofStep",
    "InclusionProof",
    "MerkleTree",
    "merkle_parent",
    "build_merkle_tree",
    "build_merkle_root",
    "prove_inclusion",
    "prove_all",
    "verify_inclusion",
    "compute_tree_depth",
]
