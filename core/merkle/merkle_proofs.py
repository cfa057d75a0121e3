"""
Merkle Proof Wire Format
Encoding and decoding of inclusion proofs as persisted alongside credential
records and shipped inside proof packages.

Wire shape (one entry per level, bottom-up):
    [{"position": "left" | "right", "data": "0x<64 hex>"}, ...]

"position" is the side the sibling occupies relative to the accumulator.
Decoding also accepts {"side", "sibling"} keys.
"""
from __future__ import annotations

from typing import Any, Iterable, Mapping, Sequence

from core.crypto.hashing import normalize_hash
from core.merkle.merkle_tree import InclusionProof, ProofSide, ProofStep
from core.schemas.errors import ProofFormatException


_SIDE_KEYS = ("position", "side")
_HASH_KEYS = ("data", "sibling")


def encode_proof(proof: Sequence[ProofStep]) -> list[dict[str, str]]:
    """
    Encode an inclusion proof to its JSON-compatible wire form.

    Example:
        >>> encode_proof((ProofStep("0xab..", ProofSide.LEFT),))
        [{'position': 'left', 'data': '0xab..'}]
    """
    return [
        {"position": ProofSide(step.side).value, "data": step.sibling}
        for step in proof
    ]


def _pick(entry: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if key in entry:
            return entry[key]
    return None


def decode_proof(raw: Iterable[Any]) -> InclusionProof:
    """
    Decode a persisted inclusion proof.

    Args:
        raw: Sequence of wire entries (or ProofStep values, passed through)

    Returns:
        InclusionProof with normalized sibling hashes

    Raises:
        ProofFormatException: If any entry has a missing/unknown side or a
            sibling that is not a 32-byte hash
    """
    if raw is None or isinstance(raw, (str, bytes, Mapping)):
        raise ProofFormatException(
            f"Inclusion proof must be a list of steps, got {type(raw).__name__}",
        )

    steps: list[ProofStep] = []
    for i, entry in enumerate(raw):
        if isinstance(entry, ProofStep):
            side_value, hash_value = entry.side, entry.sibling
        elif isinstance(entry, Mapping):
            side_value = _pick(entry, _SIDE_KEYS)
            hash_value = _pick(entry, _HASH_KEYS)
        else:
            raise ProofFormatException(
                f"Proof step {i} must be a mapping, got {type(entry).__name__}",
                step_index=i,
            )

        try:
            side = ProofSide(side_value)
        except ValueError as e:
            raise ProofFormatException(
                f"Proof step {i} has invalid side {side_value!r}",
                step_index=i,
            ) from e

        try:
            sibling = normalize_hash(hash_value)
        except ValueError as e:
            raise ProofFormatException(
                f"Proof step {i} has invalid sibling hash: {e}",
                step_index=i,
            ) from e

        steps.append(ProofStep(sibling=sibling, side=side))

    return tuple(steps)


__all__ = [
    "encode_proof",
    "decode_proof",
]
