"""
Credential Canonicalizer

Turns a credential's semantic fields into one deterministic string and its
SHA-256 artifact hash, the Merkle leaf value for batch anchoring.

Normalization Rules (Hard Contracts):
1. Reference fields (learner, institute, course) collapse to their stable
   identifier so metadata edits on the referenced entity never move the hash.
2. Dates become ISO-8601 UTC instants with millisecond precision; absent or
   unparsable dates become null.
3. modulesAwarded keeps string entries only, trimmed, de-duplicated by exact
   match and sorted ascending.
4. Optional NCVQ fields that are falsy become null; structured values keep
   their shape with keys sorted at every level.
5. Serialization is dumps_canonical (sorted keys, no whitespace, nulls kept);
   artifact hash = sha256(canonical_string.encode("utf-8")).

canonicalize_credential() is total: it never raises on any input.
Missing business fields are a concern of the caller.
"""
from __future__ import annotations

import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Union

from pydantic import BaseModel

from core.crypto.hashing import sha256, to_hex
from core.schemas.canonical import canonicalize_value, dumps_canonical, normalize_date
from core.schemas.credential import CanonicalPayload, CredentialFields
from core.schemas.errors import CanonicalizationException


RawCredential = Union[CredentialFields, Mapping[str, Any]]

# Keys tried, in order, when a reference field holds an embedded entity
_ID_KEYS = ("_id", "id")


@dataclass(frozen=True)
class CanonicalCredential:
    """Result of canonicalizing one credential."""
    payload: CanonicalPayload
    canonical_string: str
    artifact_hash: str


def _is_falsy(value: Any) -> bool:
    try:
        return not value
    except Exception:
        return False


def _normalize_id(value: Any) -> Optional[str]:
    if value is None or _is_falsy(value):
        return None
    if isinstance(value, str):
        return value

    if isinstance(value, Mapping):
        for key in _ID_KEYS:
            if value.get(key):
                return _normalize_id(value[key])
        return None

    if isinstance(value, BaseModel) or hasattr(value, "__dict__"):
        for key in _ID_KEYS:
            inner = getattr(value, key, None)
            if inner:
                return _normalize_id(inner)

    try:
        text = str(value)
    except Exception:
        return None
    return text or None


def _normalize_modules(value: Any) -> list[str]:
    if not isinstance(value, (list, tuple, set, frozenset)):
        return []
    modules = {item.strip() for item in value if isinstance(item, str)}
    modules.discard("")
    return sorted(modules)


def _normalize_optional(value: Any) -> Any:
    """Falsy -> null; keep JSON scalars and structures; stringify anything else."""
    if value is None or _is_falsy(value):
        return None
    if isinstance(value, (str, bool, int)):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, (Mapping, list, tuple, set, frozenset, BaseModel)):
        # Nested keys are sorted by dumps_canonical at every level
        if isinstance(value, Mapping):
            value = dict(value)
        try:
            return canonicalize_value(value)
        except CanonicalizationException:
            return None
    try:
        return str(value)
    except Exception:
        return None


def _coerce_fields(raw: Any) -> CredentialFields:
    if isinstance(raw, CredentialFields):
        return raw
    if isinstance(raw, Mapping):
        try:
            return CredentialFields.model_validate(dict(raw))
        except Exception:
            return CredentialFields()
    return CredentialFields()


def build_canonical_payload(raw: RawCredential) -> CanonicalPayload:
    """Normalize raw credential fields into the fixed-shape payload."""
    fields = _coerce_fields(raw)
    return CanonicalPayload(
        certificate_id=_normalize_id(fields.certificate_id),
        student_unique_code=_normalize_id(fields.student_unique_code),
        learner_id=_normalize_id(fields.learner),
        institute_id=_normalize_id(fields.institute),
        course_id=_normalize_id(fields.course),
        modules_awarded=_normalize_modules(fields.modules_awarded),
        issue_date=normalize_date(fields.issue_date),
        valid_until=normalize_date(fields.valid_until),
        ncvq_level=_normalize_optional(fields.ncvq_level),
        ncvq_qualification_code=_normalize_optional(fields.ncvq_qualification_code),
        ncvq_qualification_title=_normalize_optional(fields.ncvq_qualification_title),
        ncvq_qualification_type=_normalize_optional(fields.ncvq_qualification_type),
    )


def canonicalize_credential(raw: RawCredential) -> CanonicalCredential:
    """
    Canonicalize a credential and derive its artifact hash.

    Args:
        raw: CredentialFields or a plain mapping (camelCase or snake_case keys)

    Returns:
        CanonicalCredential(payload, canonical_string, artifact_hash)

    Example:
        >>> a = canonicalize_credential({"certificateId": "C-1", "modulesAwarded": ["b", "a"]})
        >>> b = canonicalize_credential({"modulesAwarded": ["a", " b "], "certificateId": "C-1"})
        >>> a.artifact_hash == b.artifact_hash
        True
    """
    payload = build_canonical_payload(raw)
    canonical_string = dumps_canonical(payload.to_canonical_dict())
    artifact_hash = to_hex(sha256(canonical_string.encode("utf-8")))
    return CanonicalCredential(
        payload=payload,
        canonical_string=canonical_string,
        artifact_hash=artifact_hash,
    )


def compute_artifact_hash(raw: RawCredential) -> str:
    """Shortcut returning only the 0x-prefixed artifact hash."""
    return canonicalize_credential(raw).artifact_hash


def canonicalize_many(
    raws: Iterable[RawCredential],
    *,
    max_workers: Optional[int] = None,
) -> list[CanonicalCredential]:
    """
    Canonicalize credentials in parallel, preserving input order.

    Each credential is independent, so the work is spread over a thread pool.
    """
    items = list(raws)
    if len(items) <= 1:
        return [canonicalize_credential(item) for item in items]
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        return list(pool.map(canonicalize_credential, items))


__all__ = [
    "CanonicalCredential",
    "RawCredential",
    "build_canonical_payload",
    "canonicalize_credential",
    "compute_artifact_hash",
    "canonicalize_many",
]
