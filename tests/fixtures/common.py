"""
Common test fixtures shared by all modules.

Provides factory functions for the basic building blocks:
- Raw credential fields (camelCase, as an issuer submits them)
- Artifact hashes usable as Merkle leaves
"""

from typing import Any, Optional

from core.crypto.hashing import sha256, to_hex


# =============================================================================
# Credential Factories
# =============================================================================

def make_credential_fields(
    certificate_id: str = "CERT-2024-0001",
    student_unique_code: str = "STU-7781",
    learner: Any = None,
    institute: Any = None,
    course: Any = None,
    modules_awarded: Optional[list[Any]] = None,
    issue_date: Any = "2024-03-01T00:00:00.000Z",
    valid_until: Any = None,
    **overrides: Any,
) -> dict[str, Any]:
    """
    Create raw credential fields for testing.

    Reference fields default to embedded entities ({"_id": ...}) the way
    a document database returns them.
    """
    fields: dict[str, Any] = {
        "certificateId": certificate_id,
        "studentUniqueCode": student_unique_code,
        "learner": learner if learner is not None else {"_id": "learner-001", "name": "Asha Rahman"},
        "institute": institute if institute is not None else {"_id": "inst-042", "name": "Dhaka Polytechnic"},
        "course": course if course is not None else {"_id": "course-9", "title": "Electrical Installation"},
        "modulesAwarded": modules_awarded if modules_awarded is not None else ["M2", "M1", "M3"],
        "issueDate": issue_date,
        "validUntil": valid_until,
        "ncvqLevel": 3,
        "ncvqQualificationCode": "EIM-L3",
        "ncvqQualificationTitle": "Electrical Installation and Maintenance",
        "ncvqQualificationType": "National Certificate",
    }
    fields.update(overrides)
    return fields


def make_credential_batch(count: int, prefix: str = "CERT") -> list[dict[str, Any]]:
    """Create count distinct credentials."""
    return [
        make_credential_fields(
            certificate_id=f"{prefix}-{i:04d}",
            student_unique_code=f"STU-{i:04d}",
            learner={"_id": f"learner-{i:04d}"},
        )
        for i in range(count)
    ]


# =============================================================================
# Hash Factories
# =============================================================================

def make_leaf(label: str) -> str:
    """A deterministic 0x-prefixed artifact hash derived from a label."""
    return to_hex(sha256(label.encode("utf-8")))


def make_leaves(count: int, prefix: str = "leaf") -> list[str]:
    """count distinct deterministic leaves."""
    return [make_leaf(f"{prefix}-{i}") for i in range(count)]
