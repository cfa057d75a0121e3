"""
Schemas & Canonicalization
File: __init__.py

Purpose: Export the public API for the schemas module.
This is the main entry point for other modules to import schema definitions.
"""

# Canonical serialization API
from .canonical import (
    CANONICAL_JSON_SEPARATORS,
    canonical_equals,
    canonicalize_value,
    dumps_canonical,
    ensure_utc,
    format_datetime_canonical,
    loads_canonical,
    normalize_date,
)

# Error models and exceptions
from .errors import (
    AnchorConflictException,
    AnchorSubmissionException,
    BatchConflictException,
    BatchException,
    BatchNotFoundException,
    BatchStateConflictException,
    BatchTooLargeException,
    CanonicalizationException,
    CertAnchorError,
    CertAnchorException,
    DuplicateLeafException,
    EmptyBatchException,
    ErrorCodes,
    LeafNotFoundException,
    LedgerException,
    LedgerTransientException,
    LedgerUnavailableException,
    ProofFormatException,
    RecordConflictException,
)

# Credential schemas
from .credential import (
    CANONICAL_PAYLOAD_VERSION,
    CanonicalPayload,
    CredentialFields,
)

# Record store schemas
from .records import (
    BatchRecord,
    BatchStatus,
    CertificateRecord,
    HashKind,
)

# Verification schemas
from .verification import (
    CheckResult,
    CheckSeverity,
    VerificationEvidence,
    VerificationReport,
    VerificationState,
    VerificationVerdict,
)

__all__ = [
    # Canonical
    "CANONICAL_JSON_SEPARATORS",
    "canonical_equals",
    "canonicalize_value",
    "dumps_canonical",
    "ensure_utc",
    "format_datetime_canonical",
    "loads_canonical",
    "normalize_date",
    # Errors
    "AnchorConflictException",
    "AnchorSubmissionException",
    "BatchConflictException",
    "BatchException",
    "BatchNotFoundException",
    "BatchStateConflictException",
    "BatchTooLargeException",
    "CanonicalizationException",
    "CertAnchorError",
    "CertAnchorException",
    "DuplicateLeafException",
    "EmptyBatchException",
    "ErrorCodes",
    "LeafNotFoundException",
    "LedgerException",
    "LedgerTransientException",
    "LedgerUnavailableException",
    "ProofFormatException",
    "RecordConflictException",
    # Credential
    "CANONICAL_PAYLOAD_VERSION",
    "CanonicalPayload",
    "CredentialFields",
    # Records
    "BatchRecord",
    "BatchStatus",
    "CertificateRecord",
    "HashKind",
    # Verification
    "CheckResult",
    "CheckSeverity",
    "VerificationEvidence",
    "VerificationReport",
    "VerificationState",
    "VerificationVerdict",
]
