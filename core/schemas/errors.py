"""
Schemas & Canonicalization
File: errors.py

Purpose: Standard error taxonomy across hashing, batching, anchoring and
verification. Defines both Pydantic models for structured error
communication and Python exceptions for control flow.

Verification verdicts (NotFound, NotAnchored, Invalid, Unavailable) are
values, not exceptions. The exceptions here signal programming or
workflow conflicts, and collaborator failures before they are folded into
a verdict.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Error Codes (Machine-Readable Constants)
# =============================================================================

class ErrorCodes:
    """Stable machine-readable error codes."""

    # Schema & Serialization Errors
    CANONICALIZATION_ERROR = "CANONICALIZATION_ERROR"

    # Merkle & Commitment Errors
    LEAF_NOT_FOUND = "LEAF_NOT_FOUND"
    DUPLICATE_LEAF = "DUPLICATE_LEAF"
    EMPTY_BATCH = "EMPTY_BATCH"
    PROOF_FORMAT_INVALID = "PROOF_FORMAT_INVALID"
    ROOT_MISMATCH = "ROOT_MISMATCH"

    # Batch Lifecycle Errors
    BATCH_NOT_FOUND = "BATCH_NOT_FOUND"
    BATCH_CONFLICT = "BATCH_CONFLICT"
    BATCH_STATE_CONFLICT = "BATCH_STATE_CONFLICT"
    BATCH_TOO_LARGE = "BATCH_TOO_LARGE"
    ANCHOR_CONFLICT = "ANCHOR_CONFLICT"
    ANCHOR_SUBMISSION_FAILED = "ANCHOR_SUBMISSION_FAILED"

    # Ledger Errors
    LEDGER_ERROR = "LEDGER_ERROR"
    LEDGER_TRANSIENT_ERROR = "LEDGER_TRANSIENT_ERROR"
    LEDGER_UNAVAILABLE = "LEDGER_UNAVAILABLE"

    # Record Store Errors
    RECORD_CONFLICT = "RECORD_CONFLICT"


# =============================================================================
# Pydantic Error Models (Structured Communication)
# =============================================================================

class CertAnchorError(BaseModel):
    """
    Base error model for structured error communication.

    Used for passing errors between modules without exceptions, e.g. inside
    a verification report whose verdict is Unavailable.
    """

    model_config = ConfigDict(
        extra="forbid",
        frozen=False,
        validate_assignment=True,
    )

    code: str = Field(
        ...,
        description="Stable machine-readable error code",
        examples=[ErrorCodes.LEDGER_UNAVAILABLE],
    )
    message: str = Field(
        ...,
        description="Human-readable error message",
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional structured details about the error",
    )
    retryable: bool = Field(
        default=False,
        description="Whether the operation can be retried",
    )

    def to_exception(self) -> "CertAnchorException":
        """Convert this error model to a raised exception."""
        return CertAnchorException(
            code=self.code,
            message=self.message,
            details=self.details,
            retryable=self.retryable,
        )


# =============================================================================
# Python Exceptions (Control Flow)
# =============================================================================

class CertAnchorException(Exception):
    """
    Base exception for all certanchor errors.

    Carries structured error information and can be converted to/from
    CertAnchorError models.
    """

    def __init__(
        self,
        message: str,
        code: str = "CERTANCHOR_ERROR",
        details: dict[str, Any] | None = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}
        self.retryable = retryable

    def to_error_model(self) -> CertAnchorError:
        """Convert this exception to a CertAnchorError model."""
        return CertAnchorError(
            code=self.code,
            message=self.message,
            details=self.details,
            retryable=self.retryable,
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


class CanonicalizationException(CertAnchorException):
    """Exception raised when canonical serialization fails."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code=ErrorCodes.CANONICALIZATION_ERROR,
            details=details,
            retryable=False,
        )


class LeafNotFoundException(CertAnchorException):
    """Raised when a proof is requested for a leaf absent from layer 0."""

    def __init__(
        self,
        message: str,
        leaf: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = details or {}
        if leaf:
            full_details["leaf"] = leaf
        super().__init__(
            message=message,
            code=ErrorCodes.LEAF_NOT_FOUND,
            details=full_details,
            retryable=False,
        )


class DuplicateLeafException(CertAnchorException):
    """Raised when a batch is admitted with repeated artifact hashes."""

    def __init__(
        self,
        message: str,
        duplicates: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = details or {}
        if duplicates:
            full_details["duplicates"] = list(duplicates)
        super().__init__(
            message=message,
            code=ErrorCodes.DUPLICATE_LEAF,
            details=full_details,
            retryable=False,
        )


class EmptyBatchException(CertAnchorException):
    """Raised when a batch with no credentials is submitted."""

    def __init__(self, message: str, batch_id: str | None = None) -> None:
        super().__init__(
            message=message,
            code=ErrorCodes.EMPTY_BATCH,
            details={"batch_id": batch_id} if batch_id else {},
            retryable=False,
        )


class ProofFormatException(CertAnchorException):
    """Raised when a persisted inclusion proof cannot be decoded."""

    def __init__(
        self,
        message: str,
        step_index: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = details or {}
        if step_index is not None:
            full_details["step_index"] = step_index
        super().__init__(
            message=message,
            code=ErrorCodes.PROOF_FORMAT_INVALID,
            details=full_details,
            retryable=False,
        )


class BatchException(CertAnchorException):
    """Base for batch lifecycle errors; always carries the batch id."""

    def __init__(
        self,
        message: str,
        batch_id: str,
        code: str,
        details: dict[str, Any] | None = None,
        retryable: bool = False,
    ) -> None:
        full_details = details or {}
        full_details["batch_id"] = batch_id
        super().__init__(
            message=message,
            code=code,
            details=full_details,
            retryable=retryable,
        )
        self.batch_id = batch_id


class BatchNotFoundException(BatchException):
    """Raised when a batch id is unknown to the record store."""

    def __init__(self, batch_id: str) -> None:
        super().__init__(
            message=f"Batch {batch_id!r} not found",
            batch_id=batch_id,
            code=ErrorCodes.BATCH_NOT_FOUND,
        )


class BatchConflictException(BatchException):
    """Raised when a batch id is reused."""

    def __init__(self, batch_id: str) -> None:
        super().__init__(
            message=f"Batch {batch_id!r} already exists",
            batch_id=batch_id,
            code=ErrorCodes.BATCH_CONFLICT,
        )


class BatchTooLargeException(BatchException):
    """Raised when a batch exceeds the configured maximum size."""

    def __init__(self, batch_id: str, size: int, limit: int) -> None:
        super().__init__(
            message=f"Batch {batch_id!r} has {size} items, limit is {limit}",
            batch_id=batch_id,
            code=ErrorCodes.BATCH_TOO_LARGE,
            details={"size": size, "limit": limit},
        )


class BatchStateConflictException(BatchException):
    """Raised when a batch status transition does not match the expected state."""

    def __init__(
        self,
        batch_id: str,
        actual: str,
        expected: list[str],
        target: str,
    ) -> None:
        super().__init__(
            message=(
                f"Batch {batch_id!r} is {actual}, cannot move to {target} "
                f"(expected one of {', '.join(expected)})"
            ),
            batch_id=batch_id,
            code=ErrorCodes.BATCH_STATE_CONFLICT,
            details={"actual": actual, "expected": expected, "target": target},
        )
        self.actual = actual


class AnchorConflictException(BatchException):
    """Raised on a second anchoring submission for the same batch."""

    def __init__(self, message: str, batch_id: str, status: str | None = None) -> None:
        super().__init__(
            message=message,
            batch_id=batch_id,
            code=ErrorCodes.ANCHOR_CONFLICT,
            details={"status": status} if status else None,
        )


class AnchorSubmissionException(BatchException):
    """Raised when the ledger rejected or failed an anchoring submission."""

    def __init__(self, message: str, batch_id: str, error: str | None = None) -> None:
        super().__init__(
            message=message,
            batch_id=batch_id,
            code=ErrorCodes.ANCHOR_SUBMISSION_FAILED,
            details={"error": error} if error else None,
            retryable=True,
        )


class LedgerException(CertAnchorException):
    """Raised when a ledger call fails for a non-transient reason."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        code: str = ErrorCodes.LEDGER_ERROR,
        retryable: bool = False,
    ) -> None:
        super().__init__(
            message=message,
            code=code,
            details=details,
            retryable=retryable,
        )


class LedgerTransientException(LedgerException):
    """Raised for network-level ledger failures that are worth retrying."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            details=details,
            code=ErrorCodes.LEDGER_TRANSIENT_ERROR,
            retryable=True,
        )


class LedgerUnavailableException(LedgerException):
    """Raised when the ledger could not be reached within the retry budget."""

    def __init__(
        self,
        message: str,
        batch_id: str | None = None,
        attempts: int | None = None,
        last_error: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = details or {}
        if batch_id is not None:
            full_details["batch_id"] = batch_id
        if attempts is not None:
            full_details["attempts"] = attempts
        if last_error:
            full_details["last_error"] = last_error
        super().__init__(
            message=message,
            details=full_details,
            code=ErrorCodes.LEDGER_UNAVAILABLE,
            retryable=True,
        )


class RecordConflictException(CertAnchorException):
    """Raised when a certificate record would be overwritten by a different one."""

    def __init__(self, certificate_id: str) -> None:
        super().__init__(
            message=f"Certificate record {certificate_id!r} already exists",
            code=ErrorCodes.RECORD_CONFLICT,
            details={"certificate_id": certificate_id},
            retryable=False,
        )
