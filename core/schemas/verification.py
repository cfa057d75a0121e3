"""
Schemas & Canonicalization
File: verification.py

Purpose: Standard result format for credential verification - the verdict,
the state machine positions, advisory evidence and atomic check results.
"""

from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .errors import CertAnchorError


# Severity levels for checks
CheckSeverity = Literal["info", "warn", "error"]


class VerificationVerdict(str, Enum):
    """
    Terminal classification of a verification request.

    Computed fresh on every request and never persisted. UNAVAILABLE is an
    operational outcome (ledger unreachable), not a negative trust result.
    """
    VALID = "Valid"
    NOT_ANCHORED = "NotAnchored"
    INVALID = "Invalid"
    NOT_FOUND = "NotFound"
    UNAVAILABLE = "Unavailable"


class VerificationState(str, Enum):
    """Positions of the per-request verification state machine."""
    RECEIVED = "Received"
    RECOMPUTED = "Recomputed"
    LOCAL_CHECKED = "LocalChecked"
    CHAIN_CHECKED = "ChainChecked"
    DECIDED = "Decided"


class CheckResult(BaseModel):
    """
    Result of a single verification check.

    Checks are atomic verification steps that can pass or fail.
    """

    model_config = ConfigDict(extra="forbid")

    check_id: str = Field(
        ...,
        description="Unique identifier for this check",
        min_length=1,
    )
    ok: bool = Field(
        ...,
        description="Whether the check passed",
    )
    severity: CheckSeverity = Field(
        ...,
        description="Severity level of this check",
    )
    message: str = Field(
        ...,
        description="Human-readable message describing the result",
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional details about the check",
    )

    @property
    def is_error(self) -> bool:
        """Check if this is an error-level failure."""
        return not self.ok and self.severity == "error"

    @classmethod
    def passed(
        cls,
        check_id: str,
        message: str = "Check passed",
        details: dict[str, Any] | None = None,
    ) -> "CheckResult":
        """Create a passed check result."""
        return cls(
            check_id=check_id,
            ok=True,
            severity="info",
            message=message,
            details=details or {},
        )

    @classmethod
    def warning(
        cls,
        check_id: str,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> "CheckResult":
        """Create a warning check result."""
        return cls(
            check_id=check_id,
            ok=True,  # Warnings don't fail the check
            severity="warn",
            message=message,
            details=details or {},
        )

    @classmethod
    def failed(
        cls,
        check_id: str,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> "CheckResult":
        """Create a failed check result."""
        return cls(
            check_id=check_id,
            ok=False,
            severity="error",
            message=message,
            details=details or {},
        )


class VerificationEvidence(BaseModel):
    """
    Supporting evidence returned with a verdict.

    Advisory and diagnostic only; the verdict alone is the trust decision.
    Flags are None when the corresponding step was never reached.
    """

    model_config = ConfigDict(extra="forbid")

    certificate_id: Optional[str] = None
    artifact_hash: Optional[str] = None
    hash_kind: Optional[str] = None
    batch_id: Optional[str] = None
    merkle_root: Optional[str] = None
    anchored_root: Optional[str] = None
    tx_ref: Optional[str] = None
    hash_matched: Optional[bool] = None
    proof_valid: Optional[bool] = None
    root_matched: Optional[bool] = None


class VerificationReport(BaseModel):
    """Complete outcome of one verification request."""

    model_config = ConfigDict(extra="forbid")

    verdict: VerificationVerdict
    state: VerificationState = VerificationState.DECIDED
    transitions: list[VerificationState] = Field(default_factory=list)
    evidence: VerificationEvidence = Field(default_factory=VerificationEvidence)
    checks: list[CheckResult] = Field(default_factory=list)
    error: Optional[CertAnchorError] = None

    @property
    def ok(self) -> bool:
        """True only for a VALID verdict."""
        return self.verdict == VerificationVerdict.VALID

    @property
    def chain_consulted(self) -> bool:
        return VerificationState.CHAIN_CHECKED in self.transitions

    def get_failed_checks(self) -> list[CheckResult]:
        """Get all failed checks."""
        return [check for check in self.checks if not check.ok]
