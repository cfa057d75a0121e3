"""
Schemas & Canonicalization
File: credential.py

Purpose: Raw credential fields as submitted by an issuer, and the fixed-shape
canonical payload derived from them for hashing.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


CANONICAL_PAYLOAD_VERSION = "1.0"


class CredentialFields(BaseModel):
    """
    Semantic fields of a credential, as presented for issuance or verification.

    Every field is optional and loosely typed: reference fields may be a bare
    identifier or an embedded entity, dates may be strings, datetimes or epoch
    milliseconds. Construction never fails on unexpected shapes; the
    canonicalizer is responsible for normalization. Both camelCase and
    snake_case names are accepted.
    """

    model_config = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )

    certificate_id: Any = Field(default=None, alias="certificateId")
    student_unique_code: Any = Field(default=None, alias="studentUniqueCode")
    learner: Any = Field(default=None)
    institute: Any = Field(default=None)
    course: Any = Field(default=None)
    modules_awarded: Any = Field(default=None, alias="modulesAwarded")
    issue_date: Any = Field(default=None, alias="issueDate")
    valid_until: Any = Field(default=None, alias="validUntil")
    ncvq_level: Any = Field(default=None, alias="ncvqLevel")
    ncvq_qualification_code: Any = Field(default=None, alias="ncvqQualificationCode")
    ncvq_qualification_title: Any = Field(default=None, alias="ncvqQualificationTitle")
    ncvq_qualification_type: Any = Field(default=None, alias="ncvqQualificationType")


class CanonicalPayload(BaseModel):
    """
    Fixed-shape, normalized representation of a credential used as hashing input.

    Optional fields are explicitly null rather than omitted; the serialized
    form uses the camelCase aliases.
    """

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        populate_by_name=True,
    )

    version: str = Field(default=CANONICAL_PAYLOAD_VERSION)
    certificate_id: Optional[str] = Field(default=None, alias="certificateId")
    student_unique_code: Optional[str] = Field(default=None, alias="studentUniqueCode")
    learner_id: Optional[str] = Field(default=None, alias="learnerId")
    institute_id: Optional[str] = Field(default=None, alias="instituteId")
    course_id: Optional[str] = Field(default=None, alias="courseId")
    modules_awarded: list[str] = Field(default_factory=list, alias="modulesAwarded")
    issue_date: Optional[str] = Field(default=None, alias="issueDate")
    valid_until: Optional[str] = Field(default=None, alias="validUntil")
    ncvq_level: Any = Field(default=None, alias="ncvqLevel")
    ncvq_qualification_code: Any = Field(default=None, alias="ncvqQualificationCode")
    ncvq_qualification_title: Any = Field(default=None, alias="ncvqQualificationTitle")
    ncvq_qualification_type: Any = Field(default=None, alias="ncvqQualificationType")

    def to_canonical_dict(self) -> dict[str, Any]:
        """Dump with aliases and explicit nulls."""
        return self.model_dump(mode="json", by_alias=True)
