"""
Result models returned to the calling surface.
"""

from typing import Literal

from pydantic import BaseModel, Field

from .validation_issue import ValidationReport


class OperationResult(BaseModel):
    """
    Boolean outcome of a user-initiated operation plus a structured payload.

    Attributes:
        success: Whether the operation succeeded
        message: Short actionable message for the user
        detail: Technical detail (also written to the diagnostic log)
        counts: Named counters (rows staged, rows archived, ...)
        elapsed_seconds: Wall-clock duration
        report: Validation report, for validate and submit
    """

    success: bool
    message: str
    detail: str | None = None
    counts: dict[str, int] = Field(default_factory=dict)
    elapsed_seconds: float = 0.0
    report: ValidationReport | None = None


class StagingIssue(BaseModel):
    """One row returned by the server-side staging check."""

    severity: Literal["ERROR", "WARNING"]
    entity_id: str | None = None
    project_id: str | None = None
    error_type: str
    message: str


class StagingValidationResult(BaseModel):
    """Outcome of ``pif_validate_staging_data()``."""

    error_count: int = 0
    warning_count: int = 0
    errors: list[StagingIssue] = Field(default_factory=list)

    @property
    def is_clean(self) -> bool:
        return self.error_count == 0
