"""
ValidationIssue and ValidationReport models (ephemeral).

Issues are rebuilt on every validation run and never persisted.
"""

from collections import Counter
from typing import Literal

from pydantic import BaseModel, Field

ErrorType = Literal[
    "MissingRequiredField",
    "FieldTooLong",
    "InvalidDataType",
    "BusinessRuleViolation",
    "DuplicateEntry",
]

ERROR_TYPES: tuple[str, ...] = (
    "MissingRequiredField",
    "FieldTooLong",
    "InvalidDataType",
    "BusinessRuleViolation",
    "DuplicateEntry",
)


class ValidationIssue(BaseModel):
    """
    One problem found on one entry-surface row.

    Attributes:
        row_number: Absolute row number on the entry surface
        error_type: Issue category
        field_name: Field the issue concerns (None for row-level issues)
        message: Human-readable description
    """

    row_number: int
    error_type: ErrorType
    field_name: str | None = None
    message: str

    def to_line(self) -> str:
        return f"Row {self.row_number}: [{self.error_type}] {self.message}"

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "row_number": 12,
                "error_type": "DuplicateEntry",
                "field_name": None,
                "message": "Duplicate PIF001|PRJ01|1 (first seen on row 9)",
            }
        }


class ValidationReport(BaseModel):
    """
    Ordered list of issues from one validation run.

    Issues keep the order in which rows were scanned; they are never sorted
    by severity.
    """

    issues: list[ValidationIssue] = Field(default_factory=list)
    rows_checked: int = 0

    @property
    def is_clean(self) -> bool:
        """A clean report unblocks submission."""
        return not self.issues

    @property
    def error_count(self) -> int:
        return len(self.issues)

    def counts_by_type(self) -> dict[str, int]:
        """Number of issues per error type (every type present, zero included)."""
        counts = Counter(issue.error_type for issue in self.issues)
        return {error_type: counts.get(error_type, 0) for error_type in ERROR_TYPES}

    def row_numbers(self) -> list[int]:
        """Distinct row numbers with at least one issue, in scan order."""
        seen: dict[int, None] = {}
        for issue in self.issues:
            seen.setdefault(issue.row_number, None)
        return list(seen)

    def issues_for_row(self, row_number: int) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.row_number == row_number]

    def summary(self) -> str:
        """Short human-readable summary for the status area."""
        if self.is_clean:
            return f"Validation passed: {self.rows_checked} row(s) checked, no errors."
        parts = [f"{name}={count}" for name, count in self.counts_by_type().items() if count]
        return (
            f"Validation failed: {self.error_count} error(s) in "
            f"{len(self.row_numbers())} row(s) ({', '.join(parts)})."
        )
