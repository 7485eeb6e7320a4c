"""
Validation engine for extracted entry-surface rows.

One pass over the rows: every rule is evaluated per row and the duplicate
key lookup is updated in the same loop. The engine holds no state between
runs, so validating the same rows twice yields the same report.
"""

from typing import Any

from pif_pipeline.config import DEFAULT_APPROVED_STATUSES
from pif_pipeline.core.extract.extractor import ExtractedRow
from pif_pipeline.core.layout.pif_layout import DEFAULT_LAYOUT, PifLayout
from pif_pipeline.core.models import ValidationIssue, ValidationReport
from pif_pipeline.core.models.project_record import CostMatrix
from pif_pipeline.core.rules.rule_config import rules_for_layout
from pif_pipeline.core.validators import (
    BaseValidator,
    CustomValidator,
    LengthValidator,
    LineItemValidator,
    RangeValidator,
    RequiredFieldValidator,
    TypeValidator,
    ValidationError,
)
from pif_pipeline.observability.logger import get_logger

logger = get_logger(__name__)


class ValidationEngine:
    """
    Applies the rule set to extracted rows and detects duplicate keys.

    Rules are applied in configuration order and independently of each
    other; one row may produce several issues.
    """

    VALIDATOR_REGISTRY = {
        "required_field": RequiredFieldValidator,
        "line_item": LineItemValidator,
        "max_length": LengthValidator,
        "type_check": TypeValidator,
        "range": RangeValidator,
        "custom": CustomValidator,
    }

    def __init__(self, rules: list[dict[str, Any]]):
        """
        Initialize the engine with validation rules.

        Args:
            rules: List of rule configurations, each containing:
                   - rule_name: str
                   - rule_type: str (a VALIDATOR_REGISTRY key)
                   - field_name: str
                   - parameters: dict[str, Any] (optional)
                   - enabled: bool (default True)
        """
        self.rules = rules
        self.validators: list[tuple[str, BaseValidator]] = []
        self._build_validators()

    @classmethod
    def for_layout(
        cls,
        layout: PifLayout | None = None,
        approved_statuses: tuple[str, ...] = DEFAULT_APPROVED_STATUSES,
    ) -> "ValidationEngine":
        """Engine with the default PIF rule set for ``layout``."""
        return cls(rules_for_layout(layout or DEFAULT_LAYOUT, approved_statuses))

    def _build_validators(self) -> None:
        """Build validator instances from rule configurations."""
        for rule in self.rules:
            if not rule.get("enabled", True):
                continue

            rule_name = rule["rule_name"]
            rule_type = rule["rule_type"]

            validator_class = self.VALIDATOR_REGISTRY.get(rule_type)
            if not validator_class:
                raise ValueError(f"Unknown rule type: {rule_type}")

            try:
                validator = validator_class(rule["field_name"], rule.get("parameters", {}))
            except ValueError as e:
                raise ValueError(f"Failed to create validator for rule '{rule_name}': {e}") from e
            self.validators.append((rule_name, validator))

    def validate(self, rows: list[ExtractedRow], site: str | None = None) -> ValidationReport:
        """
        Validate a batch of rows.

        Args:
            rows: Extracted rows in worksheet order
            site: Active site; when given, rows of any other site (or with no
                site) are reported

        Returns:
            ValidationReport with issues in scan order
        """
        issues: list[ValidationIssue] = []
        first_seen: dict[tuple[str, str, int], int] = {}

        for row in rows:
            issues.extend(self.validate_row(row))
            if site is not None:
                mismatch = self._check_site(row, site)
                if mismatch is not None:
                    issues.append(mismatch)

            duplicate = self._check_duplicate(row, first_seen)
            if duplicate is not None:
                issues.append(duplicate)

        report = ValidationReport(issues=issues, rows_checked=len(rows))
        logger.info(
            report.summary(),
            extra={"rows_checked": len(rows), "error_count": report.error_count},
        )
        return report

    def validate_row(self, row: ExtractedRow) -> list[ValidationIssue]:
        """All rule failures for one row (duplicates excluded)."""
        issues = []
        for rule_name, validator in self.validators:
            value = self._field_value(row, validator.field_name)
            try:
                validator.validate(value, row)
            except ValidationError as e:
                issues.append(
                    ValidationIssue(
                        row_number=row.row_number,
                        error_type=e.error_type,
                        field_name=e.field_name,
                        message=e.message,
                    )
                )
        return issues

    @staticmethod
    def _check_site(row: ExtractedRow, site: str) -> ValidationIssue | None:
        row_site = (row.record.site or "").strip()
        if row_site.upper() == site.strip().upper():
            return None
        found = f"site {row_site}" if row_site else "no site"
        return ValidationIssue(
            row_number=row.row_number,
            error_type="BusinessRuleViolation",
            field_name="site",
            message=f"Row has {found}; only site {site} rows can be submitted",
        )

    def _check_duplicate(
        self, row: ExtractedRow, first_seen: dict[tuple[str, str, int], int]
    ) -> ValidationIssue | None:
        record = row.record
        if record.project_id is None:
            return None
        line_item = row.coercions.get("line_item")
        if line_item is not None and line_item.is_fallback:
            return None

        key = (record.entity_id, record.project_id, record.line_item)
        first_row = first_seen.get(key)
        if first_row is None:
            first_seen[key] = row.row_number
            return None

        return ValidationIssue(
            row_number=row.row_number,
            error_type="DuplicateEntry",
            field_name=None,
            message=(
                f"Duplicate PIF {record.entity_id}, project {record.project_id}, "
                f"line {record.line_item} (first seen on row {first_row})"
            ),
        )

    @staticmethod
    def _field_value(row: ExtractedRow, field_name: str) -> Any:
        record = row.record
        if field_name in CostMatrix.model_fields:
            return getattr(record.costs, field_name)
        return getattr(record, field_name, None)

    def get_rule_summary(self) -> dict[str, Any]:
        """
        Get summary of loaded rules.

        Returns:
            Dictionary with rule counts and types
        """
        counts: dict[str, int] = {}
        for _, validator in self.validators:
            counts[validator.rule_type] = counts.get(validator.rule_type, 0) + 1
        return {"total_rules": len(self.validators), "rules_by_type": counts}
