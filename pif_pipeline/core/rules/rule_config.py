"""
Rule configuration management.

Builds the ordered rule list the validation engine applies to every row.
Rule order is issue order within a row: required fields first, then length
ceilings, data types, and business rules.
"""

from typing import Any, Callable

from pif_pipeline.config import DEFAULT_APPROVED_STATUSES
from pif_pipeline.core.layout.pif_layout import PifLayout
from pif_pipeline.core.models.cost_record import MEASURES, SCENARIOS
from pif_pipeline.core.models.project_record import CostMatrix
from pif_pipeline.core.validators.custom_validator import require_justification

SEG_MIN = 0
SEG_MAX = 99999

KIND_LABELS = {
    "integer": "whole number",
    "decimal": "number",
    "boolean": "TRUE/FALSE value",
    "date": "date",
}


class RuleConfigBuilder:
    """
    Programmatically build rule configurations.
    """

    def __init__(self):
        """Initialize empty rule configuration."""
        self.rules: list[dict[str, Any]] = []

    def _add(self, rule_name: str, rule_type: str, field_name: str, parameters: dict[str, Any]) -> "RuleConfigBuilder":
        self.rules.append({
            "rule_name": rule_name,
            "rule_type": rule_type,
            "field_name": field_name,
            "parameters": parameters,
            "enabled": True,
        })
        return self

    def add_required_field(self, field_name: str) -> "RuleConfigBuilder":
        """Add a required field rule."""
        return self._add(f"{field_name}_required", "required_field", field_name, {})

    def add_line_item(self, field_name: str = "line_item") -> "RuleConfigBuilder":
        """Add the positive line item rule."""
        return self._add(f"{field_name}_positive", "line_item", field_name, {})

    def add_max_length(self, field_name: str, max_length: int) -> "RuleConfigBuilder":
        """Add a length ceiling rule."""
        return self._add(f"{field_name}_max_length", "max_length", field_name, {"max_length": max_length})

    def add_type_check(self, field_name: str, expected_type: str) -> "RuleConfigBuilder":
        """Add a type check rule."""
        return self._add(f"{field_name}_type_check", "type_check", field_name, {"expected_type": expected_type})

    def add_range(
        self,
        field_name: str,
        min_value: float | None = None,
        max_value: float | None = None
    ) -> "RuleConfigBuilder":
        """Add a range validation rule."""
        params = {}
        if min_value is not None:
            params["min"] = min_value
        if max_value is not None:
            params["max"] = max_value
        return self._add(f"{field_name}_range", "range", field_name, params)

    def add_custom(
        self,
        rule_name: str,
        field_name: str,
        func: Callable[[Any, Any], None],
        error_type: str = "BusinessRuleViolation",
    ) -> "RuleConfigBuilder":
        """Add a custom rule."""
        return self._add(rule_name, "custom", field_name, {"validator_func": func, "error_type": error_type})

    def build(self) -> list[dict[str, Any]]:
        """Build and return the rule configuration."""
        return self.rules


def rules_for_layout(
    layout: PifLayout,
    approved_statuses: tuple[str, ...] = DEFAULT_APPROVED_STATUSES,
) -> list[dict[str, Any]]:
    """
    Default PIF rule set derived from the layout.

    Args:
        layout: Schema descriptor (required flags, kinds, max lengths)
        approved_statuses: Statuses that require a justification

    Returns:
        Ordered rule dictionaries for the ValidationEngine
    """
    builder = RuleConfigBuilder()

    for spec in layout.field_specs:
        if spec.required:
            builder.add_required_field(spec.name)
    if layout.field("line_item") is not None:
        builder.add_line_item("line_item")

    for spec in layout.field_specs:
        if spec.kind == "string" and spec.max_length:
            builder.add_max_length(spec.name, spec.max_length)

    for spec in layout.field_specs:
        if spec.kind != "string" and spec.name != "line_item":
            builder.add_type_check(spec.name, KIND_LABELS[spec.kind])
    for scenario in SCENARIOS:
        for measure in MEASURES:
            builder.add_type_check(CostMatrix.series_name(scenario, measure), "number")
    if layout.field("seg") is not None:
        builder.add_range("seg", SEG_MIN, SEG_MAX)

    builder.add_custom(
        "justification_required",
        "justification",
        require_justification(approved_statuses),
    )
    return builder.build()
