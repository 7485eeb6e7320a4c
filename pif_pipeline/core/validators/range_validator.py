"""
RangeValidator - validates numeric values are within a specified range.
"""

from decimal import Decimal
from typing import Any

from .base_validator import BaseValidator


class RangeValidator(BaseValidator):
    """
    Validates that a numeric field is within an inclusive range.

    Parameters:
    - min: Minimum value (inclusive)
    - max: Maximum value (inclusive)
    """

    error_type = "InvalidDataType"

    def __init__(self, field_name: str, parameters: dict[str, Any] | None = None):
        super().__init__(field_name, parameters)

        self.min_value = self.parameters.get("min")
        self.max_value = self.parameters.get("max")

        if self.min_value is None and self.max_value is None:
            raise ValueError("RangeValidator requires at least one of: min, max")

    def validate(self, value: Any, row) -> None:
        # None is either blank or already reported by the type check
        if value is None or isinstance(value, bool):
            return

        if not isinstance(value, int | float | Decimal):
            raise self.fail(f"Value must be numeric, got {type(value).__name__}")

        below = self.min_value is not None and value < self.min_value
        above = self.max_value is not None and value > self.max_value
        if below or above:
            raise self.fail(
                f"{self.field_name} must be between {self.min_value} and {self.max_value} (got {value})"
            )

    @property
    def rule_type(self) -> str:
        return "range"
