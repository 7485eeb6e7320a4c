"""
LineItemValidator - line items must be positive whole numbers.
"""

from typing import Any

from .base_validator import BaseValidator


class LineItemValidator(BaseValidator):
    """
    Blank line items default to 1; anything non-numeric or below 1 fails.
    """

    error_type = "InvalidDataType"

    def validate(self, value: Any, row) -> None:
        coerced = row.coercions.get(self.field_name)
        if coerced is not None and coerced.is_fallback:
            raise self.fail(f"Line item must be a positive integer (got '{coerced.raw}')")
        if value is not None and value < 1:
            raise self.fail(f"Line item must be a positive integer (got {value})")

    @property
    def rule_type(self) -> str:
        return "line_item"
