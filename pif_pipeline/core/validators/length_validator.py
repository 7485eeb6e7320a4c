"""
LengthValidator - enforces storage length ceilings on string fields.
"""

from typing import Any

from .base_validator import BaseValidator


class LengthValidator(BaseValidator):
    """
    Validates that a string value fits its destination column.

    Parameters:
    - max_length: Maximum number of characters (required)
    """

    error_type = "FieldTooLong"

    def __init__(self, field_name: str, parameters: dict[str, Any] | None = None):
        super().__init__(field_name, parameters)

        self.max_length = self.parameters.get("max_length")
        if not isinstance(self.max_length, int) or self.max_length < 1:
            raise ValueError("LengthValidator requires a positive 'max_length' parameter")

    def validate(self, value: Any, row) -> None:
        if not isinstance(value, str):
            return

        if len(value) > self.max_length:
            raise self.fail(
                f"{self.field_name} is {len(value)} characters long; "
                f"the limit is {self.max_length}"
            )

    @property
    def rule_type(self) -> str:
        return "max_length"
