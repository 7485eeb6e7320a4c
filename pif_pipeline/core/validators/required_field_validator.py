"""
RequiredFieldValidator - ensures a field is present and not blank.
"""

from typing import Any

from .base_validator import BaseValidator


class RequiredFieldValidator(BaseValidator):
    """
    Validates that a required field is not NULL or blank.

    The extractor already turns blank cells into None, but a whitespace-only
    string is still treated as missing.
    """

    error_type = "MissingRequiredField"

    def validate(self, value: Any, row) -> None:
        if value is None or (isinstance(value, str) and value.strip() == ""):
            raise self.fail(f"Missing required field: {self.field_name}")

    @property
    def rule_type(self) -> str:
        return "required_field"
