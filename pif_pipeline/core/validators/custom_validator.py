"""
CustomValidator - validates using a custom Python function.
"""

from typing import Any

from .base_validator import BaseValidator


class CustomValidator(BaseValidator):
    """
    Validates using a custom validation function.

    Parameters:
    - validator_func: A callable that takes (value, row) and returns None on
                      success or raises ValueError on failure
    - error_type: Issue category reported on failure (default: BusinessRuleViolation)
    - rule_name: Optional name used in logs

    The validator function signature should be:
        def my_validator(value: Any, row: ExtractedRow) -> None:
            if not valid:
                raise ValueError("Validation failed")
    """

    def __init__(self, field_name: str, parameters: dict[str, Any] | None = None):
        super().__init__(field_name, parameters)

        self.validator_func = self.parameters.get("validator_func")
        if not self.validator_func:
            raise ValueError("CustomValidator requires 'validator_func' parameter")

        if not callable(self.validator_func):
            raise ValueError("validator_func must be callable")

        self.error_type = self.parameters.get("error_type", "BusinessRuleViolation")

    def validate(self, value: Any, row) -> None:
        try:
            self.validator_func(value, row)
        except ValueError as e:
            raise self.fail(str(e)) from e

    @property
    def rule_type(self) -> str:
        return "custom"


def require_justification(statuses: tuple[str, ...]):
    """
    Build the rule "rows whose status is one of ``statuses`` (any case) need a
    justification".
    """
    wanted = {s.strip().lower() for s in statuses}

    def check(value: Any, row) -> None:
        status = row.record.status
        if status is None or status.strip().lower() not in wanted:
            return
        if value is None or str(value).strip() == "":
            raise ValueError(f"Status '{status.strip()}' requires a justification")

    return check
