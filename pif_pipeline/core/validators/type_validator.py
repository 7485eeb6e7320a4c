"""
TypeValidator - reports cells that could not be coerced to their declared kind.
"""

from typing import Any

from .base_validator import BaseValidator


class TypeValidator(BaseValidator):
    """
    Fails when the extractor fell back on this field.

    For a cost series (``target_requested`` ...) every cell of the series is
    checked; cost cells are recorded as ``<series>[<column>]``.

    Parameters:
    - expected_type: Declared kind, used in the message (default: "number")
    """

    error_type = "InvalidDataType"

    def __init__(self, field_name: str, parameters: dict[str, Any] | None = None):
        super().__init__(field_name, parameters)
        self.expected_type = self.parameters.get("expected_type", "number")

    def validate(self, value: Any, row) -> None:
        prefix = f"{self.field_name}["
        bad = [
            (name, coerced)
            for name, coerced in row.coercions.items()
            if coerced.is_fallback and (name == self.field_name or name.startswith(prefix))
        ]
        if not bad:
            return

        if len(bad) == 1 and bad[0][0] == self.field_name:
            raise self.fail(f"{self.field_name} must be a valid {self.expected_type} (got '{bad[0][1].raw}')")

        cells = ", ".join(f"{name[len(prefix):-1]}='{coerced.raw}'" for name, coerced in bad)
        raise self.fail(f"{self.field_name} has non-numeric cell(s): {cells}")

    @property
    def rule_type(self) -> str:
        return "type_check"
