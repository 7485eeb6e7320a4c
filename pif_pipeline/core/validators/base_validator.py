"""
Base validator interface for all row rules.

All validators must inherit from BaseValidator and implement the validate() method.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pif_pipeline.core.extract.extractor import ExtractedRow


class ValidationError(Exception):
    """Raised when a validation rule fails."""

    def __init__(self, rule_name: str, field_name: str, message: str, error_type: str):
        self.rule_name = rule_name
        self.field_name = field_name
        self.message = message
        self.error_type = error_type
        super().__init__(f"[{rule_name}] {field_name}: {message}")


class BaseValidator(ABC):
    """
    Abstract base class for all validators.

    Each validator implements one rule type (required_field, max_length,
    type_check, range, line_item, custom) and reports failures under a single
    issue category.
    """

    error_type: str = "InvalidDataType"

    def __init__(self, field_name: str, parameters: dict[str, Any] | None = None):
        """
        Initialize validator.

        Args:
            field_name: Name of the field to validate
            parameters: Rule-specific parameters (e.g., min/max for range)
        """
        self.field_name = field_name
        self.parameters = parameters or {}

    @abstractmethod
    def validate(self, value: Any, row: "ExtractedRow") -> None:
        """
        Validate a value against this rule.

        Args:
            value: The field value to validate
            row: The extracted row (record plus coercion results)

        Raises:
            ValidationError: If validation fails
        """
        pass

    @property
    @abstractmethod
    def rule_type(self) -> str:
        """Return the rule type identifier."""
        pass

    def fail(self, message: str) -> ValidationError:
        """Build a ValidationError for this validator."""
        return ValidationError(
            rule_name=self.rule_type,
            field_name=self.field_name,
            message=message,
            error_type=self.error_type,
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(field={self.field_name}, params={self.parameters})"
