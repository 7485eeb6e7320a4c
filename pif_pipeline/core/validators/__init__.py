"""
Row validation rule implementations.

Provides validators for required fields, length ceilings, type checking,
ranges, line items, and custom business logic.
"""

from .base_validator import BaseValidator, ValidationError
from .custom_validator import CustomValidator, require_justification
from .length_validator import LengthValidator
from .line_item_validator import LineItemValidator
from .range_validator import RangeValidator
from .required_field_validator import RequiredFieldValidator
from .type_validator import TypeValidator

__all__ = [
    "BaseValidator",
    "ValidationError",
    "RequiredFieldValidator",
    "LengthValidator",
    "TypeValidator",
    "RangeValidator",
    "LineItemValidator",
    "CustomValidator",
    "require_justification",
]
