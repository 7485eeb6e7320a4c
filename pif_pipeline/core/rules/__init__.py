"""
Rule configuration and the validation engine.
"""

from .rule_config import RuleConfigBuilder, rules_for_layout
from .validation_engine import ValidationEngine

__all__ = ["RuleConfigBuilder", "ValidationEngine", "rules_for_layout"]
