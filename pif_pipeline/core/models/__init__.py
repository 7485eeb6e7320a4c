"""
Core data models for the PIF submission pipeline.

All models use Pydantic for runtime validation and type safety.
"""

from .archive_key import ArchiveKey
from .coerced import Coerced
from .cost_record import MEASURES, SCENARIOS, YEAR_SPAN, CostRecord
from .operation_result import OperationResult, StagingIssue, StagingValidationResult
from .project_record import CostMatrix, ProjectRecord
from .site_context import SiteContext
from .submission_log import SubmissionLog
from .validation_issue import ERROR_TYPES, ValidationIssue, ValidationReport

__all__ = [
    "ArchiveKey",
    "Coerced",
    "CostMatrix",
    "CostRecord",
    "ERROR_TYPES",
    "MEASURES",
    "OperationResult",
    "ProjectRecord",
    "SCENARIOS",
    "SiteContext",
    "StagingIssue",
    "StagingValidationResult",
    "SubmissionLog",
    "ValidationIssue",
    "ValidationReport",
    "YEAR_SPAN",
]
