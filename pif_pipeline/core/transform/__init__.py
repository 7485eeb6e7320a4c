"""
Cost block reshaping.
"""

from .unpivot import COSTS_PER_RECORD, fiscal_years, pivot, unpivot, unpivot_all

__all__ = ["COSTS_PER_RECORD", "fiscal_years", "pivot", "unpivot", "unpivot_all"]
