"""
Entry surfaces the pipeline reads from and reports back to.
"""

from .base import EntrySurface
from .grid import GridSurface
from .workbook import WorkbookSurface

__all__ = ["EntrySurface", "GridSurface", "WorkbookSurface"]
