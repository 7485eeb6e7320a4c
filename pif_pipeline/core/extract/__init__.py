"""
Row extraction and lenient type coercion.
"""

from .coercion import coerce
from .extractor import ExtractedRow, RowExtractor
from .source_block import SourceBlock

__all__ = ["ExtractedRow", "RowExtractor", "SourceBlock", "coerce"]
