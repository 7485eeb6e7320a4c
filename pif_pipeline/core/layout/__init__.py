"""
Entry-surface layout descriptor and its YAML loader.
"""

from .layout_config import LayoutConfigLoader, load_layout
from .pif_layout import DEFAULT_LAYOUT, ColumnRef, CostBlock, FieldSpec, PifLayout

__all__ = [
    "ColumnRef",
    "CostBlock",
    "DEFAULT_LAYOUT",
    "FieldSpec",
    "LayoutConfigLoader",
    "PifLayout",
    "load_layout",
]
