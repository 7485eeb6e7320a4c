"""
Archive reconciliation of entry-surface rows.
"""

from .reconciler import (
    ArchiveReconciler,
    ReconcileOutcome,
    ReconcileResult,
    delete_bottom_up,
)

__all__ = ["ArchiveReconciler", "ReconcileOutcome", "ReconcileResult", "delete_bottom_up"]
