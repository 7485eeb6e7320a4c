"""
PIF submission pipeline: extract, validate, unpivot, stage, promote and
reconcile project impact form records.
"""

__version__ = "1.0.0"
