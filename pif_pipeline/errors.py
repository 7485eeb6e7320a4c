"""
Exception hierarchy for the PIF submission pipeline.

Every error carries two messages: ``user_message`` is short and actionable and
is the only text shown on the entry surface; ``detail`` holds the technical
description (driver error text, SQLSTATE, parameter names) and is written to
the diagnostic log only.
"""


class PipelineError(Exception):
    """Base class for all pipeline failures."""

    default_user_message = "The operation could not be completed."

    def __init__(self, user_message: str | None = None, detail: str | None = None):
        self.user_message = user_message or self.default_user_message
        self.detail = detail or self.user_message
        super().__init__(self.user_message)


class ConnectivityError(PipelineError):
    """The backing store could not be reached."""

    default_user_message = (
        "Cannot connect to the PIF database. Check your network connection and try again."
    )


class ParameterBindingError(PipelineError):
    """A value could not be bound to its declared parameter type."""

    def __init__(self, procedure: str, parameter: str, reason: str):
        self.procedure = procedure
        self.parameter = parameter
        self.reason = reason
        super().__init__(
            user_message=f"Value for '{parameter}' does not match the database column type.",
            detail=f"{procedure}.{parameter}: {reason}",
        )


class StagingLoadError(PipelineError):
    """A staging insert failed; the whole batch was rolled back."""

    def __init__(self, table: str, row_index: int, row_number: int | None, detail: str):
        self.table = table
        self.row_index = row_index
        self.row_number = row_number
        where = f"row {row_number}" if row_number is not None else f"record #{row_index + 1}"
        super().__init__(
            user_message=f"Submission failed at {where}. No data was saved.",
            detail=f"{table} insert failed at index {row_index} (row {row_number}): {detail}",
        )


class PromotionError(PipelineError):
    """A promotion step failed and was rolled back."""

    def __init__(self, transition: str, detail: str, row_count: int = 0):
        self.transition = transition
        self.row_count = row_count
        super().__init__(
            user_message=(
                f"{transition} failed ({row_count} record(s) affected, all changes rolled back)."
            ),
            detail=f"{transition}: {detail}",
        )


class InvalidTransitionError(PipelineError):
    """A promotion was requested against the one-way lifecycle."""

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(
            user_message=f"Cannot move data from {current} to {requested}.",
            detail=f"transition {current} -> {requested} is not allowed",
        )


class ValidationBlockedError(PipelineError):
    """Submission was attempted with an unclean validation report."""

    def __init__(self, error_count: int, source: str = "entry surface"):
        self.error_count = error_count
        super().__init__(
            user_message=f"Fix {error_count} validation error(s) before submitting.",
            detail=f"{error_count} blocking validation error(s) reported by {source}",
        )
