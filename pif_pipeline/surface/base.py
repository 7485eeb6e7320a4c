"""
Entry-surface protocol.

The pipeline reads cell values from a surface and writes back row
highlights, row deletions and status messages. Layout and presentation
belong to the surface, not to the pipeline.
"""

from typing import Protocol, runtime_checkable

from pif_pipeline.core.extract.source_block import SourceBlock
from pif_pipeline.core.layout.pif_layout import PifLayout


@runtime_checkable
class EntrySurface(Protocol):
    """Anything the pipeline can read rows from and report back to."""

    name: str

    def read_block(self, layout: PifLayout) -> SourceBlock:
        """Raw values covering every column and data row the layout needs."""
        ...

    def delete_row(self, row_number: int) -> None:
        """Delete one worksheet row; rows below move up by one."""
        ...

    def highlight_rows(self, row_numbers: list[int]) -> None:
        """Mark rows that have validation issues (replacing earlier marks)."""
        ...

    def write_status(self, message: str) -> None:
        """Show a short status message to the user."""
        ...
