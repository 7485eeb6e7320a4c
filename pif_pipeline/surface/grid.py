"""
In-memory entry surface.
"""

from typing import Any, Sequence

from pif_pipeline.core.extract.source_block import SourceBlock
from pif_pipeline.core.layout.pif_layout import PifLayout


class GridSurface:
    """
    Rows of cell values held in memory, addressed like a worksheet.

    ``rows[0]`` is worksheet row 1 and ``rows[i][0]`` is column A.
    """

    def __init__(self, rows: Sequence[Sequence[Any]] | None = None, name: str = "grid"):
        self.rows: list[list[Any]] = [list(row) for row in rows or []]
        self.name = name
        self.highlighted: set[int] = set()
        self.messages: list[str] = []

    def set_row(self, row_number: int, values: dict[int, Any]) -> None:
        """Set cells of one row by absolute column index, growing the grid as needed."""
        while len(self.rows) < row_number:
            self.rows.append([])
        row = self.rows[row_number - 1]
        for column, value in values.items():
            while len(row) < column:
                row.append(None)
            row[column - 1] = value

    def read_block(self, layout: PifLayout) -> SourceBlock:
        return SourceBlock(self.rows, origin_row=1, origin_column=1)

    def delete_row(self, row_number: int) -> None:
        if not 1 <= row_number <= len(self.rows):
            raise IndexError(f"Row {row_number} is outside the grid (1..{len(self.rows)})")
        del self.rows[row_number - 1]
        self.highlighted = {
            r - 1 if r > row_number else r for r in self.highlighted if r != row_number
        }

    def highlight_rows(self, row_numbers: list[int]) -> None:
        self.highlighted = set(row_numbers)

    def write_status(self, message: str) -> None:
        self.messages.append(message)

    @property
    def last_status(self) -> str | None:
        return self.messages[-1] if self.messages else None
