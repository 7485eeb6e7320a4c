"""
Rectangular block of raw cell values read from an entry surface.
"""

from typing import Any, Iterator, Sequence

from pif_pipeline.core.layout.pif_layout import ColumnRef


class SourceBlock:
    """
    Raw cell values plus the absolute position of their top-left cell.

    All lookups take an absolute ``ColumnRef`` and an absolute row number;
    the block converts them to its own offsets. Callers never see or pass
    block-relative indices, so a block that starts at column C is read
    exactly like one that starts at column A.
    """

    def __init__(self, rows: Sequence[Sequence[Any]], origin_row: int = 1, origin_column: int = 1):
        """
        Args:
            rows: Cell values, row-major
            origin_row: Worksheet row of ``rows[0]``
            origin_column: Worksheet column of ``rows[i][0]``
        """
        if origin_row < 1 or origin_column < 1:
            raise ValueError("Block origin must be a 1-based worksheet position")
        self._rows = [list(row) for row in rows]
        self.origin_row = origin_row
        self.origin_column = origin_column

    @property
    def height(self) -> int:
        return len(self._rows)

    @property
    def last_row(self) -> int:
        return self.origin_row + self.height - 1

    def row_numbers(self) -> Iterator[int]:
        """Absolute row numbers covered by the block, top to bottom."""
        return iter(range(self.origin_row, self.origin_row + self.height))

    def covers(self, column: ColumnRef) -> bool:
        offset = column.index - self.origin_column
        return offset >= 0 and any(offset < len(row) for row in self._rows)

    def cell(self, row_number: int, column: ColumnRef) -> Any:
        """
        Value at an absolute position; None outside the block.

        Raises:
            TypeError: If ``column`` is not a ColumnRef
        """
        if not isinstance(column, ColumnRef):
            raise TypeError(f"column must be a ColumnRef, got {type(column).__name__}")

        row_offset = row_number - self.origin_row
        col_offset = column.index - self.origin_column
        if row_offset < 0 or row_offset >= self.height or col_offset < 0:
            return None

        row = self._rows[row_offset]
        if col_offset >= len(row):
            return None
        return row[col_offset]

    def __repr__(self) -> str:
        return (
            f"SourceBlock(origin_row={self.origin_row}, origin_column={self.origin_column}, "
            f"height={self.height})"
        )
