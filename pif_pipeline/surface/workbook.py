"""
Excel workbook entry surface (openpyxl).

Reads the data rows of one worksheet, highlights rows with issues, deletes
reconciled rows and writes status text into a fixed cell. Changes are kept
in memory until ``save()``.
"""

from pathlib import Path

import openpyxl
from openpyxl.styles import PatternFill

from pif_pipeline.core.extract.source_block import SourceBlock
from pif_pipeline.core.layout.pif_layout import PifLayout
from pif_pipeline.observability.logger import get_logger

logger = get_logger(__name__)

ISSUE_FILL = PatternFill(start_color="FFFF9999", end_color="FFFF9999", fill_type="solid")
NO_FILL = PatternFill(fill_type=None)


class WorkbookSurface:
    """
    One worksheet of an .xlsx file.

    Args:
        path: Workbook file
        sheet: Sheet name (default: the active sheet)
        status_cell: Cell receiving status messages
    """

    def __init__(self, path: str | Path, sheet: str | None = None, status_cell: str = "A1"):
        self.path = Path(path)
        self.name = self.path.name
        self.status_cell = status_cell
        self.workbook = openpyxl.load_workbook(self.path)
        self.sheet = self.workbook[sheet] if sheet else self.workbook.active
        self._highlight_columns: tuple[int, int] | None = None
        self._first_data_row = 1

    def read_block(self, layout: PifLayout) -> SourceBlock:
        """
        Values from the first data row down, between the left-most and
        right-most layout columns.
        """
        first_col = min(spec.column.index for spec in layout.field_specs)
        first_col = min([first_col] + [c.index for c in layout.costs.all_columns()])
        last_col = layout.last_column.index
        self._highlight_columns = (first_col, last_col)
        self._first_data_row = layout.first_data_row

        max_row = self.sheet.max_row
        if max_row < layout.first_data_row:
            return SourceBlock([], origin_row=layout.first_data_row, origin_column=first_col)

        rows = self.sheet.iter_rows(
            min_row=layout.first_data_row,
            max_row=max_row,
            min_col=first_col,
            max_col=last_col,
            values_only=True,
        )
        block = SourceBlock(list(rows), origin_row=layout.first_data_row, origin_column=first_col)
        logger.debug(f"Read {block!r} from {self.name}")
        return block

    def delete_row(self, row_number: int) -> None:
        if row_number < self._first_data_row or row_number > self.sheet.max_row:
            raise IndexError(f"Row {row_number} is not a data row of {self.name}")
        self.sheet.delete_rows(row_number, 1)

    def highlight_rows(self, row_numbers: list[int]) -> None:
        if self._highlight_columns is None:
            raise RuntimeError("read_block() must be called before highlight_rows()")
        first_col, last_col = self._highlight_columns
        marked = set(row_numbers)
        for row in self.sheet.iter_rows(
            min_row=self._first_data_row, max_row=self.sheet.max_row,
            min_col=first_col, max_col=last_col,
        ):
            fill = ISSUE_FILL if row[0].row in marked else NO_FILL
            for cell in row:
                cell.fill = fill

    def write_status(self, message: str) -> None:
        self.sheet[self.status_cell] = message

    def save(self, path: str | Path | None = None) -> Path:
        target = Path(path) if path else self.path
        self.workbook.save(target)
        logger.info(f"Saved workbook {target}")
        return target
