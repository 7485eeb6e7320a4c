"""
Unit tests for SourceBlock and RowExtractor.
"""

from decimal import Decimal

import pytest

from pif_pipeline.core.extract.extractor import RowExtractor
from pif_pipeline.core.extract.source_block import SourceBlock
from pif_pipeline.core.layout.pif_layout import DEFAULT_LAYOUT, ColumnRef


def block_from_rows(rows: dict[int, dict[int, object]], origin_column: int = 1) -> SourceBlock:
    """Build a block from {row_number: {absolute column: value}} starting at row 1."""
    height = max(rows)
    width = max(col for cells in rows.values() for col in cells) - origin_column + 1
    data = [[None] * width for _ in range(height)]
    for row_number, cells in rows.items():
        for column, value in cells.items():
            data[row_number - 1][column - origin_column] = value
    return SourceBlock(data, origin_row=1, origin_column=origin_column)


class TestSourceBlock:
    """Tests for absolute addressing in SourceBlock"""

    def test_cell_uses_absolute_positions(self):
        block = SourceBlock([["c1", "d1"], ["c2", "d2"]], origin_row=5, origin_column=3)
        assert block.cell(5, ColumnRef.of("C")) == "c1"
        assert block.cell(6, ColumnRef.of("D")) == "d2"

    def test_outside_block_is_none(self):
        block = SourceBlock([["c1"]], origin_row=5, origin_column=3)
        assert block.cell(4, ColumnRef.of("C")) is None
        assert block.cell(5, ColumnRef.of("B")) is None
        assert block.cell(5, ColumnRef.of("Z")) is None
        assert block.cell(6, ColumnRef.of("C")) is None

    def test_ragged_rows(self):
        block = SourceBlock([["a", "b"], ["c"]], origin_column=1)
        assert block.cell(2, ColumnRef.of("B")) is None

    def test_rejects_plain_int_column(self):
        block = SourceBlock([["a"]])
        with pytest.raises(TypeError, match="ColumnRef"):
            block.cell(1, 1)

    def test_row_numbers_are_absolute(self):
        block = SourceBlock([[1], [2], [3]], origin_row=4)
        assert list(block.row_numbers()) == [4, 5, 6]
        assert block.last_row == 6

    def test_invalid_origin(self):
        with pytest.raises(ValueError):
            SourceBlock([], origin_row=0)


class TestRowExtractor:
    """Tests for RowExtractor"""

    def test_extracts_typed_record(self, valid_row, cells):
        row_cells = cells(valid_row, {"target_requested": [1000, None, "2,500.25"]})
        block = block_from_rows({4: row_cells})

        rows = RowExtractor().extract(block)

        assert len(rows) == 1
        row = rows[0]
        assert row.row_number == 4
        record = row.record
        assert record.entity_id == "PIF001"
        assert record.project_id == "PRJ01"
        assert record.seg == 1234
        assert record.archive_flag is True
        assert record.include_flag is True
        assert record.justification is None
        assert record.costs.target_requested[:3] == [Decimal("1000"), None, Decimal("2500.25")]
        assert record.costs.closings_current == [None] * 6

    def test_same_result_when_block_starts_at_column_c(self, valid_row, cells):
        """Columns are absolute, so the block origin does not shift fields"""
        row_cells = cells(valid_row, {"closings_variance": [None, None, 7]})
        from_a = RowExtractor().extract(block_from_rows({4: row_cells}, origin_column=1))
        from_c = RowExtractor().extract(block_from_rows({4: row_cells}, origin_column=3))

        assert from_a[0].record == from_c[0].record
        assert from_c[0].record.change_type == "New"
        assert from_c[0].record.costs.closings_variance[2] == Decimal("7")

    def test_rows_without_key_are_skipped(self, valid_row, cells):
        blank_key = dict(valid_row, entity_id="   ")
        block = block_from_rows({
            4: cells(valid_row),
            5: cells(blank_key),
            6: cells(dict(valid_row, entity_id="PIF002")),
        })

        rows = RowExtractor().extract(block)

        assert [r.row_number for r in rows] == [4, 6]

    def test_header_rows_are_skipped(self, valid_row, cells):
        block = block_from_rows({
            3: cells({"entity_id": "PIF ID"}),
            4: cells(valid_row),
        })
        rows = RowExtractor().extract(block)
        assert [r.row_number for r in rows] == [4]

    def test_line_item_defaults_to_one(self, valid_row, cells):
        row = dict(valid_row)
        del row["line_item"]
        rows = RowExtractor().extract(block_from_rows({4: cells(row)}))
        assert rows[0].record.line_item == 1

    def test_bad_numeric_is_null_with_fallback(self, valid_row, cells):
        row = dict(valid_row, seg="twelve")
        extracted = RowExtractor().extract(block_from_rows({4: cells(row)}))[0]

        assert extracted.record.seg is None
        assert set(extracted.fallbacks()) == {"seg"}
        assert extracted.fallbacks()["seg"].raw == "twelve"

    def test_bad_cost_cell_is_recorded_by_column(self, valid_row, cells):
        row_cells = cells(valid_row, {"target_requested": [None, "TBD"]})
        extracted = RowExtractor().extract(block_from_rows({4: row_cells}))[0]

        assert extracted.record.costs.target_requested[1] is None
        assert "target_requested[U]" in extracted.fallbacks()

    def test_empty_block(self):
        assert RowExtractor().extract(SourceBlock([])) == []

    def test_uses_given_layout(self, valid_row, cells):
        layout = DEFAULT_LAYOUT.model_copy(update={"first_data_row": 6})
        block = block_from_rows({4: cells(valid_row), 6: cells(valid_row)})
        rows = RowExtractor(layout).extract(block)
        assert [r.row_number for r in rows] == [6]
