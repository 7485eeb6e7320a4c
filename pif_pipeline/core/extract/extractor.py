"""
Row extractor: turns a SourceBlock into typed project records.
"""

from typing import Any

from pydantic import BaseModel, Field

from pif_pipeline.core.extract.coercion import coerce, coerce_decimal
from pif_pipeline.core.extract.source_block import SourceBlock
from pif_pipeline.core.layout.pif_layout import DEFAULT_LAYOUT, PifLayout
from pif_pipeline.core.models.coerced import Coerced
from pif_pipeline.core.models.cost_record import MEASURES, SCENARIOS
from pif_pipeline.core.models.project_record import CostMatrix, ProjectRecord
from pif_pipeline.observability.logger import get_logger
from pif_pipeline.observability.metrics import coercion_fallbacks_total, increment_counter

logger = get_logger(__name__)


class ExtractedRow(BaseModel):
    """
    One non-empty entry-surface row.

    Attributes:
        row_number: Absolute worksheet row
        record: Typed project record
        coercions: Tagged coercion result per scalar field
    """

    row_number: int
    record: ProjectRecord
    coercions: dict[str, Coerced] = Field(default_factory=dict)

    def fallbacks(self) -> dict[str, Coerced]:
        """Fields whose raw value could not be converted."""
        return {name: c for name, c in self.coercions.items() if c.is_fallback}


class RowExtractor:
    """
    Reads typed records out of a SourceBlock using a PifLayout.

    A row is extracted only when its key column holds a non-blank value.
    """

    def __init__(self, layout: PifLayout | None = None):
        self.layout = layout or DEFAULT_LAYOUT

    def extract(self, block: SourceBlock) -> list[ExtractedRow]:
        """
        Extract every non-empty data row of the block, top to bottom.

        Rows above ``layout.first_data_row`` are treated as headers.

        Args:
            block: Raw cell values

        Returns:
            Extracted rows in worksheet order
        """
        key_column = self.layout.key_column
        extracted = []
        for row_number in block.row_numbers():
            if row_number < self.layout.first_data_row:
                continue
            key = coerce(block.cell(row_number, key_column), "string")
            if key.kind != "typed":
                continue
            extracted.append(self.extract_row(block, row_number))

        logger.debug(
            f"Extracted {len(extracted)} row(s) from {block!r}",
            extra={"row_count": len(extracted)},
        )
        return extracted

    def extract_row(self, block: SourceBlock, row_number: int) -> ExtractedRow:
        """Extract one row; the key column is assumed non-blank."""
        values: dict[str, Any] = {}
        coercions: dict[str, Coerced] = {}

        for spec in self.layout.field_specs:
            result = coerce(block.cell(row_number, spec.column), spec.kind)
            coercions[spec.name] = result
            if result.is_fallback:
                self._note_fallback(row_number, spec.name, spec.kind, result)
            if result.value is not None:
                values[spec.name] = result.value

        values["costs"] = self._extract_costs(block, row_number, coercions)
        record = ProjectRecord(**values)
        return ExtractedRow(row_number=row_number, record=record, coercions=coercions)

    def _extract_costs(
        self, block: SourceBlock, row_number: int, coercions: dict[str, Coerced]
    ) -> CostMatrix:
        """Read the six-column series; only cost fallbacks are kept in ``coercions``."""
        series: dict[str, list] = {}
        for scenario in SCENARIOS:
            for measure in MEASURES:
                name = CostMatrix.series_name(scenario, measure)
                cells = []
                for column in self.layout.costs.columns(scenario, measure):
                    result = coerce_decimal(block.cell(row_number, column))
                    if result.is_fallback:
                        cell_name = f"{name}[{column}]"
                        coercions[cell_name] = result
                        self._note_fallback(row_number, cell_name, "decimal", result)
                    cells.append(result.value)
                series[name] = cells
        return CostMatrix(**series)

    def _note_fallback(self, row_number: int, field_name: str, kind: str, result: Coerced) -> None:
        logger.debug(
            f"Row {row_number}: {field_name} fell back ({result.reason})",
            extra={"row_number": row_number, "field_name": field_name},
        )
        increment_counter(coercion_fallbacks_total, field_name=field_name.split("[")[0], kind=kind)
