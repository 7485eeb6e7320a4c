"""
Entry-surface layout: the single description of where every field lives.

Column positions are always absolute worksheet columns (A = 1). Nothing in
this module knows where a particular source block starts; translating an
absolute column into a block offset is the job of ``SourceBlock``.
"""

from typing import Literal

from openpyxl.utils import column_index_from_string, get_column_letter
from pydantic import BaseModel, Field, field_validator, model_validator

from pif_pipeline.core.models.cost_record import MEASURES, SCENARIOS, YEAR_SPAN
from pif_pipeline.core.models.project_record import CostMatrix

FieldKind = Literal["string", "integer", "decimal", "boolean", "date"]


class ColumnRef(BaseModel):
    """
    Absolute 1-based column on the entry surface.

    Attributes:
        index: Column number where column A is 1
    """

    index: int = Field(..., ge=1, le=16384)

    @classmethod
    def of(cls, column: "int | str | ColumnRef") -> "ColumnRef":
        """Build a ColumnRef from a number, a letter ("C") or another ColumnRef."""
        if isinstance(column, ColumnRef):
            return column
        if isinstance(column, bool):
            # YAML reads unquoted ON, NO and OFF as booleans
            raise ValueError(f"Column must be a letter or number, got {column!r}; quote column letters")
        if isinstance(column, str):
            text = column.strip()
            if text.isdigit():
                return cls(index=int(text))
            return cls(index=column_index_from_string(text.upper()))
        return cls(index=column)

    @property
    def letter(self) -> str:
        return get_column_letter(self.index)

    def shifted(self, offset: int) -> "ColumnRef":
        """Column ``offset`` positions to the right."""
        return ColumnRef(index=self.index + offset)

    def __str__(self) -> str:
        return self.letter

    class Config:
        frozen = True


class FieldSpec(BaseModel):
    """
    One scalar field of a project record.

    Attributes:
        name: ProjectRecord attribute name
        column: Absolute source column
        kind: Coercion kind
        max_length: Storage ceiling for string fields (None = unbounded)
        required: Must be non-blank
    """

    name: str
    column: ColumnRef
    kind: FieldKind = "string"
    max_length: int | None = Field(None, gt=0)
    required: bool = False

    @field_validator("column", mode="before")
    @classmethod
    def parse_column(cls, v):
        return ColumnRef.of(v)

    class Config:
        frozen = True


class CostBlock(BaseModel):
    """
    Start column of each scenario x measure series; each series spans six
    consecutive columns (base year first).
    """

    starts: dict[str, ColumnRef]

    @field_validator("starts", mode="before")
    @classmethod
    def parse_starts(cls, v):
        return {name: ColumnRef.of(col) for name, col in v.items()}

    @model_validator(mode="after")
    def check_series(self):
        expected = {CostMatrix.series_name(s, m) for s in SCENARIOS for m in MEASURES}
        missing = expected - set(self.starts)
        unknown = set(self.starts) - expected
        if missing:
            raise ValueError(f"Cost block is missing series: {sorted(missing)}")
        if unknown:
            raise ValueError(f"Cost block has unknown series: {sorted(unknown)}")
        return self

    def columns(self, scenario: str, measure: str) -> list[ColumnRef]:
        """The six absolute columns of one series."""
        start = self.starts[CostMatrix.series_name(scenario, measure)]
        return [start.shifted(offset) for offset in range(YEAR_SPAN)]

    def all_columns(self) -> list[ColumnRef]:
        return [
            col
            for scenario in SCENARIOS
            for measure in MEASURES
            for col in self.columns(scenario, measure)
        ]


class PifLayout(BaseModel):
    """
    Schema descriptor consumed by the extractor and the validation engine.

    Attributes:
        field_specs: Scalar fields of a project record
        costs: Wide cost block
        key_field: Field whose non-blank value marks a row as present
        site_field: Field holding the row's own site code
        first_data_row: First worksheet row holding data (rows above are headers)
    """

    field_specs: list[FieldSpec]
    costs: CostBlock
    key_field: str = "entity_id"
    site_field: str = "site"
    first_data_row: int = Field(4, ge=1)

    @model_validator(mode="after")
    def check_columns(self):
        names = [spec.name for spec in self.field_specs]
        if len(names) != len(set(names)):
            raise ValueError("Layout field names must be unique")
        if self.key_field not in names:
            raise ValueError(f"Key field '{self.key_field}' is not in the layout")

        used: dict[int, str] = {}
        for spec in self.field_specs:
            if spec.column.index in used:
                raise ValueError(
                    f"Column {spec.column} is used by both "
                    f"'{used[spec.column.index]}' and '{spec.name}'"
                )
            used[spec.column.index] = spec.name
        for col in self.costs.all_columns():
            if col.index in used:
                raise ValueError(f"Cost column {col} overlaps field '{used[col.index]}'")
            used[col.index] = "costs"
        return self

    def field(self, name: str) -> FieldSpec | None:
        for spec in self.field_specs:
            if spec.name == name:
                return spec
        return None

    @property
    def key_column(self) -> ColumnRef:
        return self.field(self.key_field).column

    @property
    def site_column(self) -> ColumnRef | None:
        spec = self.field(self.site_field)
        return spec.column if spec else None

    @property
    def last_column(self) -> ColumnRef:
        """Right-most column the layout reads."""
        indices = [spec.column.index for spec in self.field_specs]
        indices.extend(col.index for col in self.costs.all_columns())
        return ColumnRef(index=max(indices))


def _field(name, column, kind="string", max_length=None, required=False) -> FieldSpec:
    return FieldSpec(name=name, column=column, kind=kind, max_length=max_length, required=required)


# Default workbook layout; data starts in column C. Lengths mirror the
# storage schema in docker/init-db.sql.
DEFAULT_LAYOUT = PifLayout(
    field_specs=[
        _field("archive_flag", "C", "boolean"),
        _field("include_flag", "D", "boolean"),
        _field("accounting_treatment", "E", max_length=14),
        _field("change_type", "F", max_length=12, required=True),
        _field("entity_id", "G", max_length=16),
        _field("seg", "H", "integer"),
        _field("opco", "I", max_length=4),
        _field("site", "J", max_length=4),
        _field("strategic_rank", "K", max_length=26),
        _field("funding_project", "L", max_length=10),
        _field("project_name", "M", max_length=35),
        _field("original_isd", "N", max_length=20),
        _field("revised_isd", "O", max_length=20),
        _field("lcm_issue", "P", max_length=20),
        _field("status", "Q", max_length=58),
        _field("category", "R", max_length=26),
        _field("justification", "S", max_length=192),
        _field("moving_isd_year", "AL", max_length=1),
        _field("prior_year_spend", "AM", "decimal"),
        _field("project_id", "BF", max_length=10, required=True),
        _field("line_item", "BG", "integer"),
    ],
    costs=CostBlock(
        starts={
            "target_requested": "T",
            "target_current": "Z",
            "target_variance": "AF",
            "closings_requested": "AN",
            "closings_current": "AT",
            "closings_variance": "AZ",
        }
    ),
)
