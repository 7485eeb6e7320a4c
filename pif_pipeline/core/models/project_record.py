"""
ProjectRecord model representing one business change request row of the
entry surface, including its wide per-year cost cells.
"""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from .cost_record import MEASURES, SCENARIOS, YEAR_SPAN


def _empty_series() -> list[Decimal | None]:
    return [None] * YEAR_SPAN


class CostMatrix(BaseModel):
    """
    Wide cost cells of a project: 2 scenarios x 3 measures x 6 fiscal years.

    Each series holds the values for the base year and the five following
    years, in that order.
    """

    target_requested: list[Decimal | None] = Field(default_factory=_empty_series)
    target_current: list[Decimal | None] = Field(default_factory=_empty_series)
    target_variance: list[Decimal | None] = Field(default_factory=_empty_series)
    closings_requested: list[Decimal | None] = Field(default_factory=_empty_series)
    closings_current: list[Decimal | None] = Field(default_factory=_empty_series)
    closings_variance: list[Decimal | None] = Field(default_factory=_empty_series)

    @field_validator(
        "target_requested", "target_current", "target_variance",
        "closings_requested", "closings_current", "closings_variance",
    )
    @classmethod
    def check_year_span(cls, v):
        """Every series must cover exactly six fiscal years."""
        if len(v) != YEAR_SPAN:
            raise ValueError(f"cost series must have {YEAR_SPAN} values, got {len(v)}")
        return v

    @staticmethod
    def series_name(scenario: str, measure: str) -> str:
        """Attribute name holding the series for a scenario and measure."""
        if scenario not in SCENARIOS:
            raise ValueError(f"Unknown scenario: {scenario}")
        if measure not in MEASURES:
            raise ValueError(f"Unknown measure: {measure}")
        return f"{scenario.lower()}_{measure}"

    def series(self, scenario: str, measure: str) -> list[Decimal | None]:
        """Return the six-year series for a scenario and measure."""
        return getattr(self, self.series_name(scenario, measure))


class ProjectRecord(BaseModel):
    """
    Typed view of one entry-surface row.

    Field values are whatever the extractor could coerce; length ceilings and
    business rules are checked by the validation engine, not here, so that an
    over-long value is reported instead of rejected at construction time.

    Attributes:
        entity_id: PIF identifier (<= 16 chars in the store)
        project_id: Project identifier (<= 10 chars in the store)
        line_item: Detail line within the same PIF and project (defaults to 1)
        status: Workflow status ("Approved", "Dispositioned", ...)
        change_type: Kind of change requested
        site: Site code the row belongs to
        costs: Wide per-year cost cells
    """

    entity_id: str
    project_id: str | None = None
    line_item: int = 1
    status: str | None = None
    change_type: str | None = None
    accounting_treatment: str | None = None
    category: str | None = None
    seg: int | None = None
    opco: str | None = None
    site: str | None = None
    strategic_rank: str | None = None
    funding_project: str | None = None
    project_name: str | None = None
    original_isd: str | None = None
    revised_isd: str | None = None
    moving_isd_year: str | None = None
    lcm_issue: str | None = None
    justification: str | None = None
    prior_year_spend: Decimal | None = None
    archive_flag: bool | None = None
    include_flag: bool | None = None
    submitted_on: date | None = None
    costs: CostMatrix = Field(default_factory=CostMatrix)

    @property
    def key(self) -> tuple[str, str | None, int]:
        """Composite uniqueness key within a batch and the staging table."""
        return (self.entity_id, self.project_id, self.line_item)

    @property
    def archive_key(self) -> str:
        """Key used to match the row against archived records."""
        return f"{self.entity_id}|{self.project_id or ''}"

    class Config:
        json_schema_extra = {
            "example": {
                "entity_id": "PIF001",
                "project_id": "PRJ01",
                "line_item": 1,
                "status": "Approved",
                "change_type": "New",
                "site": "ANO",
                "justification": "Emergent outage scope",
            }
        }
