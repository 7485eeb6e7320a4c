"""
CostRecord model representing one normalized (scenario, fiscal year) cost row.
"""

from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field

Scenario = Literal["Target", "Closings"]

SCENARIOS: tuple[Scenario, ...] = ("Target", "Closings")
MEASURES: tuple[str, ...] = ("requested", "current", "variance")
YEAR_SPAN = 6
MIN_FISCAL_YEAR = 1900
MAX_FISCAL_YEAR = 9999
# Latest base year whose six-year window still ends within MAX_FISCAL_YEAR
MAX_BASE_YEAR = MAX_FISCAL_YEAR - (YEAR_SPAN - 1)


class CostRecord(BaseModel):
    """
    One row of the normalized cost layout.

    Attributes:
        entity_id: PIF identifier of the owning project record
        project_id: Project identifier of the owning project record
        line_item: Line item of the owning project record
        scenario: "Target" or "Closings"
        fiscal_year: Calendar year the values apply to (fiscal year ends 12/31)
        requested_value: User-entered proposal
        current_value: Current / approved baseline
        variance_value: Difference between requested and current
    """

    entity_id: str
    project_id: str | None = None
    line_item: int = 1
    scenario: Scenario
    fiscal_year: int = Field(..., ge=MIN_FISCAL_YEAR, le=MAX_FISCAL_YEAR)
    requested_value: Decimal | None = None
    current_value: Decimal | None = None
    variance_value: Decimal | None = None

    @property
    def is_empty(self) -> bool:
        """True when all three measures are NULL."""
        return (
            self.requested_value is None
            and self.current_value is None
            and self.variance_value is None
        )

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "entity_id": "PIF001",
                "project_id": "PRJ01",
                "line_item": 1,
                "scenario": "Target",
                "fiscal_year": 2026,
                "requested_value": "1000.00",
                "current_value": "800.00",
                "variance_value": "200.00",
            }
        }
