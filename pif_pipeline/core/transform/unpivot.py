"""
Cost unpivot transformer.

Reshapes the wide cost block of a project record (2 scenarios x 3 measures x
6 fiscal years) into normalized CostRecords and back. This is mechanical
reshaping only: all-NULL rows are emitted, never filtered.
"""

from collections.abc import Iterable

from pif_pipeline.core.models.cost_record import SCENARIOS, YEAR_SPAN, CostRecord
from pif_pipeline.core.models.project_record import CostMatrix, ProjectRecord

COSTS_PER_RECORD = len(SCENARIOS) * YEAR_SPAN


def fiscal_years(base_year: int) -> list[int]:
    """The six fiscal years covered by the cost block."""
    return [base_year + offset for offset in range(YEAR_SPAN)]


def unpivot(record: ProjectRecord, base_year: int) -> list[CostRecord]:
    """
    Expand a project's wide cost cells into 12 CostRecords.

    Args:
        record: Project record with its CostMatrix
        base_year: Fiscal year of the first column of every series

    Returns:
        Target rows for base_year..base_year+5, then the Closings rows
    """
    costs = record.costs
    rows = []
    for scenario in SCENARIOS:
        requested = costs.series(scenario, "requested")
        current = costs.series(scenario, "current")
        variance = costs.series(scenario, "variance")
        for offset, year in enumerate(fiscal_years(base_year)):
            rows.append(
                CostRecord(
                    entity_id=record.entity_id,
                    project_id=record.project_id,
                    line_item=record.line_item,
                    scenario=scenario,
                    fiscal_year=year,
                    requested_value=requested[offset],
                    current_value=current[offset],
                    variance_value=variance[offset],
                )
            )
    return rows


def unpivot_all(records: Iterable[ProjectRecord], base_year: int) -> list[CostRecord]:
    """Unpivot a batch, keeping record order."""
    return [cost for record in records for cost in unpivot(record, base_year)]


def pivot(cost_records: Iterable[CostRecord], base_year: int) -> CostMatrix:
    """
    Rebuild the wide CostMatrix from one project's cost records.

    Raises:
        ValueError: If a record falls outside the six-year window or a
            (scenario, year) pair appears twice
    """
    series = {
        CostMatrix.series_name(scenario, measure): [None] * YEAR_SPAN
        for scenario in SCENARIOS
        for measure in ("requested", "current", "variance")
    }
    seen: set[tuple[str, int]] = set()

    for cost in cost_records:
        offset = cost.fiscal_year - base_year
        if not 0 <= offset < YEAR_SPAN:
            raise ValueError(
                f"Fiscal year {cost.fiscal_year} is outside {base_year}..{base_year + YEAR_SPAN - 1}"
            )
        slot = (cost.scenario, cost.fiscal_year)
        if slot in seen:
            raise ValueError(f"Duplicate cost row for {cost.scenario} {cost.fiscal_year}")
        seen.add(slot)

        series[CostMatrix.series_name(cost.scenario, "requested")][offset] = cost.requested_value
        series[CostMatrix.series_name(cost.scenario, "current")][offset] = cost.current_value
        series[CostMatrix.series_name(cost.scenario, "variance")][offset] = cost.variance_value

    return CostMatrix(**series)
