"""
Staging table loader.

Replaces the contents of the two staging tables with one submission batch.
The truncate and every insert run inside a single transaction; the first
failing insert rolls the whole batch back.
"""

from datetime import date
from typing import Any

import psycopg
from pydantic import BaseModel, Field

from pif_pipeline.core.models import CostRecord, ProjectRecord
from pif_pipeline.errors import ParameterBindingError, StagingLoadError
from pif_pipeline.observability.logger import get_diagnostic_logger, get_logger
from pif_pipeline.observability.metrics import increment_counter, records_staged_total
from pif_pipeline.warehouse.connection import DatabaseConnectionPool
from pif_pipeline.warehouse.parameters import (
    COST_STAGING_PARAMS,
    PROJECT_STAGING_PARAMS,
    ParameterBinder,
)

logger = get_logger(__name__)

PROJECT_STAGING_TABLE = "pif_projects_staging"
COST_STAGING_TABLE = "pif_cost_staging"
INSERT_PROJECT_FUNCTION = "pif_insert_project_staging"
INSERT_COST_FUNCTION = "pif_insert_cost_staging"


class StagedProject(BaseModel):
    """A validated project record, its entry-surface row, and its cost rows."""

    row_number: int | None = None
    record: ProjectRecord
    costs: list[CostRecord] = Field(default_factory=list)


class StagingBatch(BaseModel):
    """Everything one submission writes to staging."""

    site: str
    projects: list[StagedProject] = Field(default_factory=list)


class StagingCounts(BaseModel):
    projects: int = 0
    costs: int = 0
    skipped_empty_costs: int = 0


def project_values(record: ProjectRecord) -> dict[str, Any]:
    """Parameter values for ``pif_insert_project_staging``."""
    return record.model_dump(exclude={"costs", "submitted_on"})


def cost_values(cost: CostRecord) -> dict[str, Any]:
    """Parameter values for ``pif_insert_cost_staging``; the year is stored as 12/31."""
    values = cost.model_dump(exclude={"fiscal_year"})
    values["fiscal_year_end"] = date(cost.fiscal_year, 12, 31)
    return values


class StagingWriter:
    """
    Loads a StagingBatch through the staging insert functions.

    Args:
        pool: Connection manager
        binder: Parameter binder (default: ParameterBinder())
        skip_empty_costs: Leave out cost rows whose three values are all NULL
    """

    def __init__(
        self,
        pool: DatabaseConnectionPool,
        binder: ParameterBinder | None = None,
        skip_empty_costs: bool = True,
    ):
        self.pool = pool
        self.binder = binder or ParameterBinder()
        self.skip_empty_costs = skip_empty_costs

    def load(self, batch: StagingBatch) -> StagingCounts:
        """
        Truncate staging and insert the batch, all or nothing.

        Args:
            batch: Projects with their cost rows

        Returns:
            Number of project and cost rows written

        Raises:
            StagingLoadError: If any insert fails (nothing is committed)
            ConnectivityError: If the database cannot be reached
        """
        counts = StagingCounts()

        with self.pool.get_connection() as conn:
            with conn.transaction():
                with conn.cursor() as cur:
                    cur.execute(f"TRUNCATE TABLE {COST_STAGING_TABLE}, {PROJECT_STAGING_TABLE}")

                    for index, item in enumerate(batch.projects):
                        self._call(
                            cur, INSERT_PROJECT_FUNCTION, PROJECT_STAGING_PARAMS,
                            project_values(item.record), PROJECT_STAGING_TABLE, index, item.row_number,
                        )
                        counts.projects += 1

                        for cost in item.costs:
                            if self.skip_empty_costs and cost.is_empty:
                                counts.skipped_empty_costs += 1
                                continue
                            self._call(
                                cur, INSERT_COST_FUNCTION, COST_STAGING_PARAMS,
                                cost_values(cost), COST_STAGING_TABLE, index, item.row_number,
                            )
                            counts.costs += 1

        increment_counter(records_staged_total, counts.projects, site=batch.site, table="project")
        increment_counter(records_staged_total, counts.costs, site=batch.site, table="cost")
        logger.info(
            f"Staged {counts.projects} project(s) and {counts.costs} cost row(s)",
            extra={"site": batch.site, "projects": counts.projects, "costs": counts.costs},
        )
        return counts

    def _call(
        self,
        cur: psycopg.Cursor,
        function: str,
        specs: list,
        values: dict[str, Any],
        table: str,
        index: int,
        row_number: int | None,
    ) -> None:
        try:
            call = self.binder.bind_call(function, specs, values)
            cur.execute(call.query, call.params)
        except ParameterBindingError as e:
            raise self._load_error(table, index, row_number, e.detail) from e
        except psycopg.Error as e:
            sqlstate = getattr(e, "sqlstate", None)
            raise self._load_error(table, index, row_number, f"[{sqlstate}] {e}") from e

    @staticmethod
    def _load_error(table: str, index: int, row_number: int | None, detail: str) -> StagingLoadError:
        error = StagingLoadError(table, index, row_number, detail)
        get_diagnostic_logger().error(error.detail, extra={"table": table, "row_index": index})
        return error
