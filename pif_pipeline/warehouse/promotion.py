"""
Promotion state machine: Staging -> Inflight -> Archived.

Transitions are one-way. Each step runs in one transaction together with its
backup tables and its submission log entry; a failure rolls all of it back
and leaves the previous inflight / archive contents untouched.
"""

from datetime import datetime
from enum import Enum

import psycopg
from psycopg import sql

from pif_pipeline.config import DEFAULT_APPROVED_STATUSES
from pif_pipeline.core.models import SiteContext, SubmissionLog
from pif_pipeline.errors import InvalidTransitionError, PromotionError
from pif_pipeline.observability.logger import get_diagnostic_logger, get_logger, log_operation
from pif_pipeline.observability.metrics import increment_counter, promotions_total
from pif_pipeline.utils.validation import backup_table_name, validate_site
from pif_pipeline.warehouse.audit import write_submission_log
from pif_pipeline.warehouse.connection import DatabaseConnectionPool

logger = get_logger(__name__)

INFLIGHT_TABLES = ("pif_projects_inflight", "pif_cost_inflight")


class PromotionState(str, Enum):
    STAGING = "Staging"
    INFLIGHT = "Inflight"
    ARCHIVED = "Archived"


ALLOWED_TRANSITIONS = {
    PromotionState.STAGING: PromotionState.INFLIGHT,
    PromotionState.INFLIGHT: PromotionState.ARCHIVED,
}


class PromotionResult:
    """Counts reported by one successful promotion step."""

    def __init__(self, transition: str, projects: int, costs: int, backups: tuple[str, ...] = ()):
        self.transition = transition
        self.projects = projects
        self.costs = costs
        self.backups = backups

    def __repr__(self) -> str:
        return (
            f"PromotionResult(transition={self.transition!r}, projects={self.projects}, "
            f"costs={self.costs}, backups={self.backups})"
        )


class PromotionStateMachine:
    """
    Moves a site's data through the lifecycle.

    The machine starts in ``initial_state`` (Staging after a submission;
    Inflight when archiving a previously committed snapshot) and only ever
    moves forward.
    """

    def __init__(
        self,
        pool: DatabaseConnectionPool,
        approved_statuses: tuple[str, ...] = DEFAULT_APPROVED_STATUSES,
        initial_state: PromotionState = PromotionState.STAGING,
        clock=datetime.now,
    ):
        self.pool = pool
        self.approved_statuses = tuple(approved_statuses)
        self.state = initial_state
        self._clock = clock

    def _require(self, target: PromotionState) -> None:
        if ALLOWED_TRANSITIONS.get(self.state) != target:
            raise InvalidTransitionError(self.state.value, target.value)

    def commit_to_inflight(self, context: SiteContext) -> PromotionResult:
        """
        Replace the site's inflight snapshot with the staged rows.

        Backs up both inflight tables first, then calls
        ``pif_commit_to_inflight(site)`` and writes the submission log entry.

        Args:
            context: Acting site and user

        Returns:
            PromotionResult with moved row counts and backup table names

        Raises:
            InvalidTransitionError: If the machine is not in Staging
            PromotionError: If any step fails (everything is rolled back)
        """
        self._require(PromotionState.INFLIGHT)
        site = validate_site(context.site)
        transition = "commit_to_inflight"
        stamp = self._clock().strftime("%Y%m%d%H%M%S")
        pending = 0

        with log_operation("Commit staging to inflight", logger=logger, site=site):
            try:
                with self.pool.get_connection() as conn:
                    with conn.transaction():
                        with conn.cursor() as cur:
                            cur.execute(
                                "SELECT count(*) AS n FROM pif_projects_staging "
                                "WHERE upper(btrim(site)) = upper(%s)",
                                (site,),
                            )
                            pending = cur.fetchone()["n"]

                            backups = self._backup_inflight(cur, stamp)
                            cur.execute(
                                "SELECT project_count, cost_count FROM pif_commit_to_inflight(%s)",
                                (site,),
                            )
                            row = cur.fetchone()
                            result = PromotionResult(
                                transition, row["project_count"], row["cost_count"], backups
                            )
                            write_submission_log(cur, self._log_entry(context, result))
            except psycopg.Error as e:
                raise self._failure(site, transition, e, pending) from e

        self.state = PromotionState.INFLIGHT
        increment_counter(promotions_total, site=site, transition=transition, status="success")
        logger.info(
            f"Committed {result.projects} project(s) and {result.costs} cost row(s) to inflight",
            extra={"site": site, "backups": list(result.backups)},
        )
        return result

    def archive_approved(self, context: SiteContext) -> PromotionResult:
        """
        Copy the site's approved inflight rows into the archive tables.

        Rows already archived are left as they are (insert-if-absent on the
        archive key), so a rerun archives nothing twice.

        Args:
            context: Acting site and user

        Returns:
            PromotionResult with newly archived row counts

        Raises:
            InvalidTransitionError: If the machine is not in Inflight
            PromotionError: If any step fails (everything is rolled back)
        """
        self._require(PromotionState.ARCHIVED)
        site = validate_site(context.site)
        transition = "archive_approved"
        pending = 0

        with log_operation("Archive approved records", logger=logger, site=site):
            try:
                with self.pool.get_connection() as conn:
                    with conn.transaction():
                        with conn.cursor() as cur:
                            cur.execute(
                                "SELECT count(*) AS n FROM pif_projects_inflight "
                                "WHERE upper(btrim(site)) = upper(%s) "
                                "AND lower(btrim(status)) IN (SELECT lower(btrim(x)) FROM unnest(%s::text[]) AS x)",
                                (site, list(self.approved_statuses)),
                            )
                            pending = cur.fetchone()["n"]

                            cur.execute(
                                "SELECT project_count, cost_count FROM pif_archive_approved(%s, %s)",
                                (site, list(self.approved_statuses)),
                            )
                            row = cur.fetchone()
                            result = PromotionResult(transition, row["project_count"], row["cost_count"])
                            write_submission_log(cur, self._log_entry(context, result))
            except psycopg.Error as e:
                raise self._failure(site, transition, e, pending) from e

        self.state = PromotionState.ARCHIVED
        increment_counter(promotions_total, site=site, transition=transition, status="success")
        logger.info(
            f"Archived {result.projects} project(s) and {result.costs} cost row(s)",
            extra={"site": site},
        )
        return result

    def _backup_inflight(self, cur: psycopg.Cursor, stamp: str) -> tuple[str, ...]:
        """Copy each inflight table to ``<table>_backup_<stamp>``."""
        backups = []
        for table in INFLIGHT_TABLES:
            backup = backup_table_name(table, stamp)
            cur.execute(
                sql.SQL("CREATE TABLE {} AS TABLE {}").format(
                    sql.Identifier(backup), sql.Identifier(table)
                )
            )
            backups.append(backup)
        return tuple(backups)

    def _log_entry(self, context: SiteContext, result: PromotionResult) -> SubmissionLog:
        notes = f"costs={result.costs}"
        if result.backups:
            notes += f"; backups={','.join(result.backups)}"
        return SubmissionLog(
            submitted_by=context.actor,
            source_file=context.source_name,
            site=context.site,
            transition=result.transition,
            record_count=result.projects,
            notes=notes,
        )

    def _failure(self, site: str, transition: str, error: psycopg.Error, pending: int) -> PromotionError:
        increment_counter(promotions_total, site=site, transition=transition, status="failure")
        sqlstate = getattr(error, "sqlstate", None)
        failure = PromotionError(transition, f"[{sqlstate}] {error}", row_count=pending)
        get_diagnostic_logger().error(failure.detail, extra={"site": site, "transition": transition})
        return failure
