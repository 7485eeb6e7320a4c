"""
Submission service: the user-facing operations of the PIF pipeline.

Each public method is one user action (validate, submit, commit, archive,
reconcile). Every action returns an OperationResult; pipeline failures are
turned into a short message for the user while the technical detail goes to
the diagnostic log.
"""

from typing import Callable

import psycopg

from pif_pipeline.config import PipelineSettings
from pif_pipeline.core.extract.extractor import RowExtractor
from pif_pipeline.core.layout.layout_config import load_layout
from pif_pipeline.core.layout.pif_layout import PifLayout
from pif_pipeline.core.models import OperationResult, SiteContext, ValidationReport
from pif_pipeline.core.rules.validation_engine import ValidationEngine
from pif_pipeline.core.transform.unpivot import unpivot
from pif_pipeline.errors import PipelineError, ValidationBlockedError
from pif_pipeline.observability.logger import get_diagnostic_logger, get_logger, log_operation
from pif_pipeline.observability.metrics import (
    increment_counter,
    record_operation,
    record_validation_report,
    rows_extracted_total,
)
from pif_pipeline.reconcile.reconciler import ArchiveReconciler
from pif_pipeline.surface.base import EntrySurface
from pif_pipeline.utils.validation import ValidationError as InputValidationError, validate_site
from pif_pipeline.warehouse.archive import ArchiveKeyStore
from pif_pipeline.warehouse.connection import DatabaseConnectionPool
from pif_pipeline.warehouse.promotion import PromotionState, PromotionStateMachine
from pif_pipeline.warehouse.staging import StagedProject, StagingBatch, StagingWriter
from pif_pipeline.warehouse.staging_validation import validate_staging_data

logger = get_logger(__name__)

DATABASE_ERROR_MESSAGE = (
    "The database rejected the request. Details were written to the diagnostic log."
)


class SubmissionService:
    """
    Wires extractor, validation engine, staging writer, promotion state
    machine and reconciler together.

    Args:
        settings: Pipeline settings (default: from the environment)
        pool: Connection manager (default: built from settings)
        layout: Entry-surface layout (default: settings.layout_path or built-in)
    """

    def __init__(
        self,
        settings: PipelineSettings | None = None,
        pool: DatabaseConnectionPool | None = None,
        layout: PifLayout | None = None,
    ):
        self.settings = settings or PipelineSettings.from_env()
        self.pool = pool or DatabaseConnectionPool.from_settings(self.settings)
        self.layout = layout or load_layout(self.settings.layout_path)
        self.extractor = RowExtractor(self.layout)
        self.engine = ValidationEngine.for_layout(self.layout, self.settings.approved_statuses)
        self.writer = StagingWriter(self.pool)
        self.reconciler = ArchiveReconciler(ArchiveKeyStore(self.pool), self.layout)

    def context(self, site: str, source_name: str | None = None, actor: str | None = None) -> SiteContext:
        """Build a SiteContext carrying the configured reporting year."""
        values = {"site": site, "source_name": source_name, "reporting_year": self.settings.reporting_year}
        if actor:
            values["actor"] = actor
        return SiteContext(**values)

    # =======================
    # OPERATIONS
    # =======================

    def validate(self, surface: EntrySurface, context: SiteContext) -> OperationResult:
        """Validate the surface rows and highlight the rows with issues."""
        def action() -> OperationResult:
            _, report = self._validate_surface(surface, context)
            return OperationResult(
                success=report.is_clean,
                message=report.summary(),
                counts={"rows": report.rows_checked, "errors": report.error_count},
                report=report,
            )

        return self._run("validate", surface, action)

    def submit(self, surface: EntrySurface, context: SiteContext) -> OperationResult:
        """
        Validate, unpivot and stage the surface rows, re-check them on the
        server, then commit them to inflight.
        """
        def action() -> OperationResult:
            rows, report = self._validate_surface(surface, context)
            if not report.is_clean:
                raise ValidationBlockedError(report.error_count)

            base_year = context.fiscal_year
            batch = StagingBatch(
                site=context.site,
                projects=[
                    StagedProject(
                        row_number=row.row_number,
                        record=row.record,
                        costs=unpivot(row.record, base_year),
                    )
                    for row in rows
                ],
            )
            staged = self.writer.load(batch)

            check = validate_staging_data(self.pool)
            if not check.is_clean:
                for issue in check.errors:
                    get_diagnostic_logger().warning(
                        f"Staging check {issue.severity}: {issue.error_type}: {issue.message} "
                        f"({issue.entity_id}|{issue.project_id})"
                    )
                raise ValidationBlockedError(check.error_count, source="server-side staging check")

            machine = PromotionStateMachine(self.pool, self.settings.approved_statuses)
            promoted = machine.commit_to_inflight(context)

            message = (
                f"Submitted {staged.projects} record(s) and {staged.costs} cost row(s) "
                f"for site {context.site}."
            )
            if check.warning_count:
                message += f" {check.warning_count} warning(s) noted."
            return OperationResult(
                success=True,
                message=message,
                counts={
                    "projects_staged": staged.projects,
                    "costs_staged": staged.costs,
                    "projects_inflight": promoted.projects,
                    "costs_inflight": promoted.costs,
                    "warnings": check.warning_count,
                },
                report=report,
            )

        return self._run("submit", surface, action)

    def commit(self, context: SiteContext) -> OperationResult:
        """Commit whatever is currently staged to inflight."""
        def action() -> OperationResult:
            machine = PromotionStateMachine(self.pool, self.settings.approved_statuses)
            result = machine.commit_to_inflight(context)
            return OperationResult(
                success=True,
                message=f"Committed {result.projects} record(s) to inflight for site {context.site}.",
                counts={"projects": result.projects, "costs": result.costs},
            )

        return self._run("promote", None, action)

    def archive(self, context: SiteContext) -> OperationResult:
        """Archive the site's approved inflight records."""
        def action() -> OperationResult:
            machine = PromotionStateMachine(
                self.pool, self.settings.approved_statuses, initial_state=PromotionState.INFLIGHT
            )
            result = machine.archive_approved(context)
            if result.projects == 0:
                message = f"No new approved records to archive for site {context.site}."
            else:
                message = f"Archived {result.projects} approved record(s) for site {context.site}."
            return OperationResult(
                success=True,
                message=message,
                counts={"projects": result.projects, "costs": result.costs},
            )

        return self._run("archive", None, action)

    def reconcile(
        self,
        surface: EntrySurface,
        context: SiteContext,
        confirm: Callable[[int], bool],
    ) -> OperationResult:
        """Remove surface rows that are already archived (after confirmation)."""
        def action() -> OperationResult:
            validate_site(context.site)
            result = self.reconciler.reconcile(surface, context, confirm)
            return OperationResult(
                success=True,
                message=result.message,
                counts={
                    "archived_keys": result.archived_keys,
                    "matched": len(result.matched_rows),
                    "deleted": result.deleted,
                    "failed": len(result.failed),
                    "skipped_other_site": result.skipped_other_site,
                },
            )

        return self._run("reconcile", surface, action)

    # =======================
    # HELPERS
    # =======================

    def _validate_surface(self, surface: EntrySurface, context: SiteContext):
        validate_site(context.site)
        rows = self.extractor.extract(surface.read_block(self.layout))
        increment_counter(rows_extracted_total, len(rows), site=context.site)

        report: ValidationReport = self.engine.validate(rows, site=context.site)
        record_validation_report(context.site, report.counts_by_type())
        surface.highlight_rows(report.row_numbers())
        return rows, report

    def _run(
        self,
        operation: str,
        surface: EntrySurface | None,
        action: Callable[[], OperationResult],
    ) -> OperationResult:
        op = log_operation(operation, logger=logger)
        try:
            with op:
                result = action()
        except PipelineError as e:
            result = OperationResult(success=False, message=e.user_message, detail=e.detail)
        except InputValidationError as e:
            get_diagnostic_logger().error(f"Rejected {operation} input: {e}")
            result = OperationResult(success=False, message=f"Invalid input: {e}", detail=str(e))
        except psycopg.Error as e:
            sqlstate = getattr(e, "sqlstate", None)
            result = OperationResult(success=False, message=DATABASE_ERROR_MESSAGE, detail=f"[{sqlstate}] {e}")

        result = result.model_copy(update={"elapsed_seconds": round(op.elapsed, 3)})
        record_operation(operation, op.elapsed, result.success)

        status = f"{result.message} ({result.elapsed_seconds:.1f}s)"
        if surface is not None:
            surface.write_status(status)
        return result
