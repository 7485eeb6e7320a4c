"""
Archive reconciliation.

Removes entry-surface rows whose (entity_id, project_id) is already present
in the archive for the active site. Rows are deleted from the bottom up so
that each deletion leaves the row numbers of the remaining matches intact.
Unlike submission, a partial cleanup is acceptable: failed deletions are
logged and skipped, and the run can simply be repeated.
"""

from enum import Enum
from typing import Callable, Protocol

from pydantic import BaseModel, Field

from pif_pipeline.core.extract.coercion import coerce_string
from pif_pipeline.core.layout.pif_layout import DEFAULT_LAYOUT, PifLayout
from pif_pipeline.core.models import ArchiveKey, SiteContext
from pif_pipeline.observability.logger import get_diagnostic_logger, get_logger
from pif_pipeline.observability.metrics import increment_counter, reconciliation_rows_total
from pif_pipeline.surface.base import EntrySurface

logger = get_logger(__name__)


class ArchiveKeySource(Protocol):
    def archived_keys(self, site: str) -> set[ArchiveKey]:
        ...


class ReconcileOutcome(str, Enum):
    NO_ARCHIVED_KEYS = "no_archived_keys"
    NO_MATCHES = "no_matches"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class ReconcileResult(BaseModel):
    """
    Outcome of one reconciliation run.

    Attributes:
        outcome: How the run ended
        archived_keys: Number of archived keys found for the site
        matched_rows: Matching row numbers, in deletion order (highest first)
        deleted: Rows actually deleted
        failed: Rows whose deletion failed
        skipped_other_site: Rows ignored because their site differs
        message: Summary for the status area
    """

    outcome: ReconcileOutcome
    archived_keys: int = 0
    matched_rows: list[int] = Field(default_factory=list)
    deleted: int = 0
    failed: list[int] = Field(default_factory=list)
    skipped_other_site: int = 0
    message: str = ""


def delete_bottom_up(surface: EntrySurface, row_numbers: list[int]) -> tuple[int, list[int]]:
    """
    Delete rows highest number first.

    Args:
        surface: Entry surface
        row_numbers: Rows to delete, any order

    Returns:
        (number deleted, row numbers whose deletion failed)
    """
    deleted = 0
    failed = []
    for row_number in sorted(set(row_numbers), reverse=True):
        try:
            surface.delete_row(row_number)
            deleted += 1
        except Exception as e:
            failed.append(row_number)
            logger.warning(f"Could not delete row {row_number}; skipped")
            get_diagnostic_logger().error(
                f"delete_row({row_number}) on {surface.name} failed: {e}",
                exc_info=True,
            )
    return deleted, failed


class ArchiveReconciler:
    """
    Matches entry-surface rows against archived keys and deletes matches.

    Args:
        key_source: Provides the archived keys of a site
        layout: Where the key and site columns are
    """

    def __init__(self, key_source: ArchiveKeySource, layout: PifLayout | None = None):
        self.key_source = key_source
        self.layout = layout or DEFAULT_LAYOUT

    def find_matches(self, surface: EntrySurface, context: SiteContext, keys: set[ArchiveKey]) -> tuple[list[int], int]:
        """
        Row numbers whose key is archived, plus the number of rows skipped
        because they belong to another site.
        """
        block = surface.read_block(self.layout)
        entity_col = self.layout.key_column
        project_spec = self.layout.field("project_id")
        site_col = self.layout.site_column

        matches = []
        skipped = 0
        for row_number in block.row_numbers():
            if row_number < self.layout.first_data_row:
                continue
            entity = coerce_string(block.cell(row_number, entity_col)).value
            if entity is None:
                continue

            row_site = coerce_string(block.cell(row_number, site_col)).value if site_col else None
            if not context.matches_site(row_site):
                skipped += 1
                continue

            project = coerce_string(block.cell(row_number, project_spec.column)).value if project_spec else None
            if ArchiveKey.of(entity, project) in keys:
                matches.append(row_number)

        return matches, skipped

    def reconcile(
        self,
        surface: EntrySurface,
        context: SiteContext,
        confirm: Callable[[int], bool],
    ) -> ReconcileResult:
        """
        Run one reconciliation.

        Args:
            surface: Entry surface to clean up
            context: Active site
            confirm: Called with the match count; deletion happens only if it
                returns True

        Returns:
            ReconcileResult (a run with nothing to do is not an error)

        Raises:
            psycopg.DatabaseError / ConnectivityError: If the archive cannot be queried
        """
        site = context.site
        keys = self.key_source.archived_keys(site)
        if not keys:
            return self._finish(surface, ReconcileResult(
                outcome=ReconcileOutcome.NO_ARCHIVED_KEYS,
                message=f"No archived records found for site {site}.",
            ))

        matches, skipped = self.find_matches(surface, context, keys)
        if skipped:
            logger.info(f"Skipped {skipped} row(s) belonging to other sites", extra={"site": site})
        if not matches:
            return self._finish(surface, ReconcileResult(
                outcome=ReconcileOutcome.NO_MATCHES,
                archived_keys=len(keys),
                skipped_other_site=skipped,
                message=f"{len(keys)} archived record(s) for site {site}; none are on this sheet.",
            ))

        ordered = sorted(matches, reverse=True)
        if not confirm(len(ordered)):
            return self._finish(surface, ReconcileResult(
                outcome=ReconcileOutcome.CANCELLED,
                archived_keys=len(keys),
                matched_rows=ordered,
                skipped_other_site=skipped,
                message=f"Cancelled; {len(ordered)} archived row(s) left in place.",
            ))

        deleted, failed = delete_bottom_up(surface, ordered)
        increment_counter(reconciliation_rows_total, deleted, site=site, outcome="deleted")
        if failed:
            increment_counter(reconciliation_rows_total, len(failed), site=site, outcome="failed")

        message = f"Removed {deleted} archived row(s)."
        if failed:
            message += f" {len(failed)} row(s) could not be removed; run again to retry."
        return self._finish(surface, ReconcileResult(
            outcome=ReconcileOutcome.COMPLETED,
            archived_keys=len(keys),
            matched_rows=ordered,
            deleted=deleted,
            failed=failed,
            skipped_other_site=skipped,
            message=message,
        ))

    @staticmethod
    def _finish(surface: EntrySurface, result: ReconcileResult) -> ReconcileResult:
        logger.info(result.message, extra={"outcome": result.outcome.value})
        surface.write_status(result.message)
        return result
