"""
Integration tests for staging, promotion, archiving and reconciliation
against a real PostgreSQL schema (Testcontainers).

Run with: pytest tests/integration -m integration
"""

from datetime import datetime
from decimal import Decimal

import pytest

from pif_pipeline.core.models import ArchiveKey, ProjectRecord, SubmissionLog
from pif_pipeline.core.models.cost_record import CostRecord
from pif_pipeline.core.transform.unpivot import unpivot
from pif_pipeline.errors import PromotionError, StagingLoadError
from pif_pipeline.pipeline import SubmissionService
from pif_pipeline.warehouse.archive import ArchiveKeyStore, query_archived_keys
from pif_pipeline.warehouse.audit import insert_submission_log, query_submission_log
from pif_pipeline.warehouse.promotion import PromotionState, PromotionStateMachine
from pif_pipeline.warehouse.staging import StagedProject, StagingBatch, StagingWriter
from pif_pipeline.warehouse.staging_validation import validate_staging_data


def clock_at(*args):
    return lambda: datetime(*args)


def staged(entity_id, project_id="PRJ01", line_item=1, status="Pending", justification=None, site="ANO", **costs):
    record = ProjectRecord(
        entity_id=entity_id,
        project_id=project_id,
        line_item=line_item,
        status=status,
        change_type="New",
        site=site,
        justification=justification,
    )
    for series, values in costs.items():
        setattr(record.costs, series, [Decimal(v) if v is not None else None for v in values])
    return StagedProject(record=record, costs=unpivot(record, 2026))


def count_rows(pool, table: str, where: str = "") -> int:
    rows = pool.execute_query(f"SELECT count(*) AS n FROM {table} {where}")
    return rows[0]["n"]


@pytest.mark.integration
class TestStagingWriter:
    """Tests for the all-or-nothing staging load"""

    def test_load_writes_projects_and_non_empty_costs(self, pg_pool):
        batch = StagingBatch(site="ANO", projects=[
            staged("PIF001", target_requested=["100", "200", None, None, None, None]),
            staged("PIF002", project_id="PRJ02"),
        ])

        counts = StagingWriter(pg_pool).load(batch)

        assert counts.projects == 2
        assert counts.costs == 2
        assert counts.skipped_empty_costs == 22
        assert count_rows(pg_pool, "pif_projects_staging") == 2
        years = pg_pool.execute_query(
            "SELECT year, requested_value FROM pif_cost_staging ORDER BY year"
        )
        assert [r["year"].isoformat() for r in years] == ["2026-12-31", "2027-12-31"]
        assert [r["requested_value"] for r in years] == [Decimal("100.00"), Decimal("200.00")]

    def test_load_replaces_previous_contents(self, pg_pool):
        writer = StagingWriter(pg_pool)
        writer.load(StagingBatch(site="ANO", projects=[staged("PIF001"), staged("PIF002")]))
        writer.load(StagingBatch(site="ANO", projects=[staged("PIF003")]))

        rows = pg_pool.execute_query("SELECT pif_id FROM pif_projects_staging")
        assert [r["pif_id"] for r in rows] == ["PIF003"]

    def test_failing_insert_rolls_back_whole_batch(self, pg_pool):
        writer = StagingWriter(pg_pool)
        writer.load(StagingBatch(site="ANO", projects=[staged("PIF000")]))

        # Third project repeats the first one's key and hits the unique constraint
        batch = StagingBatch(site="ANO", projects=[
            staged("PIF001"),
            staged("PIF002"),
            staged("PIF001"),
            staged("PIF004"),
        ])
        batch.projects[2].row_number = 6

        with pytest.raises(StagingLoadError) as exc_info:
            writer.load(batch)

        assert exc_info.value.row_index == 2
        assert exc_info.value.row_number == 6
        assert "23505" in exc_info.value.detail

        # Neither the new rows nor the truncate are visible
        rows = pg_pool.execute_query("SELECT pif_id FROM pif_projects_staging")
        assert [r["pif_id"] for r in rows] == ["PIF000"]

    def test_over_long_value_is_reported_without_writing(self, pg_pool):
        batch = StagingBatch(site="ANO", projects=[staged("PIF001"), staged("PIF002", project_id="P" * 11)])

        with pytest.raises(StagingLoadError) as exc_info:
            StagingWriter(pg_pool).load(batch)

        assert exc_info.value.row_index == 1
        assert count_rows(pg_pool, "pif_projects_staging") == 0


@pytest.mark.integration
class TestStagingValidation:
    """Tests for pif_validate_staging_data()"""

    def test_clean_staging(self, pg_pool):
        StagingWriter(pg_pool).load(StagingBatch(site="ANO", projects=[staged("PIF001")]))

        result = validate_staging_data(pg_pool)

        assert result.is_clean
        assert result.warning_count == 0

    def test_missing_justification_is_an_error(self, pg_pool):
        StagingWriter(pg_pool).load(StagingBatch(site="ANO", projects=[
            staged("PIF001", status="Approved"),
            staged("PIF002", status="Dispositioned", justification="Scope moved"),
        ]))

        result = validate_staging_data(pg_pool)

        assert result.error_count == 1
        issue = result.errors[0]
        assert issue.error_type == "Missing Justification"
        assert issue.entity_id == "PIF001"

    def test_large_negative_variance_is_a_warning(self, pg_pool):
        StagingWriter(pg_pool).load(StagingBatch(site="ANO", projects=[
            staged("PIF001", target_variance=["-2500000", None, None, None, None, None]),
        ]))

        result = validate_staging_data(pg_pool)

        assert result.is_clean
        assert result.warning_count == 1
        assert result.errors[0].severity == "WARNING"

    def test_orphan_cost_record(self, pg_pool):
        project = staged("PIF001")
        project.costs = [
            CostRecord(entity_id="PIF999", project_id="PRJ01", scenario="Target",
                       fiscal_year=2026, requested_value=Decimal("5"))
        ]
        StagingWriter(pg_pool).load(StagingBatch(site="ANO", projects=[project]))

        result = validate_staging_data(pg_pool)

        assert [i.error_type for i in result.errors] == ["Orphan Cost Record"]
        assert result.errors[0].entity_id == "PIF999"


@pytest.mark.integration
class TestPromotion:
    """Tests for commit_to_inflight and archive_approved"""

    def _stage(self, pool, *projects):
        StagingWriter(pool).load(StagingBatch(site="ANO", projects=list(projects)))

    def test_commit_moves_rows_and_logs(self, pg_pool, context):
        self._stage(pg_pool, staged("PIF001", target_requested=["1", "2", "3", None, None, None]))
        machine = PromotionStateMachine(pg_pool, clock=clock_at(2026, 3, 15, 9, 30, 0))

        result = machine.commit_to_inflight(context)

        assert (result.projects, result.costs) == (1, 3)
        assert machine.state is PromotionState.INFLIGHT
        assert result.backups == (
            "pif_projects_inflight_backup_20260315093000",
            "pif_cost_inflight_backup_20260315093000",
        )
        backups = pg_pool.execute_query(
            "SELECT tablename FROM pg_tables WHERE tablename = ANY(%s)", (list(result.backups),)
        )
        assert len(backups) == 2

        log = query_submission_log(pg_pool, site="ANO")
        assert len(log) == 1
        assert log[0].transition == "commit_to_inflight"
        assert log[0].record_count == 1
        assert log[0].submitted_by == "tester"

    def test_recommit_replaces_site_snapshot(self, pg_pool, context):
        self._stage(pg_pool, staged("PIF001"), staged("PIF002"))
        PromotionStateMachine(pg_pool, clock=clock_at(2026, 3, 15, 9, 0, 0)).commit_to_inflight(context)

        self._stage(pg_pool, staged("PIF003"))
        result = PromotionStateMachine(pg_pool, clock=clock_at(2026, 3, 15, 10, 0, 0)).commit_to_inflight(context)

        assert result.projects == 1
        rows = pg_pool.execute_query("SELECT pif_id FROM pif_projects_inflight")
        assert [r["pif_id"] for r in rows] == ["PIF003"]
        # The second backup holds the first snapshot
        backed_up = count_rows(pg_pool, "pif_projects_inflight_backup_20260315100000")
        assert backed_up == 2

    def test_commit_takes_only_the_active_site_rows(self, pg_pool, context):
        batch = (
            staged("PIF001", target_requested=["1", None, None, None, None, None]),
            staged("PIF002", site="GGN", target_requested=["2", None, None, None, None, None]),
            staged("PIF003", site=None),
            staged("PIF004", site="ano"),
        )

        for hour in (9, 10):
            self._stage(pg_pool, *batch)
            result = PromotionStateMachine(pg_pool, clock=clock_at(2026, 3, 15, hour, 0, 0)).commit_to_inflight(context)

            assert (result.projects, result.costs) == (2, 1)

        rows = pg_pool.execute_query("SELECT pif_id FROM pif_projects_inflight ORDER BY pif_id")
        assert [r["pif_id"] for r in rows] == ["PIF001", "PIF004"]
        costs = pg_pool.execute_query("SELECT DISTINCT pif_id FROM pif_cost_inflight")
        assert [r["pif_id"] for r in costs] == ["PIF001"]

    def test_failed_commit_leaves_inflight_and_log_untouched(self, pg_pool, context):
        self._stage(pg_pool, staged("PIF001"))
        PromotionStateMachine(pg_pool, clock=clock_at(2026, 3, 15, 9, 0, 0)).commit_to_inflight(context)

        # Inflight requires a project id
        self._stage(pg_pool, staged("PIF002", project_id=None))
        machine = PromotionStateMachine(pg_pool, clock=clock_at(2026, 3, 15, 10, 0, 0))

        with pytest.raises(PromotionError) as exc_info:
            machine.commit_to_inflight(context)

        assert exc_info.value.row_count == 1
        assert machine.state is PromotionState.STAGING
        rows = pg_pool.execute_query("SELECT pif_id FROM pif_projects_inflight")
        assert [r["pif_id"] for r in rows] == ["PIF001"]
        assert len(query_submission_log(pg_pool)) == 1
        leftover = pg_pool.execute_query(
            "SELECT tablename FROM pg_tables WHERE tablename LIKE %s", ("%20260315100000",)
        )
        assert leftover == []

    def test_archive_is_idempotent(self, pg_pool, context):
        self._stage(
            pg_pool,
            staged("PIF001", status="Approved", justification="Approved at board",
                   target_requested=["10", None, None, None, None, None]),
            staged("PIF002", project_id="PRJ02", status="Pending"),
        )
        PromotionStateMachine(pg_pool, clock=clock_at(2026, 3, 15, 9, 0, 0)).commit_to_inflight(context)

        first = PromotionStateMachine(pg_pool, initial_state=PromotionState.INFLIGHT).archive_approved(context)
        second = PromotionStateMachine(pg_pool, initial_state=PromotionState.INFLIGHT).archive_approved(context)

        assert (first.projects, first.costs) == (1, 1)
        assert (second.projects, second.costs) == (0, 0)
        assert count_rows(pg_pool, "pif_projects_approved") == 1
        transitions = [entry.transition for entry in query_submission_log(pg_pool)]
        assert transitions == ["archive_approved", "archive_approved", "commit_to_inflight"]

    def test_archive_honours_configured_statuses(self, pg_pool, context):
        self._stage(pg_pool, staged("PIF001", status="Closed", justification="Done"))
        PromotionStateMachine(pg_pool, clock=clock_at(2026, 3, 15, 9, 0, 0)).commit_to_inflight(context)

        default = PromotionStateMachine(pg_pool, initial_state=PromotionState.INFLIGHT).archive_approved(context)
        custom = PromotionStateMachine(
            pg_pool, approved_statuses=("Closed",), initial_state=PromotionState.INFLIGHT
        ).archive_approved(context)

        assert default.projects == 0
        assert custom.projects == 1


    def test_archive_status_match_ignores_case(self, pg_pool, context):
        self._stage(pg_pool, staged("PIF001", status=" approved", justification="Board approved"))
        PromotionStateMachine(pg_pool, clock=clock_at(2026, 3, 15, 9, 0, 0)).commit_to_inflight(context)

        result = PromotionStateMachine(pg_pool, initial_state=PromotionState.INFLIGHT).archive_approved(context)

        assert result.projects == 1
        assert count_rows(pg_pool, "pif_projects_approved") == 1


@pytest.mark.integration
class TestArchiveAndAudit:
    """Tests for archive key lookups and the submission log"""

    def test_query_archived_keys_by_site(self, pg_pool):
        with pg_pool.get_connection() as conn:
            with conn.cursor() as cur:
                for pif_id, site in (("PIF001", "ANO"), ("PIF002", "ANO"), ("PIF003", "GGN")):
                    cur.execute(
                        "INSERT INTO pif_projects_approved "
                        "(pif_id, project_id, submission_date, approval_date, site) "
                        "VALUES (%s, 'PRJ01', CURRENT_DATE, CURRENT_DATE, %s)",
                        (pif_id, site),
                    )
            conn.commit()

        keys = query_archived_keys(pg_pool, "ANO")

        assert keys == {ArchiveKey.of("PIF001", "PRJ01"), ArchiveKey.of("PIF002", "PRJ01")}
        assert ArchiveKeyStore(pg_pool).archived_keys("GGN") == {ArchiveKey.of("PIF003", "PRJ01")}

    def test_insert_and_query_submission_log(self, pg_pool):
        first = insert_submission_log(pg_pool, SubmissionLog(
            submitted_by="alice", site="ANO", transition="commit_to_inflight", record_count=3,
        ))
        second = insert_submission_log(pg_pool, SubmissionLog(
            submitted_by="bob", site="GGN", transition="archive_approved",
        ))

        assert second > first
        entries = query_submission_log(pg_pool, site="ANO")
        assert [e.submitted_by for e in entries] == ["alice"]
        assert entries[0].log_id == first
        assert len(query_submission_log(pg_pool, limit=1)) == 1


@pytest.mark.integration
@pytest.mark.slow
class TestSubmissionFlow:
    """End-to-end: submit a grid, archive, then reconcile it"""

    def test_submit_archive_reconcile(self, pg_pool, pg_settings, context, make_grid, valid_row):
        approved = dict(valid_row, status="Approved", justification="Board approved")
        pending = dict(valid_row, entity_id="PIF002", project_id="PRJ02")
        grid = make_grid(
            [approved, pending],
            costs=[{"target_requested": [100, 200]}, {}],
        )
        service = SubmissionService(pg_settings, pool=pg_pool)

        submitted = service.submit(grid, context)

        assert submitted.success, submitted.detail
        assert submitted.counts["projects_staged"] == 2
        assert submitted.counts["costs_staged"] == 2
        assert submitted.counts["projects_inflight"] == 2
        assert count_rows(pg_pool, "pif_projects_inflight") == 2

        archived = service.archive(context)
        assert archived.success, archived.detail
        assert archived.counts == {"projects": 1, "costs": 2}

        reconciled = service.reconcile(grid, context, confirm=lambda n: True)

        assert reconciled.success
        assert reconciled.counts["deleted"] == 1
        remaining = service.extractor.extract(grid.read_block(service.layout))
        assert [row.record.entity_id for row in remaining] == ["PIF002"]
        assert grid.last_status.startswith("Removed 1 archived row(s).")

    def test_submit_blocked_by_invalid_rows_stages_nothing(
        self, pg_pool, pg_settings, context, make_grid, valid_row
    ):
        grid = make_grid([valid_row, dict(valid_row, change_type=None)])
        service = SubmissionService(pg_settings, pool=pg_pool)

        result = service.submit(grid, context)

        assert not result.success
        assert count_rows(pg_pool, "pif_projects_staging") == 0
        assert query_submission_log(pg_pool) == []
        assert grid.highlighted == {5}
