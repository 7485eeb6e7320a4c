"""
Pytest configuration and fixtures for pif-pipeline tests

This module provides shared fixtures for unit and integration tests.
"""
import os
from typing import Any, Callable, Generator

import psycopg
import pytest
from testcontainers.postgres import PostgresContainer

from pif_pipeline.config import PipelineSettings
from pif_pipeline.core.layout.pif_layout import DEFAULT_LAYOUT
from pif_pipeline.core.models import SiteContext
from pif_pipeline.surface.grid import GridSurface
from pif_pipeline.warehouse.connection import DatabaseConnectionPool

PIF_TABLES = (
    "pif_cost_staging",
    "pif_projects_staging",
    "pif_cost_inflight",
    "pif_projects_inflight",
    "pif_cost_approved",
    "pif_projects_approved",
    "pif_submission_log",
)


# =======================
# PYTEST CONFIGURATION
# =======================

def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "unit: Unit tests that don't require external services"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that require Docker containers"
    )
    config.addinivalue_line(
        "markers", "slow: Tests that take more than 5 seconds to run"
    )


# =======================
# ENTRY SURFACE FIXTURES
# =======================

def layout_row(values: dict[str, Any], costs: dict[str, list[Any]] | None = None) -> dict[int, Any]:
    """
    Map field values and cost series onto absolute columns of the default layout.

    Args:
        values: Field name -> raw cell value
        costs: Series name (e.g. "target_requested") -> up to six raw values

    Returns:
        Absolute column index -> value
    """
    cells: dict[int, Any] = {}
    for name, value in values.items():
        spec = DEFAULT_LAYOUT.field(name)
        if spec is None:
            raise KeyError(f"Unknown layout field: {name}")
        cells[spec.column.index] = value

    for series, series_values in (costs or {}).items():
        scenario, measure = series.split("_", 1)
        columns = DEFAULT_LAYOUT.costs.columns(scenario.capitalize(), measure)
        for column, value in zip(columns, series_values):
            cells[column.index] = value
    return cells


@pytest.fixture
def cells() -> Callable[..., dict[int, Any]]:
    """The layout_row helper, for tests that build their own blocks."""
    return layout_row


@pytest.fixture
def make_grid() -> Callable[..., GridSurface]:
    """
    Build a GridSurface whose data rows start at the layout's first data row.

    Usage:
        grid = make_grid([{"entity_id": "PIF001", ...}, ...])
    """
    def _make(rows: list[dict[str, Any]], costs: list[dict[str, list]] | None = None) -> GridSurface:
        grid = GridSurface(name="test-grid")
        # Header rows
        grid.set_row(DEFAULT_LAYOUT.first_data_row - 1, {DEFAULT_LAYOUT.key_column.index: "PIF ID"})
        for offset, values in enumerate(rows):
            row_costs = costs[offset] if costs else None
            grid.set_row(DEFAULT_LAYOUT.first_data_row + offset, layout_row(values, row_costs))
        return grid

    return _make


@pytest.fixture
def valid_row() -> dict[str, Any]:
    """A row that passes every validation rule."""
    return {
        "entity_id": "PIF001",
        "project_id": "PRJ01",
        "line_item": 1,
        "change_type": "New",
        "status": "Pending",
        "site": "ANO",
        "seg": 1234,
        "project_name": "Cooling tower upgrade",
        "justification": "",
        "archive_flag": "TRUE",
        "include_flag": "Y",
    }


@pytest.fixture
def context() -> SiteContext:
    """Site context with a fixed reporting year."""
    return SiteContext(site="ANO", actor="tester", source_name="test-grid", reporting_year=2026)


# =======================
# DATABASE FIXTURES (Testcontainers)
# =======================

@pytest.fixture(scope="session")
def postgres_container() -> Generator[PostgresContainer, None, None]:
    """
    Start PostgreSQL container for integration tests

    Yields:
        PostgresContainer instance with initialized database
    """
    with PostgresContainer(
        image="postgres:16.2-alpine",
        username="test_pipeline",
        password="test_password",
        dbname="test_pif",
    ) as postgres:
        init_sql_path = os.path.join(
            os.path.dirname(os.path.dirname(__file__)),
            "docker",
            "init-db.sql"
        )
        with open(init_sql_path) as f:
            init_sql = f.read()

        with psycopg.connect(
            host=postgres.get_container_host_ip(),
            port=int(postgres.get_exposed_port(5432)),
            dbname="test_pif",
            user="test_pipeline",
            password="test_password",
        ) as conn:
            with conn.cursor() as cur:
                cur.execute(init_sql)
            conn.commit()

        yield postgres


@pytest.fixture(scope="function")
def pg_settings(postgres_container) -> PipelineSettings:
    """Pipeline settings pointing at the test container."""
    return PipelineSettings(
        db_host=postgres_container.get_container_host_ip(),
        db_port=int(postgres_container.get_exposed_port(5432)),
        db_name="test_pif",
        db_user="test_pipeline",
        db_password="test_password",
        statement_timeout=60,
        reporting_year=2026,
    )


@pytest.fixture(scope="function")
def pg_pool(pg_settings) -> Generator[DatabaseConnectionPool, None, None]:
    """
    Connection manager on a clean database (all PIF tables truncated,
    backup tables dropped)
    """
    pool = DatabaseConnectionPool.from_settings(pg_settings)
    with pool.get_connection() as conn:
        with conn.cursor() as cur:
            cur.execute(f"TRUNCATE TABLE {', '.join(PIF_TABLES)} RESTART IDENTITY")
            cur.execute(
                "SELECT tablename FROM pg_tables "
                "WHERE schemaname = 'public' AND tablename LIKE '%%\\_backup\\_%%'"
            )
            for row in cur.fetchall():
                cur.execute(
                    psycopg.sql.SQL("DROP TABLE {}").format(psycopg.sql.Identifier(row["tablename"]))
                )
        conn.commit()

    yield pool
    pool.close()
