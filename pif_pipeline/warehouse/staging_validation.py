"""
Server-side re-check of the staged data.
"""

import psycopg

from pif_pipeline.core.models.operation_result import StagingIssue, StagingValidationResult
from pif_pipeline.observability.logger import get_logger
from pif_pipeline.warehouse.connection import DatabaseConnectionPool

logger = get_logger(__name__)


def validate_staging_data(pool: DatabaseConnectionPool) -> StagingValidationResult:
    """
    Run ``pif_validate_staging_data()`` against the staging tables.

    Errors block promotion; warnings (e.g. large negative variances) are
    reported only.

    Args:
        pool: Database connection manager

    Returns:
        StagingValidationResult with counts and issue rows

    Raises:
        psycopg.DatabaseError: If the check cannot be run
    """
    try:
        rows = pool.execute_query(
            "SELECT severity, error_type, error_message, pif_id, project_id "
            "FROM pif_validate_staging_data()"
        )
    except psycopg.DatabaseError as e:
        logger.error(f"Staging validation failed to run: {e}")
        raise

    issues = [
        StagingIssue(
            severity=row["severity"],
            error_type=row["error_type"],
            message=row["error_message"],
            entity_id=row["pif_id"],
            project_id=row["project_id"],
        )
        for row in rows
    ]
    result = StagingValidationResult(
        error_count=sum(1 for i in issues if i.severity == "ERROR"),
        warning_count=sum(1 for i in issues if i.severity == "WARNING"),
        errors=issues,
    )
    logger.info(
        f"Staging check: {result.error_count} error(s), {result.warning_count} warning(s)",
        extra={"error_count": result.error_count, "warning_count": result.warning_count},
    )
    return result
