"""
Submission log operations.

One entry is written per successful promotion step, inside the promotion's
own transaction, so a rolled-back promotion leaves no log entry behind.
"""

from typing import Any

import psycopg

from pif_pipeline.core.models.submission_log import SubmissionLog
from pif_pipeline.observability.logger import get_logger
from pif_pipeline.warehouse.connection import DatabaseConnectionPool

logger = get_logger(__name__)

INSERT_SUBMISSION_LOG_SQL = """
    INSERT INTO pif_submission_log (
        submission_date,
        submitted_by,
        source_file,
        site,
        transition,
        record_count,
        notes
    ) VALUES (
        %(submitted_at)s,
        %(submitted_by)s,
        %(source_file)s,
        %(site)s,
        %(transition)s,
        %(record_count)s,
        %(notes)s
    ) RETURNING submission_id;
"""


def write_submission_log(cur: psycopg.Cursor, entry: SubmissionLog) -> int:
    """
    Insert a submission log entry using the caller's cursor (and transaction).

    Args:
        cur: Open cursor inside the promotion transaction
        entry: SubmissionLog model instance

    Returns:
        submission_id: Generated log ID
    """
    cur.execute(INSERT_SUBMISSION_LOG_SQL, entry.model_dump(exclude={"log_id"}))
    result = cur.fetchone()
    log_id = result["submission_id"] if result else None

    logger.debug(
        f"Inserted submission log entry: submission_id={log_id}, "
        f"site={entry.site}, transition={entry.transition}"
    )
    return log_id


def insert_submission_log(pool: DatabaseConnectionPool, entry: SubmissionLog) -> int:
    """
    Insert a submission log entry in its own transaction.

    Args:
        pool: Database connection manager
        entry: SubmissionLog model instance

    Returns:
        submission_id: Generated log ID

    Raises:
        psycopg.DatabaseError: If insert fails
    """
    try:
        with pool.get_connection() as conn:
            with conn.cursor() as cur:
                log_id = write_submission_log(cur, entry)
            conn.commit()
            return log_id

    except psycopg.DatabaseError as e:
        logger.error(f"Failed to insert submission log: {e}")
        raise


def query_submission_log(
    pool: DatabaseConnectionPool,
    site: str | None = None,
    limit: int = 50,
) -> list[SubmissionLog]:
    """
    Query recent submission log entries, newest first.

    Args:
        pool: Database connection manager
        site: Filter by site (optional)
        limit: Maximum number of entries

    Returns:
        List of SubmissionLog instances

    Raises:
        psycopg.DatabaseError: If query fails
    """
    query = """
        SELECT submission_id, submission_date, submitted_by, source_file,
               site, transition, record_count, notes
        FROM pif_submission_log
    """
    params: dict[str, Any] = {"limit": limit}
    if site is not None:
        query += " WHERE site = %(site)s"
        params["site"] = site
    query += " ORDER BY submission_date DESC, submission_id DESC LIMIT %(limit)s"

    try:
        rows = pool.execute_query(query, params)
    except psycopg.DatabaseError as e:
        logger.error(f"Failed to query submission log: {e}")
        raise

    return [
        SubmissionLog(
            log_id=row["submission_id"],
            submitted_at=row["submission_date"],
            submitted_by=row["submitted_by"],
            source_file=row["source_file"],
            site=row["site"],
            transition=row["transition"],
            record_count=row["record_count"],
            notes=row["notes"],
        )
        for row in rows
    ]
