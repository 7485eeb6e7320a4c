"""
Archive key lookups.
"""

import psycopg

from pif_pipeline.core.models.archive_key import ArchiveKey
from pif_pipeline.observability.logger import get_logger
from pif_pipeline.utils.validation import validate_site
from pif_pipeline.warehouse.connection import DatabaseConnectionPool

logger = get_logger(__name__)

ARCHIVED_KEYS_SQL = """
    SELECT DISTINCT pif_id, project_id
    FROM pif_projects_approved
    WHERE upper(btrim(site)) = upper(%(site)s)
"""


def query_archived_keys(pool: DatabaseConnectionPool, site: str) -> set[ArchiveKey]:
    """
    Every archived (entity_id, project_id) for a site.

    Membership in the archive table is the archived-confirmation signal; no
    status re-check is done.

    Args:
        pool: Database connection manager
        site: Site code

    Returns:
        Set of ArchiveKey

    Raises:
        psycopg.DatabaseError: If the query fails
    """
    site = validate_site(site)
    try:
        rows = pool.execute_query(ARCHIVED_KEYS_SQL, {"site": site})
    except psycopg.DatabaseError as e:
        logger.error(f"Failed to query archived keys for site {site}: {e}")
        raise

    keys = {ArchiveKey.of(row["pif_id"], row["project_id"]) for row in rows}
    logger.info(f"Found {len(keys)} archived key(s) for site {site}", extra={"site": site})
    return keys


class ArchiveKeyStore:
    """Archive key source backed by the database."""

    def __init__(self, pool: DatabaseConnectionPool):
        self.pool = pool

    def archived_keys(self, site: str) -> set[ArchiveKey]:
        return query_archived_keys(self.pool, site)
