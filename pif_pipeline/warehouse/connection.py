"""
PostgreSQL connection management using psycopg3

By default every logical operation opens its own connection and closes it on
every exit path. With ``pooled=True`` connections are borrowed from a
psycopg_pool ConnectionPool instead.
"""
import time
from contextlib import contextmanager

import psycopg
from psycopg import OperationalError
from psycopg.conninfo import make_conninfo
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from pif_pipeline.config import PipelineSettings
from pif_pipeline.errors import ConnectivityError
from pif_pipeline.observability.logger import get_diagnostic_logger, get_logger

logger = get_logger(__name__)


class DatabaseConnectionPool:
    """
    PostgreSQL connection manager using psycopg3

    Hands out connections through ``get_connection()``; callers never hold a
    connection beyond the ``with`` block.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 5432,
        database: str = "pif",
        user: str | None = None,
        password: str | None = None,
        timeout: float = 30.0,
        statement_timeout: int = 300,
        pooled: bool = False,
        min_size: int = 1,
        max_size: int = 4,
    ) -> None:
        """
        Initialize database connection settings

        Args:
            host: Database host
            port: Database port
            database: Database name
            user: Database role (None lets libpq use the OS identity)
            password: Optional password; identity-based authentication is expected
            timeout: Connection timeout in seconds
            statement_timeout: Per-statement timeout in seconds
            pooled: Borrow connections from a pool instead of one per operation
            min_size: Minimum pool size (pooled mode)
            max_size: Maximum pool size (pooled mode)
        """
        self.host = host
        self.port = port
        self.database = database
        self.user = user
        self.timeout = timeout
        self.statement_timeout = statement_timeout
        self.pooled = pooled
        self.min_size = min_size
        self.max_size = max_size

        # None values are left out of the conninfo string
        self.conninfo = make_conninfo(
            host=host,
            port=port,
            dbname=database,
            user=user,
            password=password,
            connect_timeout=int(timeout),
            options=f"-c statement_timeout={int(statement_timeout) * 1000}",
        )

        self._pool: ConnectionPool | None = None

    @classmethod
    def from_settings(cls, settings: PipelineSettings) -> "DatabaseConnectionPool":
        return cls(
            host=settings.db_host,
            port=settings.db_port,
            database=settings.db_name,
            user=settings.db_user,
            password=settings.db_password,
            timeout=settings.connect_timeout,
            statement_timeout=settings.statement_timeout,
            pooled=settings.pooled,
        )

    def describe(self) -> str:
        """Server description without credentials, for diagnostics."""
        return f"{self.host}:{self.port}/{self.database}"

    def open(self, max_retries: int = 3, retry_delay: float = 2.0) -> None:
        """
        Open the connection pool with retry logic (pooled mode only).

        Args:
            max_retries: Maximum number of connection attempts
            retry_delay: Delay between retries in seconds

        Raises:
            ConnectivityError: If connection fails after all retries
        """
        if not self.pooled or self._pool is not None:
            return

        self._pool = ConnectionPool(
            conninfo=self.conninfo,
            min_size=self.min_size,
            max_size=self.max_size,
            timeout=self.timeout,
            kwargs={"row_factory": dict_row},
            open=False,
        )

        for attempt in range(1, max_retries + 1):
            try:
                self._pool.open(wait=True, timeout=self.timeout)
                return
            except OperationalError as e:
                if attempt < max_retries:
                    logger.warning(f"Pool open attempt {attempt} failed, retrying")
                    time.sleep(retry_delay)
                else:
                    self._pool.close()
                    self._pool = None
                    raise self._connectivity_error(e, max_retries) from e

    def close(self) -> None:
        """Close the connection pool"""
        if self._pool is not None:
            self._pool.close()
            self._pool = None

    def connect(self, max_retries: int = 3, retry_delay: float = 2.0) -> psycopg.Connection:
        """
        Open a dedicated connection with retry logic.

        Raises:
            ConnectivityError: If connection fails after all retries
        """
        for attempt in range(1, max_retries + 1):
            try:
                return psycopg.connect(self.conninfo, row_factory=dict_row)
            except OperationalError as e:
                if attempt < max_retries:
                    logger.warning(f"Connection attempt {attempt} failed, retrying")
                    time.sleep(retry_delay)
                else:
                    raise self._connectivity_error(e, max_retries) from e

    def _connectivity_error(self, error: Exception, attempts: int) -> ConnectivityError:
        detail = f"Failed to connect to {self.describe()} after {attempts} attempts: {error}"
        get_diagnostic_logger().error(detail)
        return ConnectivityError(detail=detail)

    @contextmanager
    def get_connection(self):
        """
        Get a connection for one logical operation

        Uncommitted work is rolled back when the block exits with an error.

        Yields:
            psycopg.Connection: Database connection
        """
        if self.pooled:
            self.open()
            with self._pool.connection() as conn:
                yield conn
            return

        conn = self.connect()
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def get_cursor(self):
        """
        Get a cursor on a connection for one operation

        Yields:
            psycopg.Cursor: Database cursor
        """
        with self.get_connection() as conn:
            with conn.cursor() as cur:
                yield cur

    def execute_query(self, query, params: tuple | dict | None = None) -> list[dict]:
        """
        Execute a SELECT query and return results

        Args:
            query: SQL SELECT query
            params: Query parameters (optional)

        Returns:
            List of dictionaries (one per row)
        """
        with self.get_cursor() as cur:
            cur.execute(query, params)
            return cur.fetchall()

    def execute_command(self, command, params: tuple | dict | None = None) -> int:
        """
        Execute an INSERT/UPDATE/DELETE command

        Args:
            command: SQL command
            params: Command parameters (optional)

        Returns:
            Number of rows affected
        """
        with self.get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(command, params)
                rowcount = cur.rowcount
            conn.commit()
            return rowcount

    def __enter__(self):
        """Context manager entry"""
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit"""
        self.close()
        return False
