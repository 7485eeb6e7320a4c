"""
Runtime settings for the PIF submission pipeline.

Settings come from environment variables, optionally seeded from a ``.env``
file. Connection details identify the server only; authentication is expected
to be identity based (peer, GSSAPI, or a service account in ``PGPASSFILE``),
so the password is optional.
"""

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from pif_pipeline.core.models.cost_record import MAX_BASE_YEAR, MIN_FISCAL_YEAR

DEFAULT_APPROVED_STATUSES = ("Approved", "Dispositioned")


class PipelineSettings(BaseModel):
    """
    Pipeline configuration.

    Attributes:
        db_host: Database host
        db_port: Database port
        db_name: Database name
        db_user: Database role; None lets libpq pick the OS identity
        db_password: Optional password (identity-based auth is the default)
        connect_timeout: Seconds to wait for a connection
        statement_timeout: Seconds a single statement may run (bulk loads included)
        pooled: Reuse connections through psycopg_pool instead of one per operation
        approved_statuses: Status values promoted to the archive
        reporting_year: Fiscal base year override; None uses the system clock
        layout_path: Optional YAML file describing the entry-surface columns
    """

    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "pif"
    db_user: str | None = None
    db_password: str | None = None
    connect_timeout: int = Field(default=30, gt=0)
    statement_timeout: int = Field(default=300, gt=0)
    pooled: bool = False
    approved_statuses: tuple[str, ...] = DEFAULT_APPROVED_STATUSES
    reporting_year: int | None = Field(default=None, ge=MIN_FISCAL_YEAR, le=MAX_BASE_YEAR)
    layout_path: Path | None = None

    @field_validator("approved_statuses", mode="before")
    @classmethod
    def split_statuses(cls, v):
        """Accept a comma-separated string as well as a sequence."""
        if isinstance(v, str):
            v = [s.strip() for s in v.split(",")]
        statuses = tuple(s for s in v if s)
        if not statuses:
            raise ValueError("approved_statuses must name at least one status")
        return statuses

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> "PipelineSettings":
        """
        Build settings from the environment.

        Args:
            env_file: Optional .env file loaded before reading variables
                (existing environment variables win)

        Returns:
            PipelineSettings instance
        """
        if env_file is not None:
            load_dotenv(env_file, override=False)

        values: dict[str, object] = {}
        mapping = {
            "PIF_DB_HOST": "db_host",
            "PIF_DB_PORT": "db_port",
            "PIF_DB_NAME": "db_name",
            "PIF_DB_USER": "db_user",
            "PIF_DB_PASSWORD": "db_password",
            "PIF_CONNECT_TIMEOUT": "connect_timeout",
            "PIF_STATEMENT_TIMEOUT": "statement_timeout",
            "PIF_DB_POOLED": "pooled",
            "PIF_APPROVED_STATUSES": "approved_statuses",
            "PIF_REPORTING_YEAR": "reporting_year",
            "PIF_LAYOUT_PATH": "layout_path",
        }
        for env_name, field_name in mapping.items():
            raw = os.getenv(env_name)
            if raw is not None and raw.strip() != "":
                values[field_name] = raw.strip()

        return cls(**values)
