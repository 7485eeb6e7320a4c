"""
SiteContext: explicit per-call context replacing any global site selector.
"""

import getpass
from datetime import date

from pydantic import BaseModel, Field, field_validator

from pif_pipeline.utils.validation import validate_site

from .cost_record import MAX_BASE_YEAR, MIN_FISCAL_YEAR


def _current_user() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "unknown"


class SiteContext(BaseModel):
    """
    Who is acting, for which site, and against which fiscal base year.

    Attributes:
        site: Active site code (<= 4 chars)
        actor: User name written to the audit log
        source_name: Entry-surface artifact name (workbook file, grid id)
        reporting_year: Optional fiscal base-year override
    """

    site: str = Field(..., min_length=1, max_length=4)
    actor: str = Field(default_factory=_current_user)
    source_name: str | None = None
    reporting_year: int | None = Field(None, ge=MIN_FISCAL_YEAR, le=MAX_BASE_YEAR)

    @field_validator("site", mode="before")
    @classmethod
    def normalize_site(cls, v):
        if isinstance(v, str):
            return validate_site(v)
        return v

    @property
    def fiscal_year(self) -> int:
        """Base year of the six-year cost window."""
        return self.reporting_year or date.today().year

    def matches_site(self, value: str | None) -> bool:
        """True when a row's site value belongs to this context (case-insensitive)."""
        return value is not None and value.strip().upper() == self.site.upper()

    class Config:
        frozen = True
