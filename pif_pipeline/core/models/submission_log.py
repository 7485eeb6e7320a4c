"""
SubmissionLog model: one audit entry per successful promotion.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class SubmissionLog(BaseModel):
    """
    Audit entry written after each successful promotion step.

    Attributes:
        log_id: Auto-increment primary key (None until persisted)
        submitted_at: When the promotion completed
        submitted_by: Actor who triggered it
        source_file: Name of the entry-surface artifact
        site: Site the promotion applied to
        transition: "commit_to_inflight" or "archive_approved"
        record_count: Number of project records moved
        notes: Free text (elapsed time, backup table name, ...)
    """

    log_id: int | None = None
    submitted_at: datetime = Field(default_factory=datetime.now)
    submitted_by: str
    source_file: str | None = None
    site: str
    transition: str
    record_count: int = Field(0, ge=0)
    notes: str | None = None

    class Config:
        json_schema_extra = {
            "example": {
                "log_id": 1,
                "submitted_by": "jdoe",
                "source_file": "PIF_ANO_2026.xlsx",
                "site": "ANO",
                "transition": "commit_to_inflight",
                "record_count": 42,
                "notes": "costs=120; backups=pif_projects_inflight_backup_20260315093000",
            }
        }
