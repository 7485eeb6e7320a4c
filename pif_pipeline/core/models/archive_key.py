"""
ArchiveKey model: composite key of a record confirmed archived for a site.
"""

from pydantic import BaseModel

KEY_SEPARATOR = "|"


class ArchiveKey(BaseModel):
    """
    Archived record identity, rendered as ``entity_id|project_id``.

    Attributes:
        entity_id: PIF identifier
        project_id: Project identifier (blank when the archived row has none)
    """

    entity_id: str
    project_id: str = ""

    @classmethod
    def of(cls, entity_id: str, project_id: str | None) -> "ArchiveKey":
        return cls(entity_id=entity_id.strip(), project_id=(project_id or "").strip())

    @classmethod
    def parse(cls, value: str) -> "ArchiveKey":
        """Parse the ``entity_id|project_id`` string form."""
        entity_id, sep, project_id = value.partition(KEY_SEPARATOR)
        if not sep:
            raise ValueError(f"Archive key must contain '{KEY_SEPARATOR}': {value!r}")
        return cls.of(entity_id, project_id)

    def __str__(self) -> str:
        return f"{self.entity_id}{KEY_SEPARATOR}{self.project_id}"

    class Config:
        frozen = True
        json_schema_extra = {"example": {"entity_id": "PIF001", "project_id": "PRJ01"}}
