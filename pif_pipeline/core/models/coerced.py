"""
Coerced: tagged result of converting one raw cell value.
"""

from typing import Any, Literal

from pydantic import BaseModel

CoercionKind = Literal["typed", "fallback", "null"]


class Coerced(BaseModel):
    """
    Outcome of coercing a raw cell.

    ``typed`` carries the converted value; ``fallback`` keeps the raw text and
    the reason conversion failed (the record sees NULL); ``null`` means the
    cell was blank.
    """

    kind: CoercionKind
    value: Any = None
    raw: Any = None
    reason: str | None = None

    @classmethod
    def typed(cls, value: Any, raw: Any = None) -> "Coerced":
        return cls(kind="typed", value=value, raw=raw)

    @classmethod
    def fallback(cls, raw: Any, reason: str) -> "Coerced":
        return cls(kind="fallback", value=None, raw=raw, reason=reason)

    @classmethod
    def null(cls, raw: Any = None) -> "Coerced":
        return cls(kind="null", raw=raw)

    @property
    def is_fallback(self) -> bool:
        return self.kind == "fallback"
