"""
Lenient cell coercion.

Every function returns a ``Coerced`` tagged result and never raises for bad
input: blank cells become ``null``, unparseable cells become ``fallback`` with
the raw value kept and the record seeing NULL. The validation engine decides
what a fallback means for a given field.
"""

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable

from pif_pipeline.core.models.coerced import Coerced

TRUE_WORDS = frozenset({"TRUE", "T", "YES", "Y", "1"})
FALSE_WORDS = frozenset({"FALSE", "F", "NO", "N", "0"})

DATE_FORMATS = ("%Y-%m-%d", "%m/%d/%Y", "%Y/%m/%d", "%m/%d/%y", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%d %H:%M:%S")

_NUMBER_NOISE = re.compile(r"[,$\s]")


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def _to_decimal(value: Any) -> Decimal | None:
    if isinstance(value, Decimal):
        number = value
    elif isinstance(value, int):
        number = Decimal(value)
    elif isinstance(value, float):
        # str() keeps the shortest repr instead of the binary expansion
        number = Decimal(str(value))
    elif isinstance(value, str):
        try:
            number = Decimal(_NUMBER_NOISE.sub("", value))
        except InvalidOperation:
            return None
    else:
        return None
    return number if number.is_finite() else None


def coerce_string(value: Any) -> Coerced:
    """Trim; blank becomes NULL. Whole floats render without the ``.0``."""
    if _is_blank(value):
        return Coerced.null(value)
    if isinstance(value, bool):
        return Coerced.typed("TRUE" if value else "FALSE", value)
    if isinstance(value, float) and value.is_integer():
        return Coerced.typed(str(int(value)), value)
    if isinstance(value, datetime):
        return Coerced.typed(value.date().isoformat(), value)
    if isinstance(value, date):
        return Coerced.typed(value.isoformat(), value)
    return Coerced.typed(str(value).strip(), value)


def coerce_decimal(value: Any) -> Coerced:
    if _is_blank(value):
        return Coerced.null(value)
    if isinstance(value, bool):
        return Coerced.fallback(value, "boolean is not a number")
    number = _to_decimal(value)
    if number is None:
        return Coerced.fallback(value, f"'{value}' is not a number")
    return Coerced.typed(number, value)


def coerce_integer(value: Any) -> Coerced:
    result = coerce_decimal(value)
    if result.kind != "typed":
        return result
    number = result.value
    if number != number.to_integral_value():
        return Coerced.fallback(value, f"'{value}' is not a whole number")
    return Coerced.typed(int(number), value)


def coerce_boolean(value: Any) -> Coerced:
    """
    TRUE/FALSE, 1/0, Y/N, YES/NO, T/F (any case); any other number is true
    when non-zero. Anything else is false.
    """
    if _is_blank(value):
        return Coerced.null(value)
    if isinstance(value, bool):
        return Coerced.typed(value, value)
    if isinstance(value, (int, float, Decimal)):
        return Coerced.typed(value != 0, value)

    text = str(value).strip().upper()
    if text in TRUE_WORDS:
        return Coerced.typed(True, value)
    if text in FALSE_WORDS:
        return Coerced.typed(False, value)
    number = _to_decimal(text)
    if number is not None:
        return Coerced.typed(number != 0, value)
    return Coerced.typed(False, value)


def coerce_date(value: Any) -> Coerced:
    if _is_blank(value):
        return Coerced.null(value)
    if isinstance(value, datetime):
        return Coerced.typed(value.date(), value)
    if isinstance(value, date):
        return Coerced.typed(value, value)
    if isinstance(value, str):
        text = value.strip()
        for fmt in DATE_FORMATS:
            try:
                return Coerced.typed(datetime.strptime(text, fmt).date(), value)
            except ValueError:
                continue
    return Coerced.fallback(value, f"'{value}' is not a date")


COERCERS: dict[str, Callable[[Any], Coerced]] = {
    "string": coerce_string,
    "integer": coerce_integer,
    "decimal": coerce_decimal,
    "boolean": coerce_boolean,
    "date": coerce_date,
}


def coerce(value: Any, kind: str) -> Coerced:
    """
    Coerce a raw value to a field kind.

    Raises:
        ValueError: If ``kind`` is unknown
    """
    try:
        coercer = COERCERS[kind]
    except KeyError:
        raise ValueError(f"Unknown field kind: {kind}") from None
    return coercer(value)
