"""
Typed parameter binding for server-side function calls.

Every parameter of a staging call is declared with the SQL type and size of
its destination column. Values are converted and checked on the client before
anything is sent, so an over-long string or a non-numeric amount fails with
the parameter name instead of being truncated or implicitly converted by the
server. Only parameters declared ``strict=False`` may fall back to an untyped
text parameter, and each fallback is logged and counted.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Literal

from psycopg import sql
from psycopg.types.numeric import Int4

from pif_pipeline.errors import ParameterBindingError
from pif_pipeline.observability.logger import get_logger
from pif_pipeline.observability.metrics import increment_counter, parameter_fallbacks_total
from pif_pipeline.utils.validation import sanitize_sql_identifier

logger = get_logger(__name__)

SqlType = Literal["varchar", "char", "int", "numeric", "date", "bit"]

# Casts never carry a length: a cast to varchar(n) would truncate silently.
SQL_CASTS = {
    "varchar": "varchar",
    "char": "varchar",
    "int": "int4",
    "numeric": "numeric",
    "date": "date",
    "bit": "boolean",
}

INT4_MIN = -(2 ** 31)
INT4_MAX = 2 ** 31 - 1


@dataclass(frozen=True)
class ParamSpec:
    """
    Declared type of one function parameter.

    Attributes:
        name: Parameter / record attribute name
        sql_type: Destination column type
        size: Max characters for varchar/char; total digits for numeric
        scale: Digits after the decimal point (numeric only)
        strict: Type mismatches are hard failures when True
    """

    name: str
    sql_type: SqlType
    size: int | None = None
    scale: int = 0
    strict: bool = True


@dataclass(frozen=True)
class BoundCall:
    """A ready-to-execute ``SELECT fn(...)`` statement and its parameters."""

    query: sql.Composed
    params: list[Any]
    fallbacks: tuple[str, ...] = ()


class ParameterBinder:
    """
    Converts record values to their declared parameter types.
    """

    def bind_value(self, procedure: str, spec: ParamSpec, value: Any) -> Any:
        """
        Convert one value to its declared type.

        Args:
            procedure: Function name (for error messages)
            spec: Declared parameter type
            value: Raw record value

        Returns:
            Value ready to be passed to psycopg

        Raises:
            ParameterBindingError: If the value does not fit the declared type
        """
        if value is None:
            return None

        converter = getattr(self, f"_to_{spec.sql_type}")
        try:
            return converter(spec, value)
        except (TypeError, ValueError, InvalidOperation) as e:
            raise ParameterBindingError(procedure, spec.name, str(e)) from e

    def bind_call(self, procedure: str, specs: list[ParamSpec], values: dict[str, Any]) -> BoundCall:
        """
        Bind every declared parameter of ``procedure``.

        Non-strict parameters whose value does not fit are sent as untyped
        text and left to the server to convert.

        Args:
            procedure: Server function name
            specs: Declared parameters, in call order
            values: Record values by parameter name

        Returns:
            BoundCall with the composed statement and bound parameters

        Raises:
            ParameterBindingError: If a strict parameter does not fit
        """
        placeholders = []
        params = []
        fallbacks = []

        for spec in specs:
            value = values.get(spec.name)
            try:
                bound = self.bind_value(procedure, spec, value)
                cast = sql.SQL(SQL_CASTS[spec.sql_type])
                placeholders.append(sql.SQL("{}::{}").format(sql.Placeholder(), cast))
            except ParameterBindingError as e:
                if spec.strict:
                    raise
                bound = str(value)
                placeholders.append(sql.Placeholder())
                fallbacks.append(spec.name)
                logger.warning(
                    f"{procedure}.{spec.name}: bound as generic text ({e.reason})",
                    extra={"procedure": procedure, "parameter": spec.name},
                )
                increment_counter(parameter_fallbacks_total, procedure=procedure, parameter=spec.name)
            params.append(bound)

        query = sql.SQL("SELECT {}({})").format(
            sql.Identifier(sanitize_sql_identifier(procedure, "procedure")),
            sql.SQL(", ").join(placeholders),
        )
        return BoundCall(query=query, params=params, fallbacks=tuple(fallbacks))

    def _to_varchar(self, spec: ParamSpec, value: Any) -> str:
        text = value if isinstance(value, str) else str(value)
        if spec.size is not None and len(text) > spec.size:
            raise ValueError(f"length {len(text)} exceeds column size {spec.size}")
        return text

    _to_char = _to_varchar

    def _to_int(self, spec: ParamSpec, value: Any) -> Int4:
        if isinstance(value, bool):
            raise TypeError("boolean is not an integer")
        if isinstance(value, (float, Decimal)):
            if value != int(value):
                raise ValueError(f"{value} is not a whole number")
            value = int(value)
        if not isinstance(value, int):
            value = int(str(value).strip())
        if not INT4_MIN <= value <= INT4_MAX:
            raise ValueError(f"{value} is outside the int range")
        return Int4(value)

    def _to_numeric(self, spec: ParamSpec, value: Any) -> Decimal:
        if isinstance(value, bool):
            raise TypeError("boolean is not a number")
        number = value if isinstance(value, Decimal) else Decimal(str(value).strip())
        if not number.is_finite():
            raise ValueError(f"{value} is not a finite number")
        if spec.size is not None:
            integer_digits = spec.size - spec.scale
            if abs(number) >= Decimal(10) ** integer_digits:
                raise ValueError(f"{value} does not fit numeric({spec.size},{spec.scale})")
        return number

    def _to_date(self, spec: ParamSpec, value: Any) -> date:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        raise TypeError(f"{type(value).__name__} is not a date")

    def _to_bit(self, spec: ParamSpec, value: Any) -> bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, int) and value in (0, 1):
            return bool(value)
        raise TypeError(f"{value!r} is not a bit value")


# Declared parameters of the staging functions, in call order. Sizes mirror
# the columns in docker/init-db.sql.
PROJECT_STAGING_PARAMS = [
    ParamSpec("entity_id", "varchar", 16),
    ParamSpec("project_id", "varchar", 10),
    ParamSpec("line_item", "int"),
    ParamSpec("status", "varchar", 58),
    ParamSpec("change_type", "varchar", 12),
    ParamSpec("accounting_treatment", "varchar", 14),
    ParamSpec("category", "varchar", 26),
    ParamSpec("seg", "int"),
    ParamSpec("opco", "varchar", 4),
    ParamSpec("site", "varchar", 4),
    ParamSpec("strategic_rank", "varchar", 26),
    ParamSpec("funding_project", "varchar", 10),
    ParamSpec("project_name", "varchar", 35),
    ParamSpec("original_isd", "varchar", 20, strict=False),
    ParamSpec("revised_isd", "varchar", 20, strict=False),
    ParamSpec("moving_isd_year", "char", 1),
    ParamSpec("lcm_issue", "varchar", 20, strict=False),
    ParamSpec("justification", "varchar", 192),
    ParamSpec("prior_year_spend", "numeric", 18, 2),
    ParamSpec("archive_flag", "bit"),
    ParamSpec("include_flag", "bit"),
]

COST_STAGING_PARAMS = [
    ParamSpec("entity_id", "varchar", 16),
    ParamSpec("project_id", "varchar", 10),
    ParamSpec("line_item", "int"),
    ParamSpec("scenario", "varchar", 12),
    ParamSpec("fiscal_year_end", "date"),
    ParamSpec("requested_value", "numeric", 18, 2),
    ParamSpec("current_value", "numeric", 18, 2),
    ParamSpec("variance_value", "numeric", 18, 2),
]
