"""
Input validation utilities for the PIF submission pipeline.

Provides validation for values that end up in SQL identifiers or scope
database statements (site codes, backup stamps, table names) so that no
user-controlled text is ever spliced into SQL.
"""

import re


class ValidationError(ValueError):
    """Raised when input validation fails."""
    pass


def validate_site(site: str, field_name: str = "site") -> str:
    """
    Validate a site code.

    Site codes are 1-4 alphanumeric characters.

    Args:
        site: The site code to validate
        field_name: Name of the field (for error messages)

    Returns:
        The validated site code (stripped of whitespace)

    Raises:
        ValidationError: If validation fails

    Examples:
        >>> validate_site("ANO")
        'ANO'
        >>> validate_site("AN O")  # doctest: +SKIP
        ValidationError: site contains invalid characters
    """
    if not site or not isinstance(site, str):
        raise ValidationError(f"{field_name} must be a non-empty string")

    site = site.strip()

    if not site:
        raise ValidationError(f"{field_name} cannot be empty or whitespace-only")

    if not re.match(r'^[A-Za-z0-9]{1,4}$', site):
        raise ValidationError(
            f"{field_name} must be 1-4 alphanumeric characters, got '{site}'"
        )

    return site


def validate_backup_stamp(stamp: str, field_name: str = "backup_stamp") -> str:
    """
    Validate a system-generated backup stamp (YYYYMMDDHHMMSS).

    Args:
        stamp: The stamp to validate
        field_name: Name of the field (for error messages)

    Returns:
        The validated stamp

    Raises:
        ValidationError: If the stamp is not exactly 14 digits

    Examples:
        >>> validate_backup_stamp("20260315093000")
        '20260315093000'
        >>> validate_backup_stamp("2026; DROP")  # doctest: +SKIP
        ValidationError: backup_stamp must be 14 digits
    """
    if not isinstance(stamp, str) or not re.fullmatch(r'[0-9]{14}', stamp):
        raise ValidationError(f"{field_name} must be 14 digits (YYYYMMDDHHMMSS), got {stamp!r}")
    return stamp


def sanitize_sql_identifier(identifier: str, field_name: str = "identifier") -> str:
    """
    Sanitize an SQL identifier (table name, column name, etc.).

    This is a strict validation that only allows safe SQL identifiers.
    Use this for dynamic table/column names to prevent SQL injection.

    Args:
        identifier: The identifier to sanitize
        field_name: Name of the field (for error messages)

    Returns:
        The validated identifier

    Raises:
        ValidationError: If validation fails

    Examples:
        >>> sanitize_sql_identifier("pif_projects_inflight_backup_20260315093000")
        'pif_projects_inflight_backup_20260315093000'
        >>> sanitize_sql_identifier("table; DROP TABLE users;")  # doctest: +SKIP
        ValidationError: identifier contains invalid characters
    """
    if not identifier or not isinstance(identifier, str):
        raise ValidationError(f"{field_name} must be a non-empty string")

    identifier = identifier.strip()

    # SQL identifiers: alphanumeric and underscores only, must start with letter or underscore
    if not re.match(r'^[a-zA-Z_][a-zA-Z0-9_]*$', identifier):
        raise ValidationError(
            f"{field_name} contains invalid characters. "
            "SQL identifiers must start with a letter or underscore and contain only "
            "alphanumeric characters and underscores."
        )

    if len(identifier) > 63:  # PostgreSQL limit
        raise ValidationError(f"{field_name} exceeds PostgreSQL maximum length of 63 characters")

    return identifier


def backup_table_name(table: str, stamp: str) -> str:
    """
    Name of the timestamped backup copy of ``table``.

    Raises:
        ValidationError: If the stamp is not numeric or the result is not a
            safe identifier
    """
    return sanitize_sql_identifier(
        f"{sanitize_sql_identifier(table, 'table')}_backup_{validate_backup_stamp(stamp)}",
        "backup_table",
    )
