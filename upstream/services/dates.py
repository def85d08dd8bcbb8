"""Date normalization shared by every dated field.

Dates are stored canonically as ``YYYY-MM-DD`` strings. Input may arrive as a
string already holding that pattern, a unix epoch (int or all-digit string),
a ``date``/``datetime`` or a display-formatted string. Output can be requested
as the raw canonical string (``mysql``), an epoch for midnight UTC (``unix``)
or the configured display format (``upstream``).
"""

from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Any

from ..core.config import settings
from ..core.errors import ValidationError

FORMAT_MYSQL = "mysql"
FORMAT_UNIX = "unix"
FORMAT_UPSTREAM = "upstream"
FORMATS = (FORMAT_MYSQL, FORMAT_UNIX, FORMAT_UPSTREAM)

_MYSQL_DATE_RE = re.compile(r"(\d{4})-(\d{2})-(\d{2})")
_UNIX_TIME_RE = re.compile(r"^\d+$")

# Tried after the configured display format and ISO-8601.
_FALLBACK_FORMATS = (
    "%m/%d/%Y",
    "%Y/%m/%d",
    "%d.%m.%Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%d %B %Y",
    "%d %b %Y",
)


def utcnow_mysql() -> str:
    """Current UTC time as a ``YYYY-MM-DD HH:MM:SS`` record timestamp."""

    return datetime.now(tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def is_mysql_date(value: Any) -> bool:
    return isinstance(value, str) and bool(_MYSQL_DATE_RE.search(value))


def is_unix_time(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return value >= 0
    return isinstance(value, str) and bool(_UNIX_TIME_RE.match(value.strip()))


def _from_mysql(text: str) -> date:
    year, month, day = (int(part) for part in _MYSQL_DATE_RE.search(text).groups())
    try:
        return date(year, month, day)
    except ValueError as exc:
        raise ValidationError(f"Argument is not a valid date: {text!r}") from exc


def _from_unix(timestamp: int | float) -> date:
    try:
        return datetime.fromtimestamp(timestamp, tz=timezone.utc).date()
    except (OverflowError, OSError, ValueError) as exc:
        raise ValidationError(f"Timestamp {timestamp!r} is out of range") from exc


def parse_display_date(text: str, display_format: str | None = None) -> date:
    """Parse a human-entered date, trying the configured display format first."""

    candidate = text.strip()
    try:
        return datetime.strptime(candidate, display_format or settings.DATE_FORMAT).date()
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(candidate.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    for pattern in _FALLBACK_FORMATS:
        try:
            return datetime.strptime(candidate, pattern).date()
        except ValueError:
            continue
    raise ValidationError(f"Argument is not a valid date: {text!r}")


def to_mysql_date(value: Any, *, display_format: str | None = None) -> str | None:
    """Normalize ``value`` to ``YYYY-MM-DD``; empty input gives ``None``.

    A string containing the ``YYYY-MM-DD`` pattern counts as canonical even
    when it is otherwise numeric-looking, and only the date part is kept.
    """

    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, bool):
        raise ValidationError("Argument is not a valid date")
    if isinstance(value, (int, float)):
        return _from_unix(value).isoformat()

    text = str(value).strip()
    if not text:
        return None
    if is_mysql_date(text):
        return _from_mysql(text).isoformat()
    if is_unix_time(text):
        return _from_unix(int(text)).isoformat()
    return parse_display_date(text, display_format).isoformat()


def format_date(value: Any, fmt: str = FORMAT_MYSQL, *, display_format: str | None = None) -> Any:
    """Render a stored date as ``mysql`` (unchanged), ``unix`` or ``upstream``."""

    if fmt not in FORMATS:
        raise ValidationError(f"Unknown date format {fmt!r}; expected one of {', '.join(FORMATS)}")
    if value is None or value == "":
        return None
    if fmt == FORMAT_MYSQL:
        return value
    canonical = to_mysql_date(value, display_format=display_format)
    if canonical is None:
        return None
    day = date.fromisoformat(canonical)
    if fmt == FORMAT_UNIX:
        return int(datetime(day.year, day.month, day.day, tzinfo=timezone.utc).timestamp())
    return day.strftime(display_format or settings.DATE_FORMAT)
