"""Tests for date normalization and formatting."""

import os
import sys
from datetime import date, datetime, timezone
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))

from upstream.core.errors import ValidationError
from upstream.services.dates import format_date, is_mysql_date, is_unix_time, to_mysql_date

MAY_FIRST_2024 = 1714521600


@pytest.mark.parametrize(
    "raw",
    [
        "2024-05-01",
        "2024-05-01 13:45:00",
        MAY_FIRST_2024,
        str(MAY_FIRST_2024),
        "May 01, 2024",
        "05/01/2024",
        "2024-05-01T23:00:00",
        date(2024, 5, 1),
        datetime(2024, 5, 1, 9, 30),
    ],
)
def test_to_mysql_date_accepts_mixed_inputs(raw):
    assert to_mysql_date(raw) == "2024-05-01"


def test_canonical_output_is_stable_when_fed_back():
    first = to_mysql_date("May 01, 2024")
    assert to_mysql_date(first) == first
    assert to_mysql_date(to_mysql_date(first)) == first


def test_aware_datetime_is_normalized_to_utc():
    late_evening = datetime(2024, 4, 30, 23, 30, tzinfo=timezone.utc)
    assert to_mysql_date(late_evening) == "2024-04-30"


def test_empty_values_clear_the_date():
    assert to_mysql_date(None) is None
    assert to_mysql_date("") is None
    assert to_mysql_date("   ") is None


@pytest.mark.parametrize("raw", ["not a date", "2024-13-40", True])
def test_invalid_dates_raise_validation_error(raw):
    with pytest.raises(ValidationError):
        to_mysql_date(raw)


def test_date_pattern_wins_over_digits():
    # Contains the YYYY-MM-DD pattern, so it is taken as canonical rather than parsed further
    assert is_mysql_date("2024-05-01")
    assert not is_unix_time("2024-05-01")
    assert is_unix_time("1714521600")
    assert to_mysql_date("20240501-2024-05-01") == "2024-05-01"


def test_format_date_unix_is_midnight_utc():
    assert format_date("2024-05-01", "unix") == MAY_FIRST_2024
    assert format_date("1970-01-01", "unix") == 0


def test_format_date_mysql_returns_stored_value():
    assert format_date("2024-05-01") == "2024-05-01"
    assert format_date("2024-05-01", "mysql") == "2024-05-01"


def test_format_date_upstream_uses_display_format():
    assert format_date("2024-05-01", "upstream") == "May 01, 2024"
    assert format_date("2024-05-01", "upstream", display_format="%d/%m/%Y") == "01/05/2024"
    assert format_date(str(MAY_FIRST_2024), "upstream") == "May 01, 2024"


def test_format_date_handles_missing_and_unknown():
    assert format_date(None, "unix") is None
    assert format_date("", "upstream") is None
    with pytest.raises(ValidationError):
        format_date("2024-05-01", "iso")
