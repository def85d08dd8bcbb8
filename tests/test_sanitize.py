import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))

from upstream.core.sanitize import intval, sanitize_ids, sanitize_text_field, sanitize_textarea_field


def test_sanitize_ids_keeps_distinct_non_zero_integers():
    raw = [3, "3", 0, "abc", 5, 5.7, None, "7x", "", -2]
    assert sanitize_ids(raw) == [3, 5, 7, -2]


def test_sanitize_ids_on_empty_input():
    assert sanitize_ids([]) == []
    assert sanitize_ids([0, "0", None]) == []


def test_intval_follows_loose_integer_rules():
    assert intval("12abc") == 12
    assert intval(" 42 ") == 42
    assert intval("abc") == 0
    assert intval(9.9) == 9
    assert intval(True) == 1
    assert intval(None) == 0
    assert intval(float("nan")) == 0


def test_text_field_strips_markup_and_collapses_whitespace():
    assert sanitize_text_field("  <b>Launch</b>\n  day\t") == "Launch day"
    assert sanitize_text_field("<script>alert(1)</script>Safe") == "Safe"
    assert sanitize_text_field("#ff0000\x00") == "#ff0000"
    assert sanitize_text_field(None) == ""


def test_textarea_field_keeps_line_breaks():
    notes = "First line  <i>with</i>   markup\nSecond line"
    assert sanitize_textarea_field(notes) == "First line with markup\nSecond line"
