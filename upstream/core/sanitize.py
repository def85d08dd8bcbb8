"""Free-text and identifier sanitizers applied before values reach storage.

These mirror the rules the host CMS applies to text fields: markup is
stripped, control characters are dropped and, for single-line fields,
whitespace is collapsed. Identifier lists are coerced to unique non-zero
integers.
"""

from __future__ import annotations

import re
from typing import Any, Iterable, List

__all__ = [
    "sanitize_text_field",
    "sanitize_textarea_field",
    "intval",
    "sanitize_ids",
]


_TAG_BLOCK_RE = re.compile(r"<(script|style)[^>]*?>.*?</\1>", re.IGNORECASE | re.DOTALL)
_TAG_RE = re.compile(r"<[^>]*>")
_OCTET_RE = re.compile(r"%[a-fA-F0-9]{2}")
_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")


def _strip_markup(value: str) -> str:
    value = _TAG_BLOCK_RE.sub("", value)
    value = _TAG_RE.sub("", value)
    # A lone "<" that never closed a tag is kept as an entity
    return value.replace("<", "&lt;")


def _clean(value: Any, *, keep_newlines: bool) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "1" if value else ""
    text = str(value)
    text = _strip_markup(text)
    text = _OCTET_RE.sub("", text)
    text = _CONTROL_RE.sub("", text)
    if keep_newlines:
        lines = [re.sub(r"[ \t]+", " ", line).strip() for line in text.splitlines()]
        return "\n".join(lines).strip()
    return re.sub(r"\s+", " ", text).strip()


def sanitize_text_field(value: Any) -> str:
    """Single-line text: no markup, no control characters, collapsed whitespace."""

    return _clean(value, keep_newlines=False)


def sanitize_textarea_field(value: Any) -> str:
    """Like :func:`sanitize_text_field` but line breaks survive."""

    return _clean(value, keep_newlines=True)


def intval(value: Any) -> int:
    """Coerce loosely typed input to an ``int``; anything unusable becomes ``0``.

    Strings contribute their leading integer (``"12abc"`` -> ``12``), floats
    are truncated and booleans map to ``0``/``1``.
    """

    if value is None:
        return 0
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value != value or value in (float("inf"), float("-inf")):
            return 0
        return int(value)
    match = _LEADING_INT_RE.match(str(value))
    if not match:
        return 0
    return int(match.group(1))


def sanitize_ids(values: Iterable[Any]) -> List[int]:
    """Return the distinct non-zero integers of ``values`` in first-seen order."""

    seen: set[int] = set()
    cleaned: List[int] = []
    for raw in values:
        number = intval(raw)
        if not number or number in seen:
            continue
        seen.add(number)
        cleaned.append(number)
    return cleaned
