from __future__ import annotations

import re
from datetime import date, datetime
from functools import lru_cache

MOOD_MIN = 1.0
MOOD_MAX = 10.0

# Tried in order after the caller's own format. Ambiguous day/month strings
# such as "03/04/2025" resolve to whichever pattern comes first here.
COMMON_DATE_FORMATS = [
    "yyyy-MM-dd",
    "MM/dd/yyyy",
    "dd/MM/yyyy",
    "M/d/yyyy",
    "d/M/yyyy",
    "yyyy/MM/dd",
    "dd-MM-yyyy",
    "MM-dd-yyyy",
    "yyyy.MM.dd",
    "dd.MM.yyyy",
    "MMM d, yyyy",
    "MMM dd, yyyy",
    "dd MMM yyyy",
    "yyyy-M-d",
    "M-d-yyyy",
    "d-M-yyyy",
]

# Longest token first so "MMMM" wins over "MMM" wins over "MM".
_ICU_TOKENS = [
    ("yyyy", "%Y"),
    ("yy", "%y"),
    ("y", "%Y"),
    ("MMMM", "%B"),
    ("MMM", "%b"),
    ("MM", "%m"),
    ("M", "%m"),
    ("dd", "%d"),
    ("d", "%d"),
    ("EEEE", "%A"),
    ("EEE", "%a"),
    ("HH", "%H"),
    ("H", "%H"),
    ("hh", "%I"),
    ("h", "%I"),
    ("mm", "%M"),
    ("m", "%M"),
    ("ss", "%S"),
    ("s", "%S"),
    ("a", "%p"),
]

_NUMBER_RE = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$")


@lru_cache(maxsize=64)
def icu_to_strptime(pattern: str) -> str:
    """
    Translate an ICU / intl date pattern ("MMM d, yyyy") into strptime syntax.

    Text inside single quotes is literal ('' is a literal quote). Any other
    ASCII letter that is not a known token raises ValueError.
    """
    out: list[str] = []
    i = 0
    while i < len(pattern):
        char = pattern[i]
        if char == "'":
            end = pattern.find("'", i + 1)
            if end == i + 1:
                out.append("'")
                i += 2
                continue
            if end == -1:
                raise ValueError(f"Unterminated literal in date format {pattern!r}")
            out.append(pattern[i + 1 : end].replace("%", "%%"))
            i = end + 1
            continue
        for token, directive in _ICU_TOKENS:
            if pattern.startswith(token, i):
                out.append(directive)
                i += len(token)
                break
        else:
            if char.isascii() and char.isalpha():
                raise ValueError(f"Unsupported date pattern letter {char!r} in {pattern!r}")
            out.append("%%" if char == "%" else char)
            i += 1

    return "".join(out)


def _try_format(text: str, pattern: str) -> date | None:
    try:
        return datetime.strptime(text, icu_to_strptime(pattern)).date()
    except ValueError:
        return None


def parse_date(text: str, preferred_format: str = "") -> date | None:
    """
    Resolve a date cell.

    The caller's format is tried first, then COMMON_DATE_FORMATS in order.
    Returns None when nothing matches; whether that is fatal for the row is
    the caller's decision.
    """
    value = (text or "").strip()
    if not value:
        return None

    preferred = (preferred_format or "").strip()
    if preferred:
        parsed = _try_format(value, preferred)
        if parsed is not None:
            return parsed

    for pattern in COMMON_DATE_FORMATS:
        parsed = _try_format(value, pattern)
        if parsed is not None:
            return parsed
    return None


def parse_mood(text: str) -> float | None:
    """Return the rating in a cell, or None if it is blank, non-numeric, or outside 1-10."""
    value = (text or "").strip().replace(",", ".")
    if not value or not _NUMBER_RE.match(value):
        return None
    rating = float(value)
    if MOOD_MIN <= rating <= MOOD_MAX:
        return rating
    return None
