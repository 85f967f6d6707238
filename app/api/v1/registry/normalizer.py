"""
Canonical forms for registry fields. Pure functions: no I/O, never raise.
Absence of a value is '' (text) or None (dates).
"""

import re
import unicodedata
from datetime import date, datetime
from typing import Any, Optional

from dateutil import parser as date_parser

_COMBINING_MARKS_RE = re.compile("[\u0300-\u036f]")
_WHITESPACE_RE = re.compile(r"\s+")
_CODE_STRIP_RE = re.compile(r"[\s-]")
_NON_ALNUM_RE = re.compile(r"[^A-Z0-9]")

_ISO_DATE_RE = re.compile(r"^(\d{4})[-/](\d{1,2})[-/](\d{1,2})$")
_DMY_DATE_RE = re.compile(r"^(\d{1,2})[-/](\d{1,2})[-/](\d{4})$")

# Two fill-in dates differing in year, month and day: a parse that changes between
# them was missing a part
_PARSE_DEFAULTS = (datetime(1900, 1, 1), datetime(2000, 2, 2))


def normalize_text(value: Any) -> str:
    """Trim and strip diacritics ('Élève' -> 'Eleve')."""
    if not value:
        return ""
    decomposed = unicodedata.normalize("NFD", str(value).strip())
    return _COMBINING_MARKS_RE.sub("", decomposed)


def normalize_name(value: Any) -> str:
    return _WHITESPACE_RE.sub(" ", normalize_text(value).lower())


def normalize_class(value: Any) -> str:
    return _WHITESPACE_RE.sub(" ", normalize_text(value).upper())


def normalize_code(value: Any) -> str:
    return _CODE_STRIP_RE.sub("", normalize_text(value).upper())


def normalize_loose_token(value: Any) -> str:
    """Letters and digits only. For disambiguating match candidates, never stored."""
    return _NON_ALNUM_RE.sub("", normalize_text(value).upper())


def normalize_header(value: Any) -> str:
    return _WHITESPACE_RE.sub(" ", normalize_text(value).lower()).strip()


def _iso(year: str, month: str, day: str) -> Optional[str]:
    try:
        return date(int(year), int(month), int(day)).isoformat()
    except ValueError:
        return None


def normalize_date(value: Any) -> Optional[str]:
    """
    Return a YYYY-MM-DD string or None.

    Accepts date/datetime objects, YYYY-MM-DD / YYYY/MM/DD, DD-MM-YYYY / DD/MM/YYYY,
    and falls back to a generic parse for anything else ('March 1, 2015').
    Impossible calendar dates (2015-02-30) and partial dates ('2015', 'March') are None.
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()

    raw = str(value).strip()
    if not raw:
        return None

    m = _ISO_DATE_RE.match(raw)
    if m:
        return _iso(m.group(1), m.group(2), m.group(3))

    m = _DMY_DATE_RE.match(raw)
    if m:
        return _iso(m.group(3), m.group(2), m.group(1))

    try:
        parsed = {date_parser.parse(raw, default=d).date() for d in _PARSE_DEFAULTS}
    except (ValueError, OverflowError):
        return None
    if len(parsed) != 1:
        return None
    return parsed.pop().isoformat()
