"""Helpers for provider authors turning scraped text into model values.

Provides:
- Partial date parsing (full dates, year-month, year, month-day)
- Description cleanup before Markdown rendering
"""

import re
from typing import Optional

from .models import PartialDate

_UNKNOWN_DATES = ('tba', 'unknown', 'n/a')

# Years at or past this are placeholders ("9999-12-31")
_PLACEHOLDER_YEAR = 3000

_FULL_DATE = re.compile(r'^(\d{4})[-/.](\d{1,2})[-/.](\d{1,2})(?:T.*)?$')
_YEAR_MONTH = re.compile(r'^(\d{4})[-/.](\d{1,2})$')
_YEAR_ONLY = re.compile(r'^(\d{4})$')
_MONTH_DAY = re.compile(r'^(\d{1,2})[-/.](\d{1,2})$')

_TRAILING_SPACE = re.compile(r'[ \t]+$')
_DEEP_INDENT = re.compile(r'^[ \t]{4,}')


def parse_partial_date(text: Optional[str]) -> Optional[PartialDate]:
    """
    Parse scraped date text.

    Accepts "2004-01-29" (also "/" or "." separators and an optional
    "T..." time suffix), "2004-01", "2004" and "01-29".

    Returns:
        PartialDate, or None for empty, unknown ("TBA") or unparseable text
    """
    if not text:
        return None

    value = text.strip()
    if not value or value.lower() in _UNKNOWN_DATES:
        return None

    match = _FULL_DATE.match(value)
    if match:
        year, month, day = (int(g) for g in match.groups())
        if year >= _PLACEHOLDER_YEAR:
            return PartialDate(month=month, day=day)
        return PartialDate(year=year, month=month, day=day)

    match = _YEAR_MONTH.match(value)
    if match:
        year, month = (int(g) for g in match.groups())
        if year >= _PLACEHOLDER_YEAR:
            return None
        return PartialDate(year=year, month=month)

    match = _YEAR_ONLY.match(value)
    if match:
        year = int(match.group(1))
        if year >= _PLACEHOLDER_YEAR:
            return None
        return PartialDate(year=year)

    match = _MONTH_DAY.match(value)
    if match:
        month, day = (int(g) for g in match.groups())
        return PartialDate(month=month, day=day)

    return None


def normalize_scraped_description(text: Optional[str]) -> Optional[str]:
    """
    Clean a scraped description for Markdown rendering.

    Sources that indent paragraphs for visual alignment would otherwise
    render as code blocks, so 4+ leading spaces are dropped at the start
    of each paragraph. Blank-line runs collapse to one.
    """
    if not text or not text.strip():
        return None

    lines = text.replace('\r\n', '\n').replace('\r', '\n').split('\n')
    normalized = []
    previous_blank = True

    for raw_line in lines:
        line = _TRAILING_SPACE.sub('', raw_line)

        if not line.strip():
            if not previous_blank:
                normalized.append('')
            previous_blank = True
            continue

        normalized.append(_DEEP_INDENT.sub('', line) if previous_blank else line)
        previous_blank = False

    return '\n'.join(normalized).strip() or None
