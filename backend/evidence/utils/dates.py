"""
Date normalization to ISO YYYY-MM-DD.

Pure string arithmetic: no datetime or timezone-bound objects are built, so
results never shift by a day with the process timezone.
"""

import re
from typing import Optional

MONTHS = {
    'january': 1, 'february': 2, 'march': 3, 'april': 4, 'may': 5, 'june': 6,
    'july': 7, 'august': 8, 'september': 9, 'october': 10, 'november': 11,
    'december': 12,
    'jan': 1, 'feb': 2, 'mar': 3, 'apr': 4, 'jun': 6, 'jul': 7, 'aug': 8,
    'sep': 9, 'sept': 9, 'oct': 10, 'nov': 11, 'dec': 12,
}

ISO_RE = re.compile(r'(\d{4})-(\d{1,2})-(\d{1,2})')
NUMERIC_RE = re.compile(r'(\d{1,2})[/\-](\d{1,2})[/\-](\d{2,4})(?!\d)')
MONTH_FIRST_RE = re.compile(r'([A-Za-z]{3,9})\.?\s+(\d{1,2})(?:st|nd|rd|th)?,?\s+(\d{4})', re.IGNORECASE)
DAY_FIRST_RE = re.compile(r'(\d{1,2})(?:st|nd|rd|th)?\s+([A-Za-z]{3,9})\.?,?\s+(\d{4})', re.IGNORECASE)


def _to_iso(year: int, month: int, day: int) -> Optional[str]:
    if not (1 <= month <= 12) or not (1 <= day <= 31) or year < 2000:
        return None
    return f"{year:04d}-{month:02d}-{day:02d}"


def month_number(name: str) -> Optional[int]:
    return MONTHS.get(name.lower().rstrip('.'))


def normalize_date(date_str: Optional[str]) -> Optional[str]:
    """
    Normalize a date string to YYYY-MM-DD.

    Accepted forms (first hit wins): ISO, numeric M/D/Y (2-digit years are
    20YY), "January 6, 2026" / "Jan. 6 2026", "6 Jan 2026" (optionally with
    a weekday prefix, as in RFC 2822 Date headers).

    Args:
        date_str: Raw date text

    Returns:
        ISO date string or None when the text is not a usable date

    Examples:
        >>> normalize_date("01/06/2026")
        '2026-01-06'
        >>> normalize_date("January 6, 2026")
        '2026-01-06'
        >>> normalize_date("Tue, 6 Jan 2026 09:12:00 -0800")
        '2026-01-06'
    """
    if not date_str:
        return None

    text = date_str.strip()

    match = ISO_RE.search(text)
    if match:
        year, month, day = (int(g) for g in match.groups())
        return _to_iso(year, month, day)

    match = NUMERIC_RE.search(text)
    if match:
        month, day, year = (int(g) for g in match.groups())
        if year < 100:
            year += 2000
        return _to_iso(year, month, day)

    match = MONTH_FIRST_RE.search(text)
    if match and month_number(match.group(1)):
        return _to_iso(int(match.group(3)), month_number(match.group(1)), int(match.group(2)))

    match = DAY_FIRST_RE.search(text)
    if match and month_number(match.group(2)):
        return _to_iso(int(match.group(3)), month_number(match.group(2)), int(match.group(1)))

    return None
