"""Explicit calendar date extraction.

Recognises "3rd feb", "3 february", "feb 3" and "February 3rd" style
mentions. Month names may be shortened to any prefix of at least three
letters ("sept" works too). The year is always the current UTC year.
Relative phrases ("yesterday", "last friday") are not recognised.
"""

from __future__ import annotations

import re
from datetime import UTC, date, datetime

from ledgerbot.exceptions import InvalidDateCandidateError

_MONTH_NAMES = (
    "january",
    "february",
    "march",
    "april",
    "may",
    "june",
    "july",
    "august",
    "september",
    "october",
    "november",
    "december",
)

_MIN_MONTH_PREFIX = 3

# "3rd feb", "3 feb", "on 21st september"
_DAY_MONTH = re.compile(r"\b([0-9]{1,2})(?:st|nd|rd|th)?\s+([a-z]+)\b", re.IGNORECASE)

# "feb 3", "february 3rd"
_MONTH_DAY = re.compile(r"\b([a-z]+)\s+([0-9]{1,2})(?:st|nd|rd|th)?\b", re.IGNORECASE)


def today_utc() -> date:
    """Return the current calendar date in UTC."""
    return datetime.now(UTC).date()


def month_number(token: str) -> int | None:
    """Map a month name or its 3+ letter prefix to 1-12."""
    token = token.lower()
    if len(token) < _MIN_MONTH_PREFIX:
        return None
    for index, name in enumerate(_MONTH_NAMES, start=1):
        if name.startswith(token):
            return index
    return None


def _build_date(year: int, month: int, day: int) -> date:
    if not 1 <= day <= 31:
        raise InvalidDateCandidateError(f"day out of range: {day}")
    try:
        candidate = date(year, month, day)
    except ValueError as exc:
        # date() refuses to roll 30 feb over into march
        raise InvalidDateCandidateError(str(exc)) from exc
    if candidate.day != day:
        raise InvalidDateCandidateError(f"day does not round-trip: {day}")
    return candidate


def _first_day_month(text: str) -> tuple[int, int] | None:
    for match in _DAY_MONTH.finditer(text):
        month = month_number(match.group(2))
        if month is not None:
            return int(match.group(1)), month
    return None


def _first_month_day(text: str) -> tuple[int, int] | None:
    for match in _MONTH_DAY.finditer(text):
        month = month_number(match.group(1))
        if month is not None:
            return int(match.group(2)), month
    return None


def resolve_date(text: str, *, today: date | None = None) -> date | None:
    """Find the first explicit date mentioned in ``text``.

    Day-month order is tried before month-day. An impossible date such as
    "30 feb" counts as no match for its pattern and the next pattern is
    tried.

    Args:
        text: Free-form message text.
        today: Reference date supplying the year. Defaults to today in UTC.

    Returns:
        The resolved date, or None when nothing valid is mentioned.
    """
    year = (today or today_utc()).year

    for finder in (_first_day_month, _first_month_day):
        found = finder(text)
        if found is None:
            continue
        day, month = found
        try:
            return _build_date(year, month, day)
        except InvalidDateCandidateError:
            continue

    return None
