"""Rule-based parsing of plain-language money notes."""

from ledgerbot.parsing.classifier import classify
from ledgerbot.parsing.dates import resolve_date, today_utc

__all__ = ["classify", "resolve_date", "today_utc"]
