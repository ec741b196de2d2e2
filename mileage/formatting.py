"""Display helpers shared by the validator, aggregator and CLI."""

from datetime import date
from typing import Optional


def format_number(num: Optional[float]) -> str:
    """Format a number with thousands separators."""
    return f"{num:,.0f}" if num is not None else "-"


def month_key(day: date) -> str:
    return day.strftime("%Y-%m")


def month_label(day: date) -> str:
    """Short month label, e.g. 'Jan 2026'."""
    return day.strftime("%b %Y")
