from __future__ import annotations

from datetime import date, datetime
from typing import Optional


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def today_local() -> date:
    return now_local().date()


def fmt_date(value: Optional[date], fmt: str = "%Y-%m-%d") -> str:
    if not value:
        return "-"
    return value.strftime(fmt)


def fmt_long_date(value: Optional[date]) -> str:
    """'March 5, 2025' style used on printed documents."""
    if not value:
        return "-"
    return f"{value.strftime('%B')} {value.day}, {value.year}"
