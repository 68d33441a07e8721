"""Helpers for turning planned-date and clock strings into datetimes."""

from __future__ import annotations

from datetime import date, datetime, time


def parse_planned_date(value: str | date) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value.strip())
    except (AttributeError, ValueError) as exc:
        raise ValueError(f"Invalid planned date '{value}', expected YYYY-MM-DD.") from exc


def parse_clock(value: str | time) -> time:
    if isinstance(value, time):
        return value
    try:
        return time.fromisoformat(value.strip())
    except (AttributeError, ValueError) as exc:
        raise ValueError(f"Invalid clock time '{value}', expected HH:MM.") from exc


def at_clock(planned_date: str | date, value: datetime | time | str) -> datetime:
    """Resolve ``value`` to a naive local datetime on the planned day."""

    if isinstance(value, datetime):
        return value.replace(tzinfo=None, microsecond=0)
    clock = parse_clock(value)
    return datetime.combine(parse_planned_date(planned_date), clock.replace(tzinfo=None, microsecond=0))


def format_clock(moment: datetime) -> str:
    return moment.strftime("%H:%M")
