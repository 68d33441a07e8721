"""Calendar (ICS) export of a day itinerary.

Only the subset of RFC 5545 that common calendar clients import is written:
one VEVENT per itinerary item with local floating times (no ``Z`` suffix and
no TZID), so the events land at the same wall-clock time wherever the file is
opened.
"""

from __future__ import annotations

import re
import uuid
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence

from ...config import settings
from ...models.domain import ItemKind, ScheduleItem, Stop
from ..schedule.clock import parse_planned_date

ICS_DATE_FORMAT = "%Y%m%dT%H%M%S"


def format_ics_date(moment: datetime) -> str:
    return moment.strftime(ICS_DATE_FORMAT)


def parse_ics_date(value: str) -> datetime:
    return datetime.strptime(value.strip(), ICS_DATE_FORMAT)


def escape_text(value: str) -> str:
    return (
        value.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
    )


def unescape_text(value: str) -> str:
    return re.sub(r"\\([\\;,nN])", lambda m: "\n" if m.group(1) in "nN" else m.group(1), value)


def event_end(item: ScheduleItem, arrive_home_minutes: int) -> datetime:
    """End of the calendar event for an item, defaulting where the item has none."""

    if item.end is not None:
        return item.end
    if item.travel_minutes:
        return item.start + timedelta(minutes=item.travel_minutes)
    if item.kind is ItemKind.ARRIVE_HOME:
        return item.start + timedelta(minutes=arrive_home_minutes)
    return item.start


def _stop_address(stop: Stop) -> str:
    parts = [part for part in (stop.address, stop.postcode) if part]
    return ", ".join(parts) if parts else stop.name


def _summary(item: ScheduleItem, stops: Dict[str, Stop]) -> str:
    if item.kind is ItemKind.VISIT:
        return f"{item.location} Visit"
    if item.kind is ItemKind.TRAVEL:
        destination = stops.get(item.destination_stop_id or "")
        return f"Travel to {destination.label if destination else 'Home'}"
    if item.kind is ItemKind.LEAVE_HOME:
        return "Leave Home"
    if item.kind is ItemKind.ARRIVE_HOME:
        return "Arrive Home"
    return item.title or "Operational"


def _location(item: ScheduleItem, stops: Dict[str, Stop]) -> str:
    if item.kind is ItemKind.VISIT and item.stop_id in stops:
        return _stop_address(stops[item.stop_id])
    if item.kind is ItemKind.TRAVEL:
        destination = stops.get(item.destination_stop_id or "")
        return destination.label if destination else "Home"
    return item.location


def _description(item: ScheduleItem, summary: str) -> str:
    lines = [summary]
    if item.travel_minutes and item.distance_miles:
        lines.append(f"Distance: {item.distance_miles:.1f} miles")
        lines.append(f"Duration: {item.travel_minutes} minutes")
    if item.kind is ItemKind.VISIT and item.end is not None:
        lines.append(f"Visit duration: {item.duration_minutes} minutes")
    if item.location and item.kind is not ItemKind.TRAVEL:
        lines.append(f"Location: {item.location}")
    return "\n".join(lines)


def generate_ics(
    items: Sequence[ScheduleItem],
    planned_date: str,
    stops: Sequence[Stop] = (),
    *,
    product_id: Optional[str] = None,
    uid_domain: Optional[str] = None,
    arrive_home_minutes: Optional[int] = None,
) -> str:
    """Serialize an ordered itinerary as calendar text with CRLF line endings."""

    product_id = product_id or settings.ics_product_id
    uid_domain = uid_domain or settings.ics_uid_domain
    if arrive_home_minutes is None:
        arrive_home_minutes = settings.arrive_home_event_minutes
    stop_map = {stop.stop_id: stop for stop in stops}
    day = parse_planned_date(planned_date).strftime("%Y%m%d")
    export_token = uuid.uuid4().hex[:12]

    lines: List[str] = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{product_id}",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
    ]
    for index, item in enumerate(items):
        summary = _summary(item, stop_map)
        lines.extend(
            [
                "BEGIN:VEVENT",
                f"UID:route-{day}-{index}-{export_token}@{uid_domain}",
                f"DTSTART:{format_ics_date(item.start)}",
                f"DTEND:{format_ics_date(event_end(item, arrive_home_minutes))}",
                f"SUMMARY:{escape_text(summary)}",
                f"DESCRIPTION:{escape_text(_description(item, summary))}",
                f"LOCATION:{escape_text(_location(item, stop_map))}",
                "STATUS:CONFIRMED",
                "SEQUENCE:0",
                "END:VEVENT",
            ]
        )
    lines.append("END:VCALENDAR")
    return "\r\n".join(lines)


def parse_ics_events(content: str) -> List[Dict[str, object]]:
    """Read back the VEVENTs written by ``generate_ics``.

    Returns one dict per event with ``uid``, ``summary``, ``description``,
    ``location`` (unescaped strings) and ``start``/``end`` datetimes.
    """

    events: List[Dict[str, object]] = []
    current: Optional[Dict[str, object]] = None
    for raw_line in content.splitlines():
        line = raw_line.strip()
        if line == "BEGIN:VEVENT":
            current = {}
            continue
        if line == "END:VEVENT":
            if current is not None:
                events.append(current)
            current = None
            continue
        if current is None or ":" not in line:
            continue
        name, value = line.split(":", 1)
        name = name.split(";", 1)[0].upper()
        if name == "DTSTART":
            current["start"] = parse_ics_date(value)
        elif name == "DTEND":
            current["end"] = parse_ics_date(value)
        elif name in {"UID", "SUMMARY", "DESCRIPTION", "LOCATION", "STATUS"}:
            current[name.lower()] = unescape_text(value)
    return events


def ics_filename(manager_name: str, planned_date: str) -> str:
    slug = re.sub(r"\s+", "-", manager_name.strip())
    return f"route-{slug}-{planned_date}.ics"
