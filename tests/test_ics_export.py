from datetime import datetime, timedelta

from src.route_planning.models.domain import ItemKind
from src.route_planning.services.export.ics import (
    escape_text,
    generate_ics,
    ics_filename,
    parse_ics_events,
    unescape_text,
)
from src.route_planning.services.schedule import build_schedule


def _at(clock: str) -> datetime:
    return datetime.fromisoformat(f"2025-03-14T{clock}")


def _export(context, options, **kwargs) -> tuple:
    items = build_schedule(context, [], [], options).items
    content = generate_ics(items, context.key.planned_date, context.stops, **kwargs)
    return items, content


def test_every_item_becomes_an_event_with_matching_times(context, options):
    items, content = _export(context, options)

    events = parse_ics_events(content)

    assert len(events) == len(items)
    visits = [(event["start"], event["end"]) for event in events if event["summary"].endswith("Visit")]
    assert visits == [(_at("09:00"), _at("11:00")), (_at("13:24"), _at("15:24"))]


def test_events_use_floating_local_times(context, options):
    _, content = _export(context, options)

    dt_lines = [line for line in content.split("\r\n") if line.startswith(("DTSTART", "DTEND"))]
    assert dt_lines
    assert "DTSTART:20250314T090000" in dt_lines
    assert not any(line.endswith("Z") or "TZID" in line for line in dt_lines)


def test_calendar_uses_crlf_and_wraps_events(context, options):
    _, content = _export(context, options, product_id="-//Test//EN")

    lines = content.split("\r\n")
    assert lines[0] == "BEGIN:VCALENDAR"
    assert lines[-1] == "END:VCALENDAR"
    assert "PRODID:-//Test//EN" in lines
    assert "\n" not in content.replace("\r\n", "")


def test_event_uids_are_unique_within_and_across_exports(context, options):
    _, first = _export(context, options, uid_domain="example.test")
    _, second = _export(context, options, uid_domain="example.test")

    first_uids = [event["uid"] for event in parse_ics_events(first)]
    second_uids = [event["uid"] for event in parse_ics_events(second)]

    assert len(set(first_uids)) == len(first_uids)
    assert not set(first_uids) & set(second_uids)
    assert all(uid.startswith("route-20250314-") and uid.endswith("@example.test") for uid in first_uids)


def test_summaries_and_locations_by_kind(context, options):
    _, content = _export(context, options)

    events = parse_ics_events(content)

    assert [event["summary"] for event in events] == [
        "Leave Home",
        "Store A Visit",
        "Travel to Store B (B1 1AA)",
        "Store B Visit",
        "Travel to Home",
        "Arrive Home",
    ]
    assert events[3]["location"] == "B High Street, B1 1AA"
    assert events[2]["location"] == "Store B (B1 1AA)"
    assert "Distance: 69.1 miles" in events[2]["description"]
    assert "Duration: 144 minutes" in events[2]["description"]
    assert "Visit duration: 120 minutes" in events[1]["description"]


def test_events_without_end_get_default_lengths(context, options):
    items, content = _export(context, options, arrive_home_minutes=5)

    events = parse_ics_events(content)
    arrive_home = items[-1]
    travel = next(item for item in items if item.kind is ItemKind.TRAVEL)

    assert events[-1]["end"] == arrive_home.start + timedelta(minutes=5)
    assert events[2]["end"] == travel.start + timedelta(minutes=travel.travel_minutes)


def test_text_escaping_round_trips():
    raw = "Lunch; team, \\ notes\nsecond line"

    escaped = escape_text(raw)

    assert escaped == r"Lunch\; team\, \\ notes\nsecond line"
    assert unescape_text(escaped) == raw


def test_empty_itinerary_exports_empty_calendar():
    content = generate_ics([], "2025-03-14")

    assert parse_ics_events(content) == []
    assert content.startswith("BEGIN:VCALENDAR")


def test_filename_uses_manager_and_date():
    assert ics_filename("Jane  Smith", "2025-03-14") == "route-Jane-Smith-2025-03-14.ics"
