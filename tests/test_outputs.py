import csv
import io
from urllib.parse import parse_qs, urlparse

import pytest

from src.route_planning.models.domain import ManagerHome, Stop, Timeline
from src.route_planning.services.export.directions import build_directions_url
from src.route_planning.services.outputs.schedule_formatter import (
    route_segments,
    schedule_to_csv,
    schedule_to_json,
    summarize,
)
from src.route_planning.services.schedule import build_schedule


@pytest.fixture
def timeline(context, options) -> Timeline:
    return Timeline(context=context, items=build_schedule(context, [], [], options).items)


def test_summary_totals_driving_legs(timeline):
    summary = summarize(timeline)

    assert summary.visit_count == 2
    assert summary.operational_count == 0
    assert summary.total_travel_minutes == 144 + 144 + 277
    assert summary.total_travel_miles == pytest.approx(276.4, abs=0.1)
    assert summary.route_window == "06:36 - 20:01"


def test_route_segments_start_from_home(timeline):
    segments = route_segments(timeline)

    assert [(segment.origin, segment.destination) for segment in segments] == [
        ("1 Home Lane", "Store A"),
        ("Store A", "Store B (B1 1AA)"),
        ("Store B (B1 1AA)", "1 Home Lane"),
    ]
    assert [segment.duration_minutes for segment in segments] == [144, 144, 277]


def test_schedule_json_carries_key_and_items(timeline):
    payload = schedule_to_json(timeline)

    assert payload["manager_id"] == "manager-1"
    assert payload["planned_date"] == "2025-03-14"
    assert payload["area"] == "North"
    assert payload["version"] == 1
    assert payload["excluded_stop_count"] == 0
    assert payload["items"][1]["kind"] == "visit"
    assert payload["items"][1]["start"] == "2025-03-14T09:00:00"
    assert payload["items"][-1]["end"] is None


def test_schedule_csv_has_one_row_per_item(timeline):
    rows = list(csv.DictReader(io.StringIO(schedule_to_csv(timeline))))

    assert len(rows) == len(timeline.items)
    assert rows[0]["kind"] == "leave_home"
    assert rows[1]["start"] == "09:00"
    assert rows[1]["end"] == "11:00"
    assert rows[2]["distance_miles"] == "69.1"


def test_empty_timeline_summary(context):
    summary = summarize(Timeline(context=context))

    assert summary.route_window is None
    assert summary.total_travel_minutes == 0


def test_directions_url_skips_completed_and_unroutable_stops():
    stops = [
        Stop("A", "Store A", 51.5, -0.1),
        Stop("B", "Store B", 51.6, -0.2),
        Stop("X", "Store X", None, None),
        Stop("C", "Store C", 51.7, -0.3),
        Stop("D", "Store D", 51.8, -0.4),
    ]
    home = ManagerHome(latitude=51.4, longitude=0.0, address="Home")

    url = build_directions_url(stops, home, completed_stop_ids=["A"])
    params = parse_qs(urlparse(url).query)

    assert url.startswith("https://www.google.com/maps/dir/?")
    assert params["api"] == ["1"]
    assert params["origin"] == ["51.4,0.0"]
    assert params["destination"] == ["51.8,-0.4"]
    assert params["waypoints"] == ["51.6,-0.2|51.7,-0.3"]
    assert params["travelmode"] == ["driving"]


def test_directions_url_without_remaining_stops_is_none():
    stops = [Stop("A", "Store A", 51.5, -0.1)]

    assert build_directions_url(stops, completed_stop_ids=["A"]) is None
    assert "waypoints" not in build_directions_url(stops)
