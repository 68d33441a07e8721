"""Export services."""

from .directions import build_directions_url
from .ics import generate_ics, ics_filename, parse_ics_events

__all__ = [
    "generate_ics",
    "parse_ics_events",
    "ics_filename",
    "build_directions_url",
]
