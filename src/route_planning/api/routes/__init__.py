"""Route group exports."""

from . import health, schedules

__all__ = ["health", "schedules"]
