"""Formatting helpers for consumers that render a session.

Nothing here feeds back into the controller; these helpers only shape a
:class:`~pymitr.models.session.SessionSnapshot` for display.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime

from pymitr.models.location import LocationSample


def map_center(samples: Sequence[LocationSample]) -> tuple[float, float]:
    """Return the mean ``(latitude, longitude)``, or ``(0.0, 0.0)`` if empty."""
    if not samples:
        return (0.0, 0.0)
    lat = sum(sample.latitude for sample in samples)
    lng = sum(sample.longitude for sample in samples)
    return (lat / len(samples), lng / len(samples))


def format_coordinate(value: float) -> str:
    return f"{value:.6f}"


def format_timestamp(value: datetime) -> str:
    """Render *value* in the local time zone."""
    return value.astimezone().strftime("%Y-%m-%d %H:%M:%S")


def sample_rows(samples: Iterable[LocationSample]) -> list[tuple[str, str, str, str]]:
    """Table rows ``(device id, latitude, longitude, time)`` in input order."""
    return [
        (
            sample.device_id,
            format_coordinate(sample.latitude),
            format_coordinate(sample.longitude),
            format_timestamp(sample.timestamp),
        )
        for sample in samples
    ]
