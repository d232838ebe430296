"""Location sample models."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from pymitr.models._base import MitrBaseModel, MitrTimestamp


class LocationSample(MitrBaseModel):
    """One reported position of a tracked device.

    Parameters
    ----------
    device_id : str
        Device that reported the position.
    latitude : float
        Latitude in degrees.
    longitude : float
        Longitude in degrees.
    timestamp : datetime
        When the position was recorded (aware, UTC).
    """

    device_id: str
    latitude: float
    longitude: float
    timestamp: MitrTimestamp

    @property
    def key(self) -> tuple[str, datetime]:
        """Display identity. Not enforced unique; duplicates are kept."""
        return (self.device_id, self.timestamp)


class DeviceData(MitrBaseModel):
    """Response of the data endpoint: the current batch of samples."""

    coordinates: list[LocationSample] = Field(default_factory=list)
