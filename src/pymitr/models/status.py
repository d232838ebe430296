"""Trigger status and command acknowledgement models."""

from __future__ import annotations

from pymitr.models._base import MitrBaseModel


class DeviceStatus(MitrBaseModel):
    """Response of the status endpoint."""

    triggered: bool = False


class CommandAck(MitrBaseModel):
    """Successful start/stop trigger response."""

    message: str | None = None
