"""Data models for Mitr API responses and controller state."""

from pymitr.models._base import MitrBaseModel, MitrTimestamp, parse_mitr_timestamp
from pymitr.models.location import DeviceData, LocationSample
from pymitr.models.session import ErrorKind, SessionSnapshot, SyncError, TriggerState
from pymitr.models.status import CommandAck, DeviceStatus

__all__ = [
    "CommandAck",
    "DeviceData",
    "DeviceStatus",
    "ErrorKind",
    "LocationSample",
    "MitrBaseModel",
    "MitrTimestamp",
    "SessionSnapshot",
    "SyncError",
    "TriggerState",
    "parse_mitr_timestamp",
]
