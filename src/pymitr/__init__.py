"""pymitr - Async Python client for the Mitr device tracking API."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pymitr")
except PackageNotFoundError:
    __version__ = "0+local"
from pymitr.config import MitrConfig
from pymitr.controller import SyncSession, TriggerSyncController
from pymitr.exceptions import (
    MitrCommunicationError,
    MitrConfigError,
    MitrError,
    MitrRejectedError,
)
from pymitr.gateway import FORBIDDEN, DeviceGateway, Forbidden, Gateway
from pymitr.models import (
    CommandAck,
    DeviceData,
    DeviceStatus,
    ErrorKind,
    LocationSample,
    SessionSnapshot,
    SyncError,
    TriggerState,
)

__all__ = [
    "__version__",
    "FORBIDDEN",
    "CommandAck",
    "DeviceData",
    "DeviceGateway",
    "DeviceStatus",
    "ErrorKind",
    "Forbidden",
    "Gateway",
    "LocationSample",
    "MitrCommunicationError",
    "MitrConfig",
    "MitrConfigError",
    "MitrError",
    "MitrRejectedError",
    "SessionSnapshot",
    "SyncError",
    "SyncSession",
    "TriggerState",
    "TriggerSyncController",
]
