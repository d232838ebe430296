"""Remote device gateway: the four Mitr API operations.

Each operation attaches the shared API key (via the transport) and the
configured device id, and classifies the outcome:

* success → a parsed model
* ``FORBIDDEN`` (data endpoint only) → the device is not being tracked
* :class:`~pymitr.exceptions.MitrRejectedError` → the service declined a
  start/stop command
* :class:`~pymitr.exceptions.MitrCommunicationError` → anything else

The gateway never retries.
"""

from __future__ import annotations

import enum
import logging
from typing import Any, Final, Literal, NoReturn, Protocol, TypeVar

import aiohttp
from pydantic import ValidationError

from pymitr._constants import (
    DATA_ENDPOINT,
    FORBIDDEN_STATUS,
    START_REJECTED_REASON,
    STATUS_ENDPOINT,
    STOP_REJECTED_REASON,
    TRIGGER_START_ENDPOINT,
    TRIGGER_STOP_ENDPOINT,
)
from pymitr._transport import HttpTransport, Transport, TransportResponse
from pymitr.config import MitrConfig
from pymitr.exceptions import MitrCommunicationError, MitrError, MitrRejectedError
from pymitr.models._base import MitrBaseModel
from pymitr.models.location import DeviceData
from pymitr.models.status import CommandAck, DeviceStatus

_logger = logging.getLogger(__name__)

M = TypeVar("M", bound=MitrBaseModel)


class Forbidden(enum.Enum):
    """Distinguished ``get_data`` outcome: tracking is not currently active."""

    FORBIDDEN = "forbidden"


FORBIDDEN: Final = Forbidden.FORBIDDEN

DataOutcome = DeviceData | Literal[Forbidden.FORBIDDEN]


class Gateway(Protocol):
    """Operations the controller needs from the remote side."""

    async def get_status(self) -> DeviceStatus:
        ...

    async def get_data(self) -> DataOutcome:
        ...

    async def start_trigger(self) -> CommandAck:
        ...

    async def stop_trigger(self) -> CommandAck:
        ...


def _parse(model: type[M], response: TransportResponse, endpoint: str) -> M:
    body = response.body
    if body is None:
        if response.text.strip():
            raise MitrCommunicationError(
                f"Invalid JSON from {endpoint}: {response.text[:200]}",
                status_code=response.status,
                endpoint=endpoint,
            )
        # Empty body, as sent by the stop acknowledgement.
        body = {}
    if not isinstance(body, dict):
        raise MitrCommunicationError(
            f"Unexpected payload from {endpoint}: {response.text[:200]}",
            status_code=response.status,
            endpoint=endpoint,
        )
    try:
        return model.model_validate(body)
    except ValidationError as exc:
        raise MitrCommunicationError(
            f"Malformed payload from {endpoint}: {exc.error_count()} validation error(s)",
            status_code=response.status,
            endpoint=endpoint,
        ) from exc


def _raise_unexpected_status(response: TransportResponse, endpoint: str) -> NoReturn:
    raise MitrCommunicationError(
        f"HTTP {response.status} from {endpoint}: {response.text[:200]}",
        status_code=response.status,
        endpoint=endpoint,
    )


def _rejection_reason(body: Any, default: str) -> str:
    if isinstance(body, dict):
        for key in ("error", "message"):
            value = body.get(key)
            if isinstance(value, str) and value.strip():
                return value
    return default


class DeviceGateway:
    """Async client for a single tracked device.

    Usage::

        async with DeviceGateway(config) as gateway:
            status = await gateway.get_status()

    A custom :class:`~pymitr._transport.Transport` may be passed in, in
    which case no HTTP session is created.
    """

    def __init__(
        self,
        config: MitrConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._transport: Transport | None = transport
        self._owns_transport = transport is None

    @property
    def device_id(self) -> str:
        return self._config.device_id

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> DeviceGateway:
        if self._owns_transport:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = HttpTransport(self._config, self._http_session)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if self._owns_transport:
            if not self._external_session and self._http_session is not None:
                await self._http_session.close()
                self._http_session = None
            self._transport = None

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise MitrError("Gateway not initialized. Use 'async with DeviceGateway(...) as gateway:'")
        return self._transport

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def get_status(self) -> DeviceStatus:
        """Fetch the device's current trigger status."""
        endpoint = STATUS_ENDPOINT.format(device_id=self._config.device_id)
        response = await self._require_transport().request("GET", endpoint)
        if not response.ok:
            _raise_unexpected_status(response, endpoint)
        status = _parse(DeviceStatus, response, endpoint)
        _logger.debug("Status for %s: triggered=%s", self._config.device_id, status.triggered)
        return status

    async def get_data(self) -> DataOutcome:
        """Fetch the current batch of location samples.

        Returns ``FORBIDDEN`` when the service reports the device is not
        being tracked.
        """
        endpoint = DATA_ENDPOINT.format(device_id=self._config.device_id)
        response = await self._require_transport().request("GET", endpoint)
        if response.status == FORBIDDEN_STATUS:
            _logger.debug("Data for %s: forbidden (not tracked)", self._config.device_id)
            return FORBIDDEN
        if not response.ok:
            _raise_unexpected_status(response, endpoint)
        data = _parse(DeviceData, response, endpoint)
        _logger.debug("Data for %s: %d sample(s)", self._config.device_id, len(data.coordinates))
        return data

    async def start_trigger(self) -> CommandAck:
        """Ask the service to start tracking the device."""
        return await self._send_command(TRIGGER_START_ENDPOINT, START_REJECTED_REASON)

    async def stop_trigger(self) -> CommandAck:
        """Ask the service to stop tracking the device."""
        return await self._send_command(TRIGGER_STOP_ENDPOINT, STOP_REJECTED_REASON)

    async def _send_command(self, endpoint: str, default_reason: str) -> CommandAck:
        response = await self._require_transport().request(
            "POST",
            endpoint,
            json_body={"deviceId": self._config.device_id},
        )
        if response.ok:
            return _parse(CommandAck, response, endpoint)
        # A JSON error document is an explicit refusal; anything else is
        # treated as a communication failure.
        if response.body is None:
            _raise_unexpected_status(response, endpoint)
        reason = _rejection_reason(response.body, default_reason)
        _logger.debug("%s rejected with HTTP %d: %s", endpoint, response.status, reason)
        raise MitrRejectedError(reason, status_code=response.status, endpoint=endpoint)
