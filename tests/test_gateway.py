from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import pytest

from pymitr._transport import TransportResponse
from pymitr.config import MitrConfig
from pymitr.exceptions import MitrCommunicationError, MitrError, MitrRejectedError
from pymitr.gateway import FORBIDDEN, DeviceGateway
from pymitr.models.location import DeviceData


@dataclass
class FakeTransport:
    responses: dict[tuple[str, str], TransportResponse] = field(default_factory=dict)
    error: Exception | None = None
    requests: list[tuple[str, str, dict[str, Any] | None]] = field(default_factory=list)

    def respond(self, method: str, endpoint: str, status: int, body: Any = None, text: str = "") -> None:
        self.responses[(method, endpoint)] = TransportResponse(status=status, body=body, text=text)

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        json_body: Mapping[str, Any] | None = None,
    ) -> TransportResponse:
        self.requests.append((method, endpoint, dict(json_body) if json_body is not None else None))
        if self.error is not None:
            raise self.error
        return self.responses[(method, endpoint)]


def _gateway(transport: FakeTransport, device_id: str = "device_1") -> DeviceGateway:
    config = MitrConfig(api_key="test-key", device_id=device_id)
    return DeviceGateway(config, transport=transport)


# ------------------------------------------------------------------
# get_status
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_get_status_triggered() -> None:
    transport = FakeTransport()
    transport.respond("GET", "/api/device/status/device_1", 200, {"triggered": True})

    status = await _gateway(transport).get_status()

    assert status.triggered is True
    assert transport.requests == [("GET", "/api/device/status/device_1", None)]


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [{}, {"triggered": None}, None])
async def test_get_status_missing_flag_means_not_triggered(body: Any) -> None:
    transport = FakeTransport()
    transport.respond("GET", "/api/device/status/device_1", 200, body)

    status = await _gateway(transport).get_status()

    assert status.triggered is False


@pytest.mark.asyncio
async def test_get_status_uses_configured_device_id() -> None:
    transport = FakeTransport()
    transport.respond("GET", "/api/device/status/tracker-42", 200, {"triggered": False})

    gateway = _gateway(transport, device_id="tracker-42")
    await gateway.get_status()

    assert gateway.device_id == "tracker-42"
    assert transport.requests[0][1] == "/api/device/status/tracker-42"


@pytest.mark.asyncio
async def test_get_status_server_error_is_communication_error() -> None:
    transport = FakeTransport()
    transport.respond("GET", "/api/device/status/device_1", 500, None, text="Internal Server Error")

    with pytest.raises(MitrCommunicationError) as exc_info:
        await _gateway(transport).get_status()

    assert exc_info.value.status_code == 500
    assert exc_info.value.endpoint == "/api/device/status/device_1"


# ------------------------------------------------------------------
# get_data
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_get_data_parses_coordinates() -> None:
    transport = FakeTransport()
    transport.respond(
        "GET",
        "/api/device/data/device_1",
        200,
        {
            "coordinates": [
                {"deviceId": "device_1", "latitude": 12.97, "longitude": 77.59, "timestamp": "2025-01-01T10:00:00Z"},
                {"deviceId": "device_1", "latitude": "12.98", "longitude": "77.60", "timestamp": 1735725660000},
            ]
        },
    )

    outcome = await _gateway(transport).get_data()

    assert isinstance(outcome, DeviceData)
    first, second = outcome.coordinates
    assert first.device_id == "device_1"
    assert first.latitude == 12.97
    assert first.longitude == 77.59
    assert first.timestamp == datetime(2025, 1, 1, 10, 0, tzinfo=UTC)
    assert second.latitude == 12.98
    assert second.timestamp == datetime(2025, 1, 1, 10, 1, tzinfo=UTC)


@pytest.mark.asyncio
async def test_get_data_null_coordinates_is_empty_batch() -> None:
    transport = FakeTransport()
    transport.respond("GET", "/api/device/data/device_1", 200, {"coordinates": None})

    outcome = await _gateway(transport).get_data()

    assert isinstance(outcome, DeviceData)
    assert outcome.coordinates == []


@pytest.mark.asyncio
async def test_get_data_forbidden_is_an_outcome() -> None:
    transport = FakeTransport()
    transport.respond("GET", "/api/device/data/device_1", 403, {"error": "Device not triggered"})

    outcome = await _gateway(transport).get_data()

    assert outcome is FORBIDDEN


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [401, 404, 500, 503])
async def test_get_data_other_failures_are_communication_errors(status: int) -> None:
    transport = FakeTransport()
    transport.respond("GET", "/api/device/data/device_1", status, {"error": "nope"})

    with pytest.raises(MitrCommunicationError) as exc_info:
        await _gateway(transport).get_data()

    assert exc_info.value.status_code == status


@pytest.mark.asyncio
async def test_get_data_non_object_payload_is_communication_error() -> None:
    transport = FakeTransport()
    transport.respond("GET", "/api/device/data/device_1", 200, [1, 2, 3], text="[1, 2, 3]")

    with pytest.raises(MitrCommunicationError):
        await _gateway(transport).get_data()


@pytest.mark.asyncio
async def test_get_data_malformed_sample_is_communication_error() -> None:
    transport = FakeTransport()
    transport.respond(
        "GET",
        "/api/device/data/device_1",
        200,
        {"coordinates": [{"deviceId": "device_1", "latitude": "north", "longitude": 1.0, "timestamp": "x"}]},
    )

    with pytest.raises(MitrCommunicationError, match="Malformed payload"):
        await _gateway(transport).get_data()


@pytest.mark.asyncio
@pytest.mark.parametrize("endpoint", ["/api/device/status/device_1", "/api/device/data/device_1"])
async def test_html_success_body_is_communication_error(endpoint: str) -> None:
    transport = FakeTransport()
    transport.respond("GET", endpoint, 200, None, text="<html>maintenance</html>")
    gateway = _gateway(transport)
    call = gateway.get_status if "status" in endpoint else gateway.get_data

    with pytest.raises(MitrCommunicationError, match="Invalid JSON") as exc_info:
        await call()

    assert exc_info.value.status_code == 200
    assert exc_info.value.endpoint == endpoint


@pytest.mark.asyncio
async def test_command_ack_with_garbled_body_is_communication_error() -> None:
    transport = FakeTransport()
    transport.respond("POST", "/api/device/trigger/start", 200, None, text="OK?")

    with pytest.raises(MitrCommunicationError, match="Invalid JSON"):
        await _gateway(transport).start_trigger()


@pytest.mark.asyncio
async def test_transport_failure_propagates() -> None:
    transport = FakeTransport(error=MitrCommunicationError("Request to /x failed", endpoint="/x"))

    with pytest.raises(MitrCommunicationError):
        await _gateway(transport).get_data()


# ------------------------------------------------------------------
# start/stop trigger
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_start_trigger_posts_device_id() -> None:
    transport = FakeTransport()
    transport.respond("POST", "/api/device/trigger/start", 200, {"message": "Trigger started"})

    ack = await _gateway(transport).start_trigger()

    assert ack.message == "Trigger started"
    assert transport.requests == [("POST", "/api/device/trigger/start", {"deviceId": "device_1"})]


@pytest.mark.asyncio
async def test_stop_trigger_accepts_empty_body() -> None:
    transport = FakeTransport()
    transport.respond("POST", "/api/device/trigger/stop", 200, None)

    ack = await _gateway(transport).stop_trigger()

    assert ack.message is None
    assert transport.requests == [("POST", "/api/device/trigger/stop", {"deviceId": "device_1"})]


@pytest.mark.asyncio
async def test_start_trigger_rejected_carries_reason() -> None:
    transport = FakeTransport()
    transport.respond("POST", "/api/device/trigger/start", 400, {"error": "already active"})

    with pytest.raises(MitrRejectedError) as exc_info:
        await _gateway(transport).start_trigger()

    exc = exc_info.value
    assert exc.reason == "already active"
    assert exc.status_code == 400
    assert exc.endpoint == "/api/device/trigger/start"


@pytest.mark.asyncio
async def test_rejection_without_reason_uses_default() -> None:
    transport = FakeTransport()
    transport.respond("POST", "/api/device/trigger/start", 404, {})
    transport.respond("POST", "/api/device/trigger/stop", 409, {"error": ""})
    gateway = _gateway(transport)

    with pytest.raises(MitrRejectedError) as start_exc:
        await gateway.start_trigger()
    with pytest.raises(MitrRejectedError) as stop_exc:
        await gateway.stop_trigger()

    assert start_exc.value.reason == "Failed to trigger device"
    assert stop_exc.value.reason == "Failed to stop trigger"


@pytest.mark.asyncio
async def test_command_failure_without_json_is_communication_error() -> None:
    transport = FakeTransport()
    transport.respond("POST", "/api/device/trigger/stop", 502, None, text="<html>Bad Gateway</html>")

    with pytest.raises(MitrCommunicationError) as exc_info:
        await _gateway(transport).stop_trigger()

    assert exc_info.value.status_code == 502


# ------------------------------------------------------------------
# Lifecycle
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_uninitialized_gateway_raises() -> None:
    gateway = DeviceGateway(MitrConfig(api_key="test-key"))

    with pytest.raises(MitrError, match="not initialized"):
        await gateway.get_status()


@pytest.mark.asyncio
async def test_injected_transport_survives_context_exit() -> None:
    transport = FakeTransport()
    transport.respond("GET", "/api/device/status/device_1", 200, {"triggered": True})
    gateway = _gateway(transport)

    async with gateway:
        pass

    status = await gateway.get_status()
    assert status.triggered is True
