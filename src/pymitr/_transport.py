"""HTTP transport that attaches the shared API key to every request."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol

import aiohttp

from pymitr._constants import API_KEY_HEADER, USER_AGENT
from pymitr._redact import redact_for_log
from pymitr.config import MitrConfig
from pymitr.exceptions import MitrCommunicationError

_logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TransportResponse:
    """A completed HTTP exchange.

    ``body`` is the decoded JSON document, or ``None`` when the response
    text was empty or not JSON.  Classification of the status is left to
    the gateway.
    """

    status: int
    body: Any
    text: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class Transport(Protocol):
    """Structural transport interface used by the gateway.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (`HttpTransport`) concrete.
    """

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        json_body: Mapping[str, Any] | None = None,
    ) -> TransportResponse:
        ...


def _decode_body(text: str) -> Any:
    if not text.strip():
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return None


class HttpTransport:
    """aiohttp transport bound to a base URL and API key."""

    def __init__(self, config: MitrConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=config.request_timeout)

    def _headers(self, *, with_body: bool) -> dict[str, str]:
        headers: dict[str, str] = {
            "accept": "application/json",
            "user-agent": USER_AGENT,
            API_KEY_HEADER: self._config.api_key,
        }
        if with_body:
            headers["content-type"] = "application/json"
        return headers

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        json_body: Mapping[str, Any] | None = None,
    ) -> TransportResponse:
        """Send one request and return the status plus decoded body.

        Raises
        ------
        MitrCommunicationError
            On network failure, timeout, or a body that is not valid text.
        """
        url = f"{self._config.base_url}{endpoint}"
        headers = self._headers(with_body=json_body is not None)
        data = json.dumps(dict(json_body)) if json_body is not None else None

        _logger.debug(
            "%s %s headers=%s body=%s",
            method,
            url,
            redact_for_log(headers),
            redact_for_log(json_body),
        )

        try:
            async with self._http.request(
                method,
                url,
                data=data,
                headers=headers,
                timeout=self._timeout,
            ) as resp:
                text = await resp.text()
                status = resp.status
        except aiohttp.ClientError as exc:
            raise MitrCommunicationError(
                f"Request to {endpoint} failed: {exc}",
                endpoint=endpoint,
            ) from exc
        except TimeoutError as exc:
            raise MitrCommunicationError(
                f"Request to {endpoint} timed out after {self._config.request_timeout}s",
                endpoint=endpoint,
            ) from exc
        except UnicodeDecodeError as exc:
            raise MitrCommunicationError(
                f"Undecodable response body from {endpoint}: {exc.reason}",
                endpoint=endpoint,
            ) from exc

        body = _decode_body(text)
        _logger.debug("%s %s -> HTTP %d body=%s", method, endpoint, status, redact_for_log(body))
        return TransportResponse(status=status, body=body, text=text)
