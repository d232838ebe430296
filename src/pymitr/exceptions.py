"""Custom exception hierarchy for pymitr."""

from __future__ import annotations


class MitrError(Exception):
    """Base exception for all pymitr errors."""


class MitrConfigError(MitrError):
    """Invalid or missing configuration."""


class MitrCommunicationError(MitrError):
    """Transport failure or an unclassified non-success response.

    Covers network errors, timeouts, invalid JSON and any HTTP status the
    gateway does not map to a more specific outcome.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class MitrRejectedError(MitrError):
    """The service explicitly declined a start/stop trigger command.

    ``reason`` is the service-provided explanation (e.g. ``"already active"``).
    """

    def __init__(
        self,
        reason: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.reason = reason
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(reason)
