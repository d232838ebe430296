"""Client configuration for pymitr."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pymitr._constants import BASE_URL, DEFAULT_DEVICE_ID, DEFAULT_POLL_INTERVAL, DEFAULT_REQUEST_TIMEOUT
from pymitr.exceptions import MitrConfigError


@dataclasses.dataclass(frozen=True)
class MitrConfig:
    """Client configuration.

    Parameters
    ----------
    api_key : str
        Shared credential sent as the ``x-api-key`` header on every call.
    device_id : str
        Identifier of the tracked device.
    base_url : str
        API base URL, without a trailing slash.
    poll_interval : float
        Seconds between location polls while tracking is on.
    request_timeout : float
        Total timeout in seconds for a single HTTP request.
    """

    api_key: str
    device_id: str = DEFAULT_DEVICE_ID
    base_url: str = BASE_URL
    poll_interval: float = DEFAULT_POLL_INTERVAL
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT

    def __post_init__(self) -> None:
        if not self.api_key or not self.api_key.strip():
            raise MitrConfigError("api_key must be non-empty")
        if not self.device_id or not self.device_id.strip():
            raise MitrConfigError("device_id must be non-empty")
        if self.poll_interval <= 0:
            raise MitrConfigError(f"poll_interval must be positive, got {self.poll_interval}")
        if self.request_timeout <= 0:
            raise MitrConfigError(f"request_timeout must be positive, got {self.request_timeout}")
        # Endpoint paths are joined with a leading slash.
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))

    @classmethod
    def from_env(cls, **overrides: Any) -> MitrConfig:
        """Create configuration from environment variables.

        Reads ``MITR_API_KEY`` and the optional ``MITR_*`` variables.
        Explicit keyword arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        MitrConfig
            Populated configuration.

        Raises
        ------
        MitrConfigError
            If a required value is missing or a numeric value is malformed.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "MITR_API_KEY": "api_key",
            "MITR_DEVICE_ID": "device_id",
            "MITR_BASE_URL": "base_url",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        _ENV_FLOAT_MAP = {
            "MITR_POLL_INTERVAL": "poll_interval",
            "MITR_REQUEST_TIMEOUT": "request_timeout",
        }
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is None or field_name in overrides:
                continue
            try:
                config_kwargs[field_name] = float(val)
            except ValueError as exc:
                raise MitrConfigError(f"{env_key} must be a number, got {val!r}") from exc

        config_kwargs.update(overrides)

        if "api_key" not in config_kwargs:
            raise MitrConfigError("MITR_API_KEY is not set")

        return cls(**config_kwargs)
