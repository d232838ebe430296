"""Controller-side session state as seen by consumers."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pymitr.models.location import LocationSample


class TriggerState(StrEnum):
    OFF = "off"
    ON = "on"


class ErrorKind(StrEnum):
    COMMUNICATION = "communication"


class SyncError(BaseModel):
    """Last error recorded by the controller."""

    model_config = ConfigDict(frozen=True)

    kind: ErrorKind
    message: str
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("occurred_at")
    @classmethod
    def _ensure_tz_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value


class SessionSnapshot(BaseModel):
    """Read-only view of the controller session for presentation.

    ``is_polling`` mirrors whether a poll timer is held; it is ``True``
    exactly when ``trigger_state`` is ``ON``.
    """

    model_config = ConfigDict(frozen=True)

    trigger_state: TriggerState = TriggerState.OFF
    samples: tuple[LocationSample, ...] = ()
    last_successful_poll_at: datetime | None = None
    last_error: SyncError | None = None
    is_polling: bool = False

    @property
    def triggered(self) -> bool:
        return self.trigger_state == TriggerState.ON
