"""Trigger synchronization controller.

The controller is the single authority over the local trigger state and the
location poll loop:

* :meth:`TriggerSyncController.reconcile` adopts the remote trigger status
  once at startup.
* :meth:`TriggerSyncController.start_tracking` /
  :meth:`TriggerSyncController.stop_tracking` forward user commands and, on
  success, flip the local state.
* Every flip goes through ``_set_trigger_state``, the only place that arms or
  cancels the poll timer.

All work runs on one asyncio event loop.  Poll ticks are tagged with the
generation that was current when they were issued; a tick whose generation
is no longer current when its remote call returns is discarded.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from pymitr._constants import DEFAULT_POLL_INTERVAL
from pymitr.exceptions import MitrError
from pymitr.gateway import FORBIDDEN, Gateway
from pymitr.models.location import LocationSample
from pymitr.models.session import ErrorKind, SessionSnapshot, SyncError, TriggerState
from pymitr.models.status import CommandAck

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True)
class PollHandle:
    """Owns the poll timer for one ``ON`` period.

    ``timer`` is only set between ticks; while a tick's remote call is in
    flight it is ``None``.
    """

    generation: int
    timer: asyncio.TimerHandle | None = None
    cancelled: bool = False
    ticks: int = 0

    def cancel(self) -> None:
        self.cancelled = True
        if self.timer is not None:
            self.timer.cancel()
            self.timer = None


@dataclass(slots=True)
class SyncSession:
    """Controller working state.

    ``active_poll_handle`` is present if and only if ``trigger_state`` is
    ``ON``.
    """

    trigger_state: TriggerState = TriggerState.OFF
    samples: list[LocationSample] = field(default_factory=list)
    last_successful_poll_at: datetime | None = None
    last_error: SyncError | None = None
    active_poll_handle: PollHandle | None = None


class TriggerSyncController:
    """Keeps a live view of one device's location in sync with the service.

    Usage::

        async with DeviceGateway(config) as gateway:
            async with TriggerSyncController(gateway, poll_interval=config.poll_interval) as controller:
                await controller.start_tracking()
                ...
                print(controller.snapshot.samples)

    Parameters
    ----------
    gateway : Gateway
        Remote operations (normally a :class:`~pymitr.gateway.DeviceGateway`).
    poll_interval : float
        Seconds between location polls while tracking is on.
    clock : callable
        Returns the current aware datetime; used for poll/error timestamps.
    on_change : callable or None
        Called with a fresh :class:`SessionSnapshot` after every observable
        change.  Exceptions raised by the callback are logged and ignored.
    """

    def __init__(
        self,
        gateway: Gateway,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        clock: Callable[[], datetime] = _utcnow,
        on_change: Callable[[SessionSnapshot], None] | None = None,
    ) -> None:
        if poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {poll_interval}")
        self._gateway = gateway
        self._poll_interval = poll_interval
        self._clock = clock
        self._on_change = on_change
        self._session = SyncSession()
        self._generation = 0
        self._reconciled = False
        self._ticks: set[asyncio.Task[None]] = set()
        # Serialises start/stop so overlapping commands see each other's result.
        self._command_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> TriggerSyncController:
        await self.reconcile()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def session(self) -> SyncSession:
        """The live session.  Treat as read-only."""
        return self._session

    @property
    def snapshot(self) -> SessionSnapshot:
        session = self._session
        return SessionSnapshot(
            trigger_state=session.trigger_state,
            samples=tuple(session.samples),
            last_successful_poll_at=session.last_successful_poll_at,
            last_error=session.last_error,
            is_polling=session.active_poll_handle is not None,
        )

    @property
    def trigger_state(self) -> TriggerState:
        return self._session.trigger_state

    @property
    def generation(self) -> int:
        """Incremented on every trigger state transition."""
        return self._generation

    # ------------------------------------------------------------------
    # Startup reconciliation
    # ------------------------------------------------------------------

    async def reconcile(self) -> TriggerState:
        """Adopt the remote trigger status as local truth.

        Runs once; later calls return the current state without contacting
        the service.  A failure leaves the state ``OFF`` and is recorded in
        ``last_error``; it is not retried.
        """
        if self._reconciled:
            _logger.debug("Reconciliation already ran; ignoring")
            return self._session.trigger_state
        self._reconciled = True

        issued_at = self._generation
        try:
            status = await self._gateway.get_status()
        except MitrError as exc:
            _logger.warning("Trigger status check failed: %s", exc)
            if issued_at == self._generation:
                self._record_error(ErrorKind.COMMUNICATION, exc)
                self._notify()
            return self._session.trigger_state

        if issued_at != self._generation:
            # A command completed while the status call was outstanding.
            _logger.debug("Discarding stale status result (generation %d != %d)", issued_at, self._generation)
            return self._session.trigger_state

        target = TriggerState.ON if status.triggered else TriggerState.OFF
        self._set_trigger_state(target, reason="reconciled")
        self._notify()
        return self._session.trigger_state

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def start_tracking(self) -> CommandAck | None:
        """Start tracking the device.

        Returns ``None`` without contacting the service when tracking is
        already on, including when an overlapping call turned it on while
        this one was waiting.

        Raises
        ------
        MitrRejectedError
            The service declined the command.  Local state is unchanged.
        MitrCommunicationError
            The command could not be delivered.  Local state is unchanged.
        """
        async with self._command_lock:
            if self._session.trigger_state == TriggerState.ON:
                _logger.debug("start_tracking ignored: already on")
                return None

            ack = await self._gateway.start_trigger()
            self._set_trigger_state(TriggerState.ON, reason="start command")
            self._session.last_error = None
            self._notify()
            return ack

    async def stop_tracking(self) -> CommandAck:
        """Stop tracking the device.

        The service is contacted even when the local state is already
        ``OFF``, since a failed reconciliation may have left the remote side
        running.

        Raises
        ------
        MitrRejectedError
            The service declined the command.  Local state is unchanged.
        MitrCommunicationError
            The command could not be delivered.  Local state is unchanged.
        """
        async with self._command_lock:
            ack = await self._gateway.stop_trigger()
            self._set_trigger_state(TriggerState.OFF, reason="stop command")
            self._notify()
            return ack

    async def close(self) -> None:
        """Stop polling locally and wait for in-flight ticks to settle.

        The remote trigger is left as it is.
        """
        if self._set_trigger_state(TriggerState.OFF, reason="controller closed"):
            self._notify()
        await self.wait_idle()

    async def wait_idle(self) -> None:
        """Wait until no poll tick is in flight."""
        while self._ticks:
            await asyncio.gather(*list(self._ticks), return_exceptions=True)

    # ------------------------------------------------------------------
    # State transitions
    # ------------------------------------------------------------------

    def _set_trigger_state(self, target: TriggerState, *, reason: str) -> bool:
        """Apply a trigger transition; return ``True`` if the state changed.

        This is the only place the poll timer is armed or cancelled.
        """
        session = self._session
        if session.trigger_state == target:
            return False

        session.trigger_state = target
        self._generation += 1

        if target == TriggerState.ON:
            handle = PollHandle(generation=self._generation)
            session.active_poll_handle = handle
            _logger.info("Tracking on (%s); polling every %.1fs", reason, self._poll_interval)
            self._spawn_tick(handle)
        else:
            handle = session.active_poll_handle
            session.active_poll_handle = None
            if handle is not None:
                handle.cancel()
            session.samples = []
            session.last_successful_poll_at = None
            _logger.info("Tracking off (%s)", reason)
        return True

    def _is_current(self, handle: PollHandle) -> bool:
        return (
            not handle.cancelled
            and handle is self._session.active_poll_handle
            and handle.generation == self._generation
        )

    # ------------------------------------------------------------------
    # Poll loop
    # ------------------------------------------------------------------

    def _spawn_tick(self, handle: PollHandle) -> None:
        handle.timer = None
        if not self._is_current(handle):
            return
        handle.ticks += 1
        task = asyncio.get_running_loop().create_task(
            self._run_tick(handle),
            name=f"pymitr-poll-{handle.generation}-{handle.ticks}",
        )
        self._ticks.add(task)
        task.add_done_callback(self._ticks.discard)

    def _arm_next_tick(self, handle: PollHandle) -> None:
        if not self._is_current(handle):
            return
        handle.timer = asyncio.get_running_loop().call_later(self._poll_interval, self._spawn_tick, handle)

    async def _run_tick(self, handle: PollHandle) -> None:
        if not self._is_current(handle):
            return
        try:
            outcome = await self._gateway.get_data()
        except MitrError as exc:
            if not self._is_current(handle):
                _logger.debug("Discarding stale poll failure (generation %d)", handle.generation)
                return
            _logger.warning("Location poll failed: %s", exc)
            self._record_error(ErrorKind.COMMUNICATION, exc)
            self._notify()
            self._arm_next_tick(handle)
            return
        except Exception as exc:
            # The loop must survive a gateway bug; treat it as a failed poll.
            if not self._is_current(handle):
                _logger.debug("Discarding stale poll failure (generation %d)", handle.generation)
                return
            _logger.warning("Location poll raised unexpectedly", exc_info=True)
            self._record_error(ErrorKind.COMMUNICATION, exc)
            self._notify()
            self._arm_next_tick(handle)
            return

        if not self._is_current(handle):
            _logger.debug("Discarding stale poll result (generation %d)", handle.generation)
            return

        if outcome is FORBIDDEN:
            self._set_trigger_state(TriggerState.OFF, reason="service reports device not tracked")
            self._notify()
            return

        session = self._session
        session.samples = list(outcome.coordinates)
        session.last_successful_poll_at = self._clock()
        session.last_error = None
        _logger.debug("Poll %d.%d: %d sample(s)", handle.generation, handle.ticks, len(session.samples))
        self._notify()
        self._arm_next_tick(handle)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _record_error(self, kind: ErrorKind, exc: BaseException) -> None:
        self._session.last_error = SyncError(kind=kind, message=str(exc), occurred_at=self._clock())

    def _notify(self) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change(self.snapshot)
        except Exception:
            _logger.debug("on_change callback failed", exc_info=True)
