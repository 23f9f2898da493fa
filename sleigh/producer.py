"""
The driver's tracker: turns a device position stream into location-feed
submissions.

A ``TrackingSession`` moves through an explicit state machine::

    IDLE -> INITIALIZING -> BROADCASTING -> (ERROR | STOPPED)

Only fixes with an accuracy of 25 m or better are sent. Each qualifying
fix is sent exactly once, as its own fire-and-forget task: a failed
submission changes the status line and nothing else, and is never retried
or queued. Stopping cancels the position subscription and releases the wake
lock but leaves in-flight submissions alone; the last fix simply goes stale.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from enum import Enum

from sleigh.exceptions import (FeedError, GeolocationError,
                               InsecureContextError, InvalidTransitionError,
                               TrackingError)
from sleigh.geolocation import GeolocationSource, is_secure_context
from sleigh.models import LocationFix, WatchOptions
from sleigh.transport import LocationPublisher
from sleigh.wakelock import NullWakeLock, WakeLock

logger = logging.getLogger(__name__)

MAX_ACCURACY_METERS = 25.0

DRIVER_WATCH_OPTIONS = WatchOptions(high_accuracy=True, maximum_age=0.0, timeout=5.0)

STATUS_READY = "Ready"
STATUS_INITIALIZING = "Initializing GPS..."
STATUS_ERROR = "Error"
STATUS_STOPPED = "Stopped"
STATUS_NETWORK_ERROR = "Network Error - Retrying..."


class TrackingState(Enum):
    IDLE = "idle"
    INITIALIZING = "initializing"
    BROADCASTING = "broadcasting"
    ERROR = "error"
    STOPPED = "stopped"

    def __str__(self) -> str:
        return self.name


TRANSITIONS: dict[TrackingState, frozenset[TrackingState]] = {
    TrackingState.IDLE: frozenset({TrackingState.INITIALIZING, TrackingState.ERROR}),
    TrackingState.INITIALIZING: frozenset({
        TrackingState.BROADCASTING, TrackingState.ERROR, TrackingState.STOPPED,
    }),
    TrackingState.BROADCASTING: frozenset({
        TrackingState.BROADCASTING, TrackingState.ERROR, TrackingState.STOPPED,
    }),
    TrackingState.ERROR: frozenset({
        TrackingState.INITIALIZING, TrackingState.ERROR, TrackingState.STOPPED,
    }),
    TrackingState.STOPPED: frozenset({TrackingState.INITIALIZING, TrackingState.ERROR}),
}

# States in which device fixes are acted on.
TRACKING_STATES = frozenset({TrackingState.INITIALIZING, TrackingState.BROADCASTING})


def can_transition(current: TrackingState, target: TrackingState) -> bool:
    """Whether ``current -> target`` is in the transition table."""
    return target in TRANSITIONS[current]


def accepts_fix(fix: LocationFix) -> bool:
    """Whether ``fix`` is precise enough to broadcast."""
    return fix.accuracy is not None and fix.accuracy <= MAX_ACCURACY_METERS


class TrackingSession:
    """
    One driver's broadcast of the sleigh's position.

    Args:
        source: Device position provider
        publisher: Where accepted fixes are sent
        endpoint_url: URL the publisher sends to; must be a secure context
        wake_lock: Held while tracking; defaults to a no-op lock
        on_status: Called with the session after every state or status change
    """

    def __init__(
        self,
        source: GeolocationSource,
        publisher: LocationPublisher,
        endpoint_url: str,
        wake_lock: WakeLock | None = None,
        on_status: Callable[[TrackingSession], None] | None = None,
        watch_options: WatchOptions = DRIVER_WATCH_OPTIONS,
    ) -> None:
        self.source = source
        self.publisher = publisher
        self.endpoint_url = endpoint_url
        self.wake_lock = wake_lock or NullWakeLock()
        self.on_status = on_status
        self.watch_options = watch_options

        self.state = TrackingState.IDLE
        self.status = STATUS_READY
        self.error: str | None = None
        self.last_fix: LocationFix | None = None
        self.sent_count = 0

        self._watch_task: asyncio.Task[None] | None = None
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def tracking(self) -> bool:
        return self.state in TRACKING_STATES

    def _transition(self, target: TrackingState) -> None:
        if not can_transition(self.state, target):
            raise InvalidTransitionError(f"Cannot go from {self.state} to {target}")
        if target is not self.state:
            logger.info("Tracking %s -> %s", self.state, target)
        self.state = target

    def _set_status(self, status: str) -> None:
        self.status = status
        if self.on_status is not None:
            self.on_status(self)

    def _fail(self, exc: Exception) -> None:
        self._transition(TrackingState.ERROR)
        self.error = str(exc)
        self._set_status(STATUS_ERROR)

    async def start(self) -> None:
        """
        Begin broadcasting.

        Raises:
            InsecureContextError: The endpoint is neither HTTPS nor localhost
            GeolocationError: Positioning is unavailable or was refused
            InvalidTransitionError: The session is already tracking
        """
        if self.tracking:
            raise InvalidTransitionError(f"Already tracking ({self.state})")

        if not is_secure_context(self.endpoint_url):
            exc = InsecureContextError(
                "GPS requires HTTPS or Localhost. Cannot track on insecure connection."
            )
            self._fail(exc)
            raise exc

        try:
            await self.source.check_available()
        except GeolocationError as exc:
            logger.error("Positioning unavailable: %s", exc)
            self._fail(exc)
            raise

        self._transition(TrackingState.INITIALIZING)
        self.error = None
        self._set_status(STATUS_INITIALIZING)

        try:
            await self.wake_lock.acquire()
        except (OSError, RuntimeError) as exc:
            logger.warning("Wake lock unavailable: %s", exc)

        self._watch_task = asyncio.create_task(self._watch(), name="sleigh-position-watch")

    async def _watch(self) -> None:
        try:
            async for fix in self.source.watch(self.watch_options):
                self.handle_fix(fix)
        except GeolocationError as exc:
            self.handle_error(exc)

    def handle_fix(self, fix: LocationFix) -> None:
        """Act on one device fix."""
        if not self.tracking:
            return

        if not accepts_fix(fix):
            accuracy = f"±{fix.accuracy:.0f}m" if fix.accuracy is not None else "unknown"
            self._set_status(f"Improving accuracy... ({accuracy})")
            return

        self._transition(TrackingState.BROADCASTING)
        self.last_fix = fix
        self._set_status(f"Broadcasting (±{fix.accuracy:.0f}m)")
        self.sent_count += 1
        task = asyncio.create_task(self._send(fix))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def handle_error(self, exc: GeolocationError) -> None:
        """A position error arrived on the subscription."""
        logger.error("GPS Error: %s", exc)
        self._transition(TrackingState.ERROR)
        self.error = f"GPS Error: {exc}"
        self._set_status(STATUS_ERROR)

    async def _send(self, fix: LocationFix) -> None:
        try:
            await self.publisher.record_fix(fix)
        except FeedError as exc:
            logger.warning("Failed to send location: %s", exc)
            if self.tracking:
                self._set_status(STATUS_NETWORK_ERROR)

    async def stop(self) -> None:
        """Stop broadcasting. Submissions already in flight still complete."""
        if self.state in (TrackingState.IDLE, TrackingState.STOPPED):
            return
        self._transition(TrackingState.STOPPED)

        if self._watch_task is not None:
            self._watch_task.cancel()
            try:
                await self._watch_task
            except asyncio.CancelledError:
                pass
            self._watch_task = None

        try:
            await self.wake_lock.release()
        except (OSError, RuntimeError) as exc:
            logger.warning("Failed to release wake lock: %s", exc)

        self._set_status(STATUS_STOPPED)

    async def toggle(self) -> None:
        """Start when idle or stopped, stop otherwise."""
        if self.tracking:
            await self.stop()
        else:
            await self.start()

    async def drain(self) -> None:
        """Wait for submissions already in flight."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    async def run(self) -> None:
        """
        Start, then keep broadcasting until the subscription ends or the
        calling task is cancelled.
        """
        await self.start()
        watch_task = self._watch_task
        if watch_task is None:
            raise TrackingError("Position subscription did not start")
        try:
            await asyncio.shield(watch_task)
        finally:
            await self.stop()
            await self.drain()

