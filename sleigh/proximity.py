"""
The public viewer: where is the sleigh, how far away is it, and should the
bells be ringing.

``ProximityMonitor`` combines three independent inputs, each of which only
touches the monitor's own state:

- the location feed, polled every ``poll_interval`` seconds (or pushed, if
  the feed supports it)
- the viewer's own position, updated whenever the device reports movement
- the viewer toggling the sound

Every change to either position recomputes the distance and the alert from
scratch. The viewer's position never leaves this process.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from sleigh.audio import AudioCue, NullAudioCue
from sleigh.exceptions import FeedError, GeolocationError
from sleigh.geo import ALERT_DISTANCE_METERS, alert_volume, haversine_distance
from sleigh.geolocation import GeolocationSource
from sleigh.models import LocationFix, Position, WatchOptions
from sleigh.transport import LocationFeed, PushLocationFeed

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 5.0

# Map centre before the sleigh first reports: Caterham.
DEFAULT_CENTER = Position(51.280, -0.080)
DEFAULT_ZOOM = 14

# Starting volume for the cue before any distance is known.
INITIAL_VOLUME = 0.5

VIEWER_WATCH_OPTIONS = WatchOptions(high_accuracy=True)

STATUS_LIVE = "LIVE TRACKING"
STATUS_WAITING = "Waiting for signal..."


@dataclass
class MapView:
    """What the viewer's map shows."""

    center: Position = DEFAULT_CENTER
    zoom: int = DEFAULT_ZOOM
    sleigh: Position | None = None
    viewer: Position | None = None
    last_seen: datetime | None = None
    distance: int | None = None
    alert_distance: float = ALERT_DISTANCE_METERS

    @property
    def status_text(self) -> str:
        return STATUS_LIVE if self.sleigh is not None else STATUS_WAITING

    @property
    def in_range(self) -> bool:
        return self.distance is not None and self.distance < self.alert_distance

    @property
    def distance_label(self) -> str | None:
        if self.sleigh is None or self.distance is None:
            return None
        return f"🎅 {self.distance}m away"

    @property
    def sleigh_popup(self) -> str | None:
        if self.sleigh is None:
            return None
        if self.last_seen is None:
            return "Santa's Sleigh! Live"
        return f"Santa's Sleigh! Last seen: {self.last_seen.astimezone():%H:%M:%S}"


class ProximityMonitor:
    """
    Tracks the sleigh and the viewer, and drives the proximity alert.

    Args:
        feed: Source of the sleigh's latest fix
        viewer_source: The viewer's own device position, or None if the
            viewer's device cannot report one
        audio: Looping alert cue
        poll_interval: Seconds between feed polls
        alert_distance: Distance in meters below which the alert sounds
        on_update: Called with the map view after every change
    """

    def __init__(
        self,
        feed: LocationFeed,
        viewer_source: GeolocationSource | None = None,
        audio: AudioCue | None = None,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        alert_distance: float = ALERT_DISTANCE_METERS,
        on_update: Callable[[MapView], None] | None = None,
    ) -> None:
        self.feed = feed
        self.viewer_source = viewer_source
        self.audio = audio or NullAudioCue()
        self.poll_interval = poll_interval
        self.alert_distance = alert_distance
        self.on_update = on_update

        self.view = MapView(alert_distance=alert_distance)
        self.audio_enabled = False

        self.audio.loop = True
        self.audio.volume = INITIAL_VOLUME

        self._tasks: list[asyncio.Task[None]] = []

    def _notify(self) -> None:
        if self.on_update is not None:
            self.on_update(self.view)

    def apply_fix(self, fix: LocationFix | None) -> None:
        """
        Move the sleigh marker to ``fix`` and fly the map to it.

        ``None`` means the server holds no fix (it has not heard from the
        sleigh yet, or lost the fix on restart): the marker is removed and
        the map stays where it is.
        """
        if fix is None:
            if self.view.sleigh is not None:
                logger.info("Sleigh position no longer available")
                self.view.sleigh = None
                self.view.last_seen = None
                self.view.distance = None
                if not self.audio.paused:
                    self.audio.pause()
                self._notify()
            return
        self.view.sleigh = fix.position
        self.view.last_seen = fix.timestamp
        self.view.center = fix.position
        self.evaluate()
        self._notify()

    async def poll_once(self) -> None:
        """Fetch the sleigh's position once. Failures wait for the next tick."""
        try:
            fix = await self.feed.get_current_fix()
        except FeedError as exc:
            logger.warning("Error fetching sleigh position: %s", exc)
            return
        self.apply_fix(fix)

    def update_viewer(self, position: Position) -> None:
        """The viewer's device reported a new position."""
        self.view.viewer = position
        self.evaluate()
        self._notify()

    def evaluate(self) -> None:
        """Recompute distance and alert from the current positions."""
        if self.view.sleigh is None or self.view.viewer is None:
            return

        distance = haversine_distance(self.view.sleigh, self.view.viewer)
        self.view.distance = distance

        if self.audio_enabled and distance < self.alert_distance:
            self.audio.volume = alert_volume(distance, self.alert_distance)
            if self.audio.paused:
                logger.info("Sleigh is %dm away, ringing the bells", distance)
                self.audio.play()
        elif not self.audio.paused:
            self.audio.pause()

    def enable_audio(self) -> None:
        """
        Turn the sound on.

        This is the user gesture that unlocks playback, so the cue is primed
        with a play and an immediate pause before the alert is re-evaluated.
        """
        self.audio_enabled = True
        self.audio.play()
        self.audio.pause()
        self.evaluate()
        self._notify()

    def disable_audio(self) -> None:
        """Turn the sound off; the cue pauses at once whatever the distance."""
        self.audio_enabled = False
        self.audio.pause()
        self._notify()

    def toggle_audio(self) -> None:
        if self.audio_enabled:
            self.disable_audio()
        else:
            self.enable_audio()

    async def _poll_loop(self) -> None:
        while True:
            await self.poll_once()
            await asyncio.sleep(self.poll_interval)

    async def _push_loop(self, feed: PushLocationFeed) -> None:
        async for fix in feed.updates():
            self.apply_fix(fix)

    async def _viewer_loop(self, source: GeolocationSource) -> None:
        try:
            await source.check_available()
            async for fix in source.watch(VIEWER_WATCH_OPTIONS):
                self.update_viewer(fix.position)
        except GeolocationError as exc:
            logger.warning("Viewer location error: %s", exc)

    async def run(self) -> None:
        """Follow the sleigh until cancelled or closed."""
        if isinstance(self.feed, PushLocationFeed):
            self._tasks.append(asyncio.create_task(self._push_loop(self.feed)))
        else:
            self._tasks.append(asyncio.create_task(self._poll_loop()))
        if self.viewer_source is not None:
            self._tasks.append(asyncio.create_task(self._viewer_loop(self.viewer_source)))
        try:
            await asyncio.gather(*self._tasks)
        finally:
            await self.close()

    async def close(self) -> None:
        """Cancel the poll and position watch and silence the alert."""
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self.audio.pause()
