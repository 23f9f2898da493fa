"""
Tests for the viewer's proximity monitor.
"""
import asyncio
from collections.abc import AsyncIterator

import httpx
import pytest
from hamcrest import assert_that, close_to, equal_to, has_length, is_, none

from sleigh.audio import NullAudioCue
from sleigh.exceptions import FeedError
from sleigh.geolocation import StaticSource
from sleigh.models import LocationFix, Position
from sleigh.proximity import (DEFAULT_CENTER, STATUS_LIVE, STATUS_WAITING,
                              MapView, ProximityMonitor)
from sleigh.transport import HttpLocationFeed, LocationFeed

SLEIGH = LocationFix(lat=51.280, lng=-0.080, accuracy=10)
NEARBY_VIEWER = Position(51.2805, -0.080)  # about 56m north
FAR_VIEWER = Position(51.300, -0.080)


class FakeFeed:
    """Polled feed returning whatever the test sets."""

    def __init__(self, fix: LocationFix | None = None, error: FeedError | None = None) -> None:
        self.fix = fix
        self.error = error
        self.calls = 0

    async def get_current_fix(self) -> LocationFix | None:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.fix


class FakePushFeed(FakeFeed):
    """Push feed delivering a fixed sequence of fixes."""

    def __init__(self, fixes: list[LocationFix | None]) -> None:
        super().__init__()
        self.fixes = fixes

    async def updates(self) -> AsyncIterator[LocationFix | None]:
        for fix in self.fixes:
            yield fix
        await asyncio.Event().wait()


def _monitor(feed: LocationFeed | None = None, **kwargs) -> tuple[ProximityMonitor, NullAudioCue]:
    audio = NullAudioCue()
    return ProximityMonitor(feed or FakeFeed(), audio=audio, **kwargs), audio


class TestMapView:
    """Tests for the map view model."""

    def test_defaults(self) -> None:
        view = MapView()
        assert_that(view.center, equal_to(DEFAULT_CENTER))
        assert_that(view.zoom, equal_to(14))
        assert_that(view.status_text, equal_to(STATUS_WAITING))
        assert_that(view.distance_label, is_(none()))
        assert_that(view.in_range, is_(False))

    def test_live(self) -> None:
        view = MapView(sleigh=Position(51.28, -0.08), viewer=NEARBY_VIEWER, distance=56)
        assert_that(view.status_text, equal_to(STATUS_LIVE))
        assert_that(view.distance_label, equal_to("🎅 56m away"))
        assert_that(view.in_range, is_(True))


class TestPolling:
    """Tests for reading the sleigh's position."""

    def test_cue_configured_on_creation(self) -> None:
        _, audio = _monitor()
        assert_that(audio.loop, is_(True))
        assert_that(audio.volume, equal_to(0.5))

    @pytest.mark.asyncio
    async def test_empty_feed_waits_for_signal(self) -> None:
        """Polling an empty store draws no marker."""
        monitor, _ = _monitor(FakeFeed(None))

        await monitor.poll_once()

        assert_that(monitor.view.status_text, equal_to("Waiting for signal..."))
        assert_that(monitor.view.sleigh, is_(none()))
        assert_that(monitor.view.center, equal_to(DEFAULT_CENTER))

    @pytest.mark.asyncio
    async def test_fix_moves_marker_and_centre(self) -> None:
        updates: list[MapView] = []
        monitor, _ = _monitor(FakeFeed(SLEIGH), on_update=updates.append)

        await monitor.poll_once()

        assert_that(monitor.view.sleigh, equal_to(Position(51.280, -0.080)))
        assert_that(monitor.view.center, equal_to(Position(51.280, -0.080)))
        assert_that(monitor.view.last_seen, equal_to(SLEIGH.timestamp))
        assert_that(monitor.view.status_text, equal_to("LIVE TRACKING"))
        assert_that(updates, has_length(1))

    @pytest.mark.asyncio
    async def test_feed_error_keeps_last_view(self) -> None:
        """A failed poll leaves the map as it was until the next tick."""
        feed = FakeFeed(SLEIGH)
        monitor, _ = _monitor(feed)
        await monitor.poll_once()

        feed.error = FeedError("GET failed")
        await monitor.poll_once()

        assert_that(monitor.view.sleigh, equal_to(SLEIGH.position))

    @pytest.mark.asyncio
    async def test_empty_feed_after_fix_clears_marker(self) -> None:
        """When the server no longer holds a fix the marker goes and the bells stop."""
        feed = FakeFeed(SLEIGH)
        monitor, audio = _monitor(feed)
        await monitor.poll_once()
        monitor.update_viewer(NEARBY_VIEWER)
        monitor.enable_audio()
        assert_that(audio.paused, is_(False))

        feed.fix = None
        await monitor.poll_once()

        assert_that(monitor.view.sleigh, is_(none()))
        assert_that(monitor.view.distance, is_(none()))
        assert_that(monitor.view.status_text, equal_to(STATUS_WAITING))
        assert_that(monitor.view.center, equal_to(SLEIGH.position))
        assert_that(audio.paused, is_(True))


class TestAlert:
    """Tests for the distance alert."""

    def test_distance_needs_both_positions(self) -> None:
        monitor, audio = _monitor()
        monitor.update_viewer(NEARBY_VIEWER)
        assert_that(monitor.view.distance, is_(none()))
        assert_that(audio.play_count, equal_to(0))

    def test_nearby_sleigh_rings_when_enabled(self) -> None:
        """56m away with sound on plays at about 0.89 volume."""
        monitor, audio = _monitor()
        monitor.apply_fix(SLEIGH)
        monitor.update_viewer(NEARBY_VIEWER)

        monitor.enable_audio()

        assert_that(monitor.view.distance, equal_to(56))
        assert_that(audio.paused, is_(False))
        assert_that(audio.volume, close_to(0.888, 0.005))

    def test_silent_until_enabled(self) -> None:
        monitor, audio = _monitor()
        monitor.apply_fix(SLEIGH)
        monitor.update_viewer(NEARBY_VIEWER)

        assert_that(monitor.view.in_range, is_(True))
        assert_that(audio.play_count, equal_to(0))
        assert_that(audio.paused, is_(True))

    def test_enable_primes_cue(self) -> None:
        """Turning the sound on plays then pauses at once when out of range."""
        monitor, audio = _monitor()
        monitor.apply_fix(SLEIGH)
        monitor.update_viewer(FAR_VIEWER)

        monitor.enable_audio()

        assert_that(audio.play_count, equal_to(1))
        assert_that(audio.pause_count, equal_to(1))
        assert_that(audio.paused, is_(True))

    def test_disable_mid_alert_pauses(self) -> None:
        """Turning the sound off silences the alert regardless of distance."""
        monitor, audio = _monitor()
        monitor.apply_fix(SLEIGH)
        monitor.update_viewer(NEARBY_VIEWER)
        monitor.enable_audio()
        assert_that(audio.paused, is_(False))

        monitor.disable_audio()

        assert_that(audio.paused, is_(True))
        monitor.update_viewer(Position(51.2801, -0.080))
        assert_that(audio.paused, is_(True))

    def test_moving_out_of_range_pauses(self) -> None:
        monitor, audio = _monitor()
        monitor.apply_fix(SLEIGH)
        monitor.update_viewer(NEARBY_VIEWER)
        monitor.enable_audio()

        monitor.update_viewer(FAR_VIEWER)

        assert_that(audio.paused, is_(True))
        assert_that(monitor.view.in_range, is_(False))

    def test_volume_follows_distance(self) -> None:
        """Each update re-computes the volume while the alert plays."""
        monitor, audio = _monitor()
        monitor.apply_fix(SLEIGH)
        monitor.update_viewer(Position(51.2820, -0.080))
        monitor.enable_audio()
        far_volume = audio.volume

        monitor.update_viewer(NEARBY_VIEWER)

        assert audio.volume > far_volume
        assert_that(audio.play_count, equal_to(2))

    def test_custom_alert_distance(self) -> None:
        monitor, audio = _monitor(alert_distance=50)
        monitor.apply_fix(SLEIGH)
        monitor.update_viewer(NEARBY_VIEWER)
        monitor.enable_audio()
        assert_that(audio.paused, is_(True))

    def test_toggle(self) -> None:
        monitor, _ = _monitor()
        monitor.toggle_audio()
        assert_that(monitor.audio_enabled, is_(True))
        monitor.toggle_audio()
        assert_that(monitor.audio_enabled, is_(False))


@pytest.mark.asyncio
class TestRun:
    """Tests for the monitor's background loops."""

    async def test_polls_on_interval(self) -> None:
        feed = FakeFeed(SLEIGH)
        monitor, _ = _monitor(feed, poll_interval=0.01)

        task = asyncio.create_task(monitor.run())
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert feed.calls >= 2
        assert_that(monitor.view.sleigh, equal_to(SLEIGH.position))

    async def test_viewer_watch_feeds_distance(self) -> None:
        viewer = StaticSource([NEARBY_VIEWER], interval=0)
        monitor, audio = _monitor(FakeFeed(SLEIGH), viewer_source=viewer, poll_interval=0.01)
        monitor.enable_audio()

        task = asyncio.create_task(monitor.run())
        await asyncio.sleep(0.03)
        await monitor.close()
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)

        assert_that(monitor.view.distance, equal_to(56))
        assert_that(audio.paused, is_(True))

    async def test_malformed_location_does_not_stop_polling(self) -> None:
        """A server reply with a bad field is skipped and polling carries on."""
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(200, json={"lat": 51.28, "lng": -0.08, "timestamp": 1700000000})

        feed = HttpLocationFeed(
            "https://tour.example.org",
            client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )
        monitor, _ = _monitor(feed, poll_interval=0.01)

        task = asyncio.create_task(monitor.run())
        await asyncio.sleep(0.05)
        assert_that(task.done(), is_(False))
        await monitor.close()
        await asyncio.gather(task, return_exceptions=True)

        assert calls >= 2
        assert_that(monitor.view.sleigh, is_(none()))

    async def test_push_feed_used_without_polling(self) -> None:
        feed = FakePushFeed([None, SLEIGH])
        monitor, _ = _monitor(feed)

        task = asyncio.create_task(monitor.run())
        await asyncio.sleep(0.01)
        await monitor.close()
        await asyncio.gather(task, return_exceptions=True)

        assert_that(feed.calls, equal_to(0))
        assert_that(monitor.view.sleigh, equal_to(SLEIGH.position))

    async def test_viewer_without_gps_is_logged(self) -> None:
        """A viewer source that cannot start leaves the poll running."""
        monitor, _ = _monitor(FakeFeed(SLEIGH), viewer_source=StaticSource([]), poll_interval=0.01)

        task = asyncio.create_task(monitor.run())
        await asyncio.sleep(0.03)
        await monitor.close()
        await asyncio.gather(task, return_exceptions=True)

        assert_that(monitor.view.viewer, is_(none()))
        assert_that(monitor.view.sleigh, equal_to(SLEIGH.position))
