"""
Command-line entry points.

``sleigh-driver`` broadcasts the sleigh's position from a GPS receiver.
``sleigh-watch`` follows the sleigh and rings the bells as it gets close;
press Enter to turn the sound on or off.
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import sys

from sleigh import __version__
from sleigh.audio import AudioCue, NullAudioCue, SubprocessAudioCue
from sleigh.config import ClientConfig
from sleigh.exceptions import SleighError
from sleigh.geolocation import GeolocationSource, GpsdSource, StaticSource
from sleigh.log import setup_logging
from sleigh.models import LocationFix, Position
from sleigh.producer import TrackingSession
from sleigh.proximity import MapView, ProximityMonitor
from sleigh.transport import HttpLocationFeed, LocationFeed, WebSocketLocationFeed
from sleigh.wakelock import default_wake_lock

logger = logging.getLogger(__name__)


def parse_position(value: str) -> LocationFix:
    """Parse ``lat,lng`` or ``lat,lng,accuracy`` into a fix."""
    try:
        parts = [float(part) for part in value.split(",")]
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid position: {value!r}")
    if len(parts) == 2:
        return LocationFix(lat=parts[0], lng=parts[1], accuracy=0.0)
    if len(parts) == 3:
        return LocationFix(lat=parts[0], lng=parts[1], accuracy=parts[2])
    raise argparse.ArgumentTypeError(f"expected lat,lng[,accuracy], got {value!r}")


def _common_parser(description: str, settings: ClientConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-s",
        "--server",
        default=settings.server_url,
        help="Base URL of the tracking server (default: %(default)s)",
    )
    parser.add_argument("--gpsd-host", default=settings.gpsd_host, help="gpsd host (default: %(default)s)")
    parser.add_argument("--gpsd-port", type=int, default=settings.gpsd_port, help="gpsd port (default: %(default)s)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def _print_session(session: TrackingSession) -> None:
    line = f"[{session.state}] {session.status}"
    if session.error:
        line += f" - {session.error}"
    print(line, flush=True)


def _print_view(view: MapView) -> None:
    parts = [view.status_text]
    if view.sleigh is not None:
        parts.append(f"sleigh {view.sleigh.lat:.5f},{view.sleigh.lng:.5f}")
    if view.distance_label:
        parts.append(view.distance_label)
    if view.in_range:
        parts.append("🔔")
    print(" | ".join(parts), flush=True)


async def _drive(args: argparse.Namespace) -> int:
    source: GeolocationSource
    if args.replay:
        source = StaticSource(args.replay, interval=args.interval, repeat=args.loop)
    else:
        source = GpsdSource(args.gpsd_host, args.gpsd_port)

    async with HttpLocationFeed(args.server, secret=args.secret or None) as feed:
        session = TrackingSession(
            source,
            feed,
            endpoint_url=feed.location_url,
            wake_lock=default_wake_lock(),
            on_status=_print_session,
        )
        try:
            await session.run()
        except SleighError as exc:
            logger.error("%s", exc)
            return 1
    logger.info("Sent %d position(s)", session.sent_count)
    return 0


def driver_main(argv: list[str] | None = None) -> int:
    settings = ClientConfig.from_env()
    parser = _common_parser("Broadcast the sleigh's live position", settings)
    parser.add_argument(
        "--secret",
        default=settings.track_secret,
        help="Shared tracking secret, if the server requires one",
    )
    parser.add_argument(
        "--replay",
        type=parse_position,
        action="append",
        metavar="LAT,LNG[,ACC]",
        help="Replay this position instead of reading gpsd (repeatable)",
    )
    parser.add_argument("--interval", type=float, default=1.0, help="Seconds between replayed positions")
    parser.add_argument("--loop", action="store_true", help="Replay positions forever")
    args = parser.parse_args(argv)

    setup_logging(args.verbose)
    try:
        return asyncio.run(_drive(args))
    except KeyboardInterrupt:
        logger.info("Driver stopped")
        return 0


def _audio_cue(args: argparse.Namespace) -> AudioCue:
    if not args.audio_file:
        return NullAudioCue()
    if args.audio_player:
        return SubprocessAudioCue(args.audio_file, command=args.audio_player)
    return SubprocessAudioCue(args.audio_file)


async def _watch(args: argparse.Namespace) -> int:
    viewer: GeolocationSource | None
    if args.viewer is not None:
        viewer = StaticSource([args.viewer])
    elif args.no_gps:
        viewer = None
    else:
        viewer = GpsdSource(args.gpsd_host, args.gpsd_port)

    feed: LocationFeed
    http_feed: HttpLocationFeed | None = None
    if args.push:
        feed = WebSocketLocationFeed(args.server)
    else:
        feed = http_feed = HttpLocationFeed(args.server)

    audio = _audio_cue(args)
    monitor = ProximityMonitor(
        feed,
        viewer_source=viewer,
        audio=audio,
        poll_interval=args.poll_interval,
        alert_distance=args.alert_distance,
        on_update=_print_view,
    )

    loop = asyncio.get_running_loop()
    reading_stdin = False
    if sys.stdin.isatty():
        def on_enter() -> None:
            sys.stdin.readline()
            monitor.toggle_audio()
            print("Sound on" if monitor.audio_enabled else "Sound off", flush=True)

        with contextlib.suppress(NotImplementedError):
            loop.add_reader(sys.stdin, on_enter)
            reading_stdin = True

    if args.sound:
        monitor.enable_audio()

    try:
        await monitor.run()
    finally:
        if reading_stdin:
            loop.remove_reader(sys.stdin)
        if isinstance(audio, SubprocessAudioCue):
            audio.close()
        if http_feed is not None:
            await http_feed.aclose()
    return 0


def watch_main(argv: list[str] | None = None) -> int:
    settings = ClientConfig.from_env()
    parser = _common_parser("Follow the sleigh and hear it coming", settings)
    parser.add_argument(
        "--push",
        action="store_true",
        help="Receive positions over the WebSocket feed instead of polling",
    )
    parser.add_argument(
        "--poll-interval",
        type=float,
        default=settings.poll_interval,
        help="Seconds between polls (default: %(default)s)",
    )
    parser.add_argument(
        "--alert-distance",
        type=float,
        default=settings.alert_distance,
        help="Ring the bells within this many meters (default: %(default)s)",
    )
    parser.add_argument(
        "--viewer",
        type=parse_position,
        metavar="LAT,LNG",
        help="Your position, if you have no GPS receiver",
    )
    parser.add_argument("--no-gps", action="store_true", help="Do not track your own position")
    parser.add_argument("--sound", action="store_true", help="Start with the sound on")
    parser.add_argument("--audio-file", default=settings.audio_file, help="Sound to loop when the sleigh is close")
    parser.add_argument("--audio-player", default=settings.audio_player, help="Player command line for the sound")
    args = parser.parse_args(argv)

    setup_logging(args.verbose)
    try:
        return asyncio.run(_watch(args))
    except KeyboardInterrupt:
        logger.info("Watch stopped")
        return 0


if __name__ == "__main__":
    sys.exit(watch_main())
