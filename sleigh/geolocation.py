"""
Continuous device-position subscriptions.

A ``GeolocationSource`` is the client-side counterpart of a browser's
position watch: ``check_available()`` fails fast when positioning cannot
work at all, and ``watch()`` yields fixes for as long as the caller keeps
iterating. Closing the iterator (or cancelling the task consuming it)
cancels the subscription.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Iterable, Sequence
from datetime import UTC, datetime
from typing import Protocol, runtime_checkable
from urllib.parse import urlsplit

from sleigh import gpsd
from sleigh.exceptions import PositionUnavailableError
from sleigh.models import LocationFix, Position, WatchOptions

logger = logging.getLogger(__name__)

SECURE_SCHEMES = frozenset({"https", "wss"})
LOOPBACK_HOSTS = frozenset({"localhost", "127.0.0.1", "::1"})


def is_secure_context(url: str) -> bool:
    """
    Whether positions may be sent to ``url``.

    Only HTTPS endpoints, or endpoints on this machine, qualify.
    """
    parts = urlsplit(url)
    if parts.scheme.lower() in SECURE_SCHEMES:
        return True
    host = (parts.hostname or "").lower()
    return host in LOOPBACK_HOSTS or host.endswith(".localhost")


@runtime_checkable
class GeolocationSource(Protocol):
    """Structural interface for device-position providers."""

    async def check_available(self) -> None:
        """Raise a GeolocationError if positioning cannot work."""
        ...

    def watch(self, options: WatchOptions) -> AsyncIterator[LocationFix]:
        ...


class GpsdSource:
    """Positions from a local gpsd daemon."""

    def __init__(self, host: str = gpsd.DEFAULT_HOST, port: int = gpsd.DEFAULT_PORT) -> None:
        self.host = host
        self.port = port

    async def check_available(self) -> None:
        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port), timeout=5.0
            )
        except (OSError, asyncio.TimeoutError) as exc:
            raise PositionUnavailableError(
                f"Cannot reach gpsd at {self.host}:{self.port}: {exc}"
            ) from exc
        writer.close()
        await writer.wait_closed()

    async def watch(self, options: WatchOptions) -> AsyncIterator[LocationFix]:
        try:
            client = await gpsd.open(self.host, self.port)
        except OSError as exc:
            raise PositionUnavailableError(
                f"Cannot reach gpsd at {self.host}:{self.port}: {exc}"
            ) from exc

        last_time: str | None = None
        async with client:
            while True:
                try:
                    report = await asyncio.wait_for(client.recv(), timeout=options.timeout)
                except asyncio.TimeoutError:
                    logger.debug("No gpsd report within %.1fs", options.timeout)
                    continue
                except (ConnectionError, ValueError) as exc:
                    raise PositionUnavailableError(str(exc)) from exc

                if not isinstance(report, gpsd.TPV) or not report.has_fix:
                    continue
                if options.maximum_age == 0 and report.time is not None and report.time == last_time:
                    continue
                last_time = report.time

                assert report.lat is not None and report.lon is not None
                yield LocationFix(
                    lat=report.lat,
                    lng=report.lon,
                    accuracy=report.horizontal_error,
                    timestamp=_parse_gpsd_time(report.time),
                )


def _parse_gpsd_time(value: str | None) -> datetime:
    if not value:
        return datetime.now(UTC)
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


class StaticSource:
    """
    Replays a fixed list of fixes, one every ``interval`` seconds.

    Useful for rehearsing a tour without a GPS receiver, and for a viewer
    at a known address.
    """

    def __init__(
        self,
        fixes: Sequence[LocationFix | Position],
        interval: float = 1.0,
        repeat: bool = False,
    ) -> None:
        self.fixes = list(fixes)
        self.interval = interval
        self.repeat = repeat

    async def check_available(self) -> None:
        if not self.fixes:
            raise PositionUnavailableError("No positions to replay")

    async def watch(self, options: WatchOptions) -> AsyncIterator[LocationFix]:
        while True:
            for item in self._stamped(self.fixes):
                yield item
                await asyncio.sleep(self.interval)
            if not self.repeat:
                return

    @staticmethod
    def _stamped(items: Iterable[LocationFix | Position]) -> Iterable[LocationFix]:
        for item in items:
            if isinstance(item, LocationFix):
                yield LocationFix(
                    lat=item.lat, lng=item.lng, accuracy=item.accuracy, active=item.active
                )
            else:
                yield LocationFix(lat=item.lat, lng=item.lng, accuracy=0.0)
