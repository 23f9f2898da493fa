"""
Clients for the sleigh location feed.

``HttpLocationFeed`` talks to ``/api/santa-tour/location`` and serves both
roles: the driver publishes through it, viewers poll it.
``WebSocketLocationFeed`` receives the same fixes pushed over
``/ws/santa-tour/location/`` and exposes them through the same read
interface, so the proximity logic does not care which one it is given.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from typing import Any, Protocol, runtime_checkable
from urllib.parse import urlsplit, urlunsplit

import httpx
import websockets

from sleigh.exceptions import FeedError
from sleigh.models import LocationFix

logger = logging.getLogger(__name__)

LOCATION_PATH = "/api/santa-tour/location"
WEBSOCKET_PATH = "/ws/santa-tour/location/"


@runtime_checkable
class LocationFeed(Protocol):
    """Read side of the feed: the latest fix, or None before the first."""

    async def get_current_fix(self) -> LocationFix | None:
        ...


@runtime_checkable
class LocationPublisher(Protocol):
    """Write side of the feed, used by the driver."""

    async def record_fix(self, fix: LocationFix) -> None:
        ...


@runtime_checkable
class PushLocationFeed(LocationFeed, Protocol):
    """A feed that delivers each new fix as it is recorded."""

    def updates(self) -> AsyncIterator[LocationFix | None]:
        ...


class HttpLocationFeed:
    """Location feed over plain HTTP requests."""

    def __init__(
        self,
        base_url: str,
        secret: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.secret = secret
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def location_url(self) -> str:
        return f"{self.base_url}{LOCATION_PATH}"

    async def record_fix(self, fix: LocationFix) -> None:
        """
        Submit a fix. Fire-and-forget from the caller's point of view:
        nothing is retried or queued here.

        Raises:
            FeedError: On network failure or a non-success response
        """
        payload: dict[str, Any] = fix.to_payload()
        if self.secret:
            payload["secret"] = self.secret
        response = await self._request("POST", json=payload)
        logger.debug("Submitted fix (%.5f, %.5f): %s", fix.lat, fix.lng, response.status_code)

    async def get_current_fix(self) -> LocationFix | None:
        """
        Fetch the latest fix.

        Returns:
            The fix, or None when the server has not received one yet

        Raises:
            FeedError: On network failure, a non-success response, or a
                body that is not JSON
        """
        response = await self._request("GET")
        try:
            return LocationFix.from_payload(response.json())
        except ValueError as exc:
            raise FeedError(
                f"Expected JSON location from {self.location_url}, got {response.text[:80]!r}",
                status_code=response.status_code,
                url=self.location_url,
            ) from exc

    async def _request(self, method: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, self.location_url, **kwargs)
        except httpx.HTTPError as exc:
            raise FeedError(f"{method} {self.location_url} failed: {exc}", url=self.location_url) from exc
        if response.is_error:
            raise FeedError(
                f"{method} {self.location_url} returned {response.status_code}",
                status_code=response.status_code,
                url=self.location_url,
            )
        return response

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> HttpLocationFeed:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


def websocket_url(base_url: str) -> str:
    """Map an http(s) base URL to the feed's ws(s) endpoint."""
    parts = urlsplit(base_url.rstrip("/"))
    scheme = {"https": "wss", "http": "ws"}.get(parts.scheme, parts.scheme)
    return urlunsplit((scheme, parts.netloc, f"{parts.path}{WEBSOCKET_PATH}", "", ""))


class WebSocketLocationFeed:
    """Location feed pushed by the server over a WebSocket."""

    def __init__(self, base_url: str, reconnect_delay: float = 5.0) -> None:
        self.url = websocket_url(base_url)
        self.reconnect_delay = reconnect_delay
        self._latest: LocationFix | None = None

    async def get_current_fix(self) -> LocationFix | None:
        return self._latest

    async def updates(self) -> AsyncIterator[LocationFix | None]:
        """
        Yield every fix the server pushes, reconnecting after failures.

        The first item after each (re)connect is the server's current fix,
        or None before the sleigh has reported.
        """
        while True:
            try:
                async with websockets.connect(self.url) as socket:
                    logger.info("Connected to %s", self.url)
                    async for message in socket:
                        fix = self._decode(message)
                        if fix is _SKIP:
                            continue
                        self._latest = fix
                        yield fix
            except (OSError, websockets.WebSocketException) as exc:
                logger.warning("Location push connection lost (%s); retrying in %.0fs", exc, self.reconnect_delay)
            await asyncio.sleep(self.reconnect_delay)

    @staticmethod
    def _decode(message: str | bytes) -> Any:
        try:
            data = json.loads(message)
        except ValueError:
            logger.warning("Ignoring non-JSON push message")
            return _SKIP
        if not isinstance(data, dict) or data.get("type") != "location":
            return _SKIP
        try:
            return LocationFix.from_payload(data.get("data"))
        except ValueError:
            logger.warning("Ignoring malformed location push: %s", data.get("data"))
            return _SKIP


_SKIP = object()
