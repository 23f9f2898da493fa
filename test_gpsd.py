"""
Tests for the gpsd protocol client and the gpsd position source.
"""
import asyncio
import json
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from hamcrest import (assert_that, contains_exactly, equal_to, instance_of,
                      is_, none)

from sleigh import gpsd
from sleigh.exceptions import PositionUnavailableError
from sleigh.geolocation import GpsdSource
from sleigh.models import WatchOptions


def _reader(*reports: dict[str, Any]) -> asyncio.StreamReader:
    reader = asyncio.StreamReader()
    for report in reports:
        reader.feed_data(json.dumps(report).encode() + b"\n")
    reader.feed_eof()
    return reader


def _writer() -> MagicMock:
    writer = MagicMock()
    writer.drain = AsyncMock()
    writer.wait_closed = AsyncMock()
    return writer


def _tpv(**fields: Any) -> dict[str, Any]:
    return {"class": "TPV", "mode": 3, "lat": 51.280, "lon": -0.080, **fields}


class TestTPV:
    """Tests for TPV report decoding."""

    def test_from_json_ignores_unknown_fields(self) -> None:
        tpv = gpsd.TPV.from_json({"class": "TPV", "mode": 2, "lat": 1.0, "lon": 2.0, "leapseconds": 18})
        assert_that(tpv.mode, equal_to(gpsd.Mode.D2_FIX))
        assert_that(tpv.has_fix, is_(True))

    def test_no_fix_without_coordinates(self) -> None:
        assert_that(gpsd.TPV.from_json({"mode": 1}).has_fix, is_(False))

    def test_horizontal_error_prefers_eph(self) -> None:
        tpv = gpsd.TPV.from_json(_tpv(eph=7.5, epx=3.0, epy=4.0))
        assert_that(tpv.horizontal_error, equal_to(7.5))

    def test_horizontal_error_falls_back_to_worst_axis(self) -> None:
        tpv = gpsd.TPV.from_json(_tpv(epx=3.0, epy=4.0))
        assert_that(tpv.horizontal_error, equal_to(4.0))

    def test_horizontal_error_unknown(self) -> None:
        assert_that(gpsd.TPV.from_json(_tpv()).horizontal_error, is_(none()))


class TestClient:
    """Tests for the gpsd stream client."""

    @pytest.mark.asyncio
    async def test_decodes_report_classes(self) -> None:
        reader = _reader(
            {"class": "VERSION", "release": "3.25", "rev": "3.25", "proto_major": 3, "proto_minor": 15},
            {"class": "SKY", "satellites": []},
            _tpv(eph=5.0),
        )
        client = gpsd.Client(reader, _writer())

        version = await client.recv()
        skipped = await client.recv()
        tpv = await client.recv()

        assert_that(version, instance_of(gpsd.Version))
        assert_that(version.proto, equal_to((3, 15)))  # type: ignore[union-attr]
        assert_that(skipped, is_(none()))
        assert_that(tpv, instance_of(gpsd.TPV))

    @pytest.mark.asyncio
    async def test_eof_raises_connection_error(self) -> None:
        client = gpsd.Client(_reader(), _writer())
        with pytest.raises(ConnectionError):
            await client.recv()

    @pytest.mark.asyncio
    async def test_error_report_raises(self) -> None:
        client = gpsd.Client(_reader({"class": "ERROR", "message": "unrecognized request"}), _writer())
        with pytest.raises(ValueError, match="unrecognized request"):
            await client.recv()

    @pytest.mark.asyncio
    async def test_watch_sends_command(self) -> None:
        writer = _writer()
        await gpsd.Client(_reader(), writer).watch()
        sent = writer.write.call_args.args[0].decode()
        assert sent.startswith("?WATCH=")
        assert_that(json.loads(sent[len("?WATCH="):]), equal_to({"enable": True, "json": True, "nmea": False}))


class TestGpsdSource:
    """Tests for GpsdSource."""

    @pytest.mark.asyncio
    async def test_yields_fixes_with_accuracy(self) -> None:
        """Fixes carry gpsd's horizontal error as their accuracy; no-fix reports are skipped."""
        reader = _reader(
            {"class": "TPV", "mode": 1},
            _tpv(time="2026-12-01T18:00:00.000Z", eph=8.0),
            _tpv(time="2026-12-01T18:00:01.000Z", lat=51.281, eph=30.0),
        )
        client = gpsd.Client(reader, _writer())
        fixes = []

        with patch("sleigh.geolocation.gpsd.open", AsyncMock(return_value=client)):
            with pytest.raises(PositionUnavailableError):
                async for fix in GpsdSource().watch(WatchOptions()):
                    fixes.append(fix)

        assert_that([(f.lat, f.accuracy) for f in fixes], contains_exactly((51.280, 8.0), (51.281, 30.0)))
        assert_that(fixes[0].timestamp.isoformat(), equal_to("2026-12-01T18:00:00+00:00"))

    @pytest.mark.asyncio
    async def test_repeated_report_dropped_when_maximum_age_zero(self) -> None:
        """With maximum_age=0 a report repeating the last timestamp is not a new fix."""
        same = _tpv(time="2026-12-01T18:00:00.000Z", eph=8.0)
        client = gpsd.Client(_reader(same, same), _writer())
        fixes = []

        with patch("sleigh.geolocation.gpsd.open", AsyncMock(return_value=client)):
            with pytest.raises(PositionUnavailableError):
                async for fix in GpsdSource().watch(WatchOptions(maximum_age=0.0)):
                    fixes.append(fix)

        assert_that(len(fixes), equal_to(1))

    @pytest.mark.asyncio
    async def test_unreachable_daemon(self) -> None:
        with patch("sleigh.geolocation.gpsd.open", AsyncMock(side_effect=ConnectionRefusedError("refused"))):
            with pytest.raises(PositionUnavailableError):
                async for _ in GpsdSource().watch(WatchOptions()):
                    pass

    @pytest.mark.asyncio
    async def test_check_available_unreachable(self) -> None:
        with patch("sleigh.geolocation.asyncio.open_connection", AsyncMock(side_effect=OSError("refused"))):
            with pytest.raises(PositionUnavailableError):
                await GpsdSource().check_available()
