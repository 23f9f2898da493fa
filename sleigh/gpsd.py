"""
Minimal asyncio client for the gpsd JSON protocol.

Only the reports the driver needs are decoded: VERSION, WATCH and TPV
(time-position-velocity). Everything else gpsd streams (SKY, DEVICES, ...)
is skipped.
"""

import asyncio
import json
import logging
from dataclasses import asdict, dataclass
from enum import IntEnum
from typing import Any

WATCH = "?WATCH={}\r\n"

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 2947

logger = logging.getLogger(__name__)


class Mode(IntEnum):
    UNKNOWN = 0
    NO_FIX = 1
    D2_FIX = 2
    D3_FIX = 3

    def __str__(self) -> str:
        return self.name


def _filter_fields(cls: type, data: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if k in cls.__annotations__}


@dataclass
class Watch:
    enable: bool = True
    json: bool = True
    nmea: bool = False
    device: str = ""

    def to_json(self) -> str:
        data = {k: v for k, v in asdict(self).items() if v != ""}
        return json.dumps(data)

    @staticmethod
    def from_json(data: dict[str, Any]) -> "Watch":
        return Watch(**_filter_fields(Watch, data))


@dataclass
class Version:
    release: str
    rev: str
    proto_major: int
    proto_minor: int

    @property
    def proto(self) -> tuple[int, int]:
        return self.proto_major, self.proto_minor

    @staticmethod
    def from_json(data: dict[str, Any]) -> "Version":
        return Version(**_filter_fields(Version, data))


@dataclass
class TPV:
    device: str | None = None
    mode: Mode = Mode.UNKNOWN
    time: str | None = None
    lat: float | None = None
    lon: float | None = None
    alt: float | None = None
    eph: float | None = None  # Estimated horizontal position error (m)
    epx: float | None = None  # Longitude error estimate (m)
    epy: float | None = None  # Latitude error estimate (m)
    speed: float | None = None
    track: float | None = None

    @property
    def has_fix(self) -> bool:
        return self.mode >= Mode.D2_FIX and self.lat is not None and self.lon is not None

    @property
    def horizontal_error(self) -> float | None:
        """Best available horizontal accuracy estimate in meters."""
        if self.eph is not None:
            return self.eph
        if self.epx is not None and self.epy is not None:
            return max(self.epx, self.epy)
        return None

    @staticmethod
    def from_json(data: dict[str, Any]) -> "TPV":
        fields = _filter_fields(TPV, data)
        fields["mode"] = Mode(fields.get("mode", 0))
        return TPV(**fields)


class Client:
    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        watch_config: Watch | None = None,
    ):
        self.__reader = reader
        self.__writer = writer

        self._version: Version | None = None
        self._watch: Watch | None = None

        self.watch_config = watch_config or Watch()

    async def __read(self) -> tuple[str, dict[str, Any]]:
        line = await self.__reader.readline()
        if not line:
            raise ConnectionError("Connection closed by gpsd")
        data = json.loads(line)
        return str(data.get("class", "")).upper(), data

    async def close(self) -> None:
        self.__writer.close()
        await self.__writer.wait_closed()

    @staticmethod
    def __class_factory(class_type: str, data: dict[str, Any]) -> object | None:
        match class_type:
            case "TPV":
                return TPV.from_json(data)
            case "VERSION":
                return Version.from_json(data)
            case "WATCH":
                return Watch.from_json(data)
            case "ERROR":
                raise ValueError(f"gpsd error: {data.get('message')}")
            case _:
                return None

    async def recv(self) -> object | None:
        """Read one report; returns None for report classes that are skipped."""
        class_type, data = await self.__read()
        result = self.__class_factory(class_type, data)
        if isinstance(result, Version):
            self._version = result
        if isinstance(result, Watch):
            self._watch = result
        return result

    async def watch(self) -> None:
        self.__writer.write(WATCH.format(self.watch_config.to_json()).encode())
        await self.__writer.drain()

    async def __aenter__(self) -> "Client":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def __aiter__(self) -> "Client":
        return self

    async def __anext__(self) -> object | None:
        return await self.recv()


async def open(host: str = DEFAULT_HOST, port: int = DEFAULT_PORT) -> Client:
    reader, writer = await asyncio.open_connection(host, port)
    client = Client(reader, writer)
    await client.watch()
    logger.debug("Watching gpsd at %s:%d", host, port)
    return client
