"""Client settings, read from the environment or a ``.env`` file."""

from __future__ import annotations

from dataclasses import dataclass

from decouple import config

from sleigh import gpsd
from sleigh.geo import ALERT_DISTANCE_METERS


@dataclass
class ClientConfig:
    server_url: str = "http://localhost:8080"
    track_secret: str = ""
    gpsd_host: str = gpsd.DEFAULT_HOST
    gpsd_port: int = gpsd.DEFAULT_PORT
    poll_interval: float = 5.0
    alert_distance: float = ALERT_DISTANCE_METERS
    audio_file: str = ""
    audio_player: str = ""

    @classmethod
    def from_env(cls) -> ClientConfig:
        return cls(
            server_url=config("SLEIGH_SERVER_URL", default=cls.server_url),
            track_secret=config("SLEIGH_TRACK_SECRET", default=cls.track_secret),
            gpsd_host=config("GPSD_HOST", default=cls.gpsd_host),
            gpsd_port=config("GPSD_PORT", default=cls.gpsd_port, cast=int),
            poll_interval=config("SLEIGH_POLL_INTERVAL", default=cls.poll_interval, cast=float),
            alert_distance=config("SLEIGH_ALERT_DISTANCE", default=cls.alert_distance, cast=float),
            audio_file=config("SLEIGH_AUDIO_FILE", default=cls.audio_file),
            audio_player=config("SLEIGH_AUDIO_PLAYER", default=cls.audio_player),
        )
