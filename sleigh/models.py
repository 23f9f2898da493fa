"""Value types shared by the driver and viewer clients."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, NamedTuple


class Position(NamedTuple):
    """A WGS-84 coordinate pair in decimal degrees."""

    lat: float
    lng: float


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class LocationFix:
    """A single GPS sample."""

    lat: float
    lng: float
    accuracy: float | None = None
    timestamp: datetime = field(default_factory=_utcnow)
    active: bool = True

    @property
    def position(self) -> Position:
        return Position(self.lat, self.lng)

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON body the location endpoint accepts."""
        return {
            "lat": self.lat,
            "lng": self.lng,
            "accuracy": self.accuracy,
            "active": self.active,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_payload(cls, data: Any) -> LocationFix | None:
        """
        Build a fix from a served JSON object.

        Returns None for the "no signal yet" shapes: ``null``, ``{}``, or an
        object without coordinates.

        Raises:
            ValueError: A field is present but has the wrong type or format
        """
        if not isinstance(data, dict):
            return None
        lat, lng = data.get("lat"), data.get("lng")
        if lat is None or lng is None:
            return None
        raw_timestamp = data.get("timestamp")
        timestamp = _parse_timestamp(raw_timestamp) if raw_timestamp else _utcnow()
        accuracy = data.get("accuracy")
        try:
            return cls(
                lat=float(lat),
                lng=float(lng),
                accuracy=float(accuracy) if accuracy is not None else None,
                timestamp=timestamp,
                active=bool(data.get("active", True)),
            )
        except TypeError as exc:
            raise ValueError(f"Malformed location: {data!r}") from exc


def _parse_timestamp(value: Any) -> datetime:
    if not isinstance(value, str):
        raise ValueError(f"Expected ISO 8601 timestamp, got {value!r}")
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


@dataclass(frozen=True)
class WatchOptions:
    """Options for a continuous position subscription."""

    high_accuracy: bool = True
    # Seconds a cached fix may be reused; 0 means every fix must be fresh.
    maximum_age: float = 0.0
    # Seconds to wait for each fix before logging a stall.
    timeout: float = 5.0
