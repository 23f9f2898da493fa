"""Custom exception hierarchy for the sleigh tracking clients."""

from __future__ import annotations


class SleighError(Exception):
    """Base exception for all sleigh client errors."""


class TrackingError(SleighError):
    """A tracking session could not start or had to stop."""


class InsecureContextError(TrackingError):
    """The feed endpoint is neither HTTPS nor localhost."""


class GeolocationError(TrackingError):
    """Device positioning failed or is not available."""


class PermissionDeniedError(GeolocationError):
    """Access to the positioning device was refused."""


class PositionUnavailableError(GeolocationError):
    """No positioning device could be reached."""


class InvalidTransitionError(TrackingError):
    """A tracking state change outside the transition table was attempted."""


class FeedError(SleighError):
    """Network or server failure talking to the location feed."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        url: str = "",
    ) -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(message)
