"""
Single-slot storage for the sleigh's latest position.

The store holds at most one fix. Every accepted write replaces it
(last-writer-wins); nothing is appended and nothing expires. Readers judge
freshness from the fix's own timestamp.

Views never touch a backend directly: they call ``get_location_store()``,
which resolves the backend named by ``settings.SANTA_TOUR_LOCATION_STORE``
once per process. Tests swap in their own store with ``set_location_store()``.
"""
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from django.conf import settings
from django.db import transaction
from django.utils import timezone
from django.utils.module_loading import import_string

logger = logging.getLogger(__name__)

# Fixes less precise than this never reach the store.
MAX_ACCURACY_METERS: float = 25.0


@dataclass(frozen=True)
class LocationFix:
    """A single GPS sample of the sleigh."""

    lat: float
    lng: float
    timestamp: datetime = field(default_factory=timezone.now)
    accuracy: float | None = None
    active: bool = True

    def as_dict(self) -> dict[str, Any]:
        """Return the JSON shape served to readers."""
        return {
            'lat': self.lat,
            'lng': self.lng,
            'accuracy': self.accuracy,
            'active': self.active,
            'timestamp': self.timestamp.isoformat(),
        }


class LocationStore(ABC):
    """
    Accessor interface for the current fix.

    Subclasses provide ``_read`` and ``_write``; the base class applies the
    optional stale-write guard. With ``reject_stale`` off (the default) every
    write wins, even one that arrives late carrying an older timestamp.
    """

    def __init__(self, reject_stale: bool = False) -> None:
        self.reject_stale = reject_stale

    def record_fix(self, fix: LocationFix) -> bool:
        """
        Overwrite the current fix.

        Args:
            fix: The fix to store

        Returns:
            True if the fix was stored, False if the stale-write guard
            dropped it
        """
        with self._locked():
            if self.reject_stale:
                current = self._read_for_update()
                if current is not None and fix.timestamp < current.timestamp:
                    logger.info(
                        "Ignoring stale fix from %s (current fix is from %s)",
                        fix.timestamp.isoformat(), current.timestamp.isoformat()
                    )
                    return False
            self._write(fix)
        logger.debug("Recorded fix %s", fix)
        return True

    def get_current_fix(self) -> LocationFix | None:
        """Return the last recorded fix, or None if no fix was ever recorded."""
        return self._read()

    @abstractmethod
    def _locked(self) -> Any:
        """Return a context manager serializing read-compare-write."""

    @abstractmethod
    def _read(self) -> LocationFix | None:
        ...

    def _read_for_update(self) -> LocationFix | None:
        """Read the current fix, holding it until the surrounding write completes."""
        return self._read()

    @abstractmethod
    def _write(self, fix: LocationFix) -> None:
        ...

    @abstractmethod
    def clear(self) -> None:
        """Forget the current fix."""


class InMemoryLocationStore(LocationStore):
    """Process-local store; the fix is lost when the server restarts."""

    def __init__(self, reject_stale: bool = False) -> None:
        super().__init__(reject_stale=reject_stale)
        self._lock = threading.RLock()
        self._fix: LocationFix | None = None

    def _locked(self) -> threading.RLock:
        return self._lock

    def _read(self) -> LocationFix | None:
        with self._lock:
            return self._fix

    def _write(self, fix: LocationFix) -> None:
        self._fix = fix

    def clear(self) -> None:
        with self._lock:
            self._fix = None


class DatabaseLocationStore(LocationStore):
    """Store backed by the single ``CurrentFix`` row."""

    def _locked(self) -> Any:
        return transaction.atomic()

    def _read(self) -> LocationFix | None:
        from .models import CurrentFix

        return self._to_fix(CurrentFix.objects.filter(pk=CurrentFix.SINGLETON_PK).first())

    def _read_for_update(self) -> LocationFix | None:
        from .models import CurrentFix

        # Held until the surrounding transaction commits.
        return self._to_fix(
            CurrentFix.objects.select_for_update().filter(pk=CurrentFix.SINGLETON_PK).first()
        )

    @staticmethod
    def _to_fix(row: Any) -> LocationFix | None:
        if row is None:
            return None
        return LocationFix(
            lat=row.latitude,
            lng=row.longitude,
            timestamp=row.timestamp,
            accuracy=row.accuracy,
            active=row.active,
        )

    def _write(self, fix: LocationFix) -> None:
        from .models import CurrentFix

        CurrentFix.objects.update_or_create(
            pk=CurrentFix.SINGLETON_PK,
            defaults={
                'latitude': fix.lat,
                'longitude': fix.lng,
                'accuracy': fix.accuracy,
                'active': fix.active,
                'timestamp': fix.timestamp,
            },
        )

    def clear(self) -> None:
        from .models import CurrentFix

        CurrentFix.objects.all().delete()


class _StoreState:
    """Holder for the process-wide store instance."""

    def __init__(self) -> None:
        self.store: LocationStore | None = None
        self.lock = threading.Lock()


_state = _StoreState()


def get_location_store() -> LocationStore:
    """
    Return the configured store, creating it on first use.

    Returns:
        The store instance shared by every request in this process
    """
    with _state.lock:
        if _state.store is None:
            backend = import_string(settings.SANTA_TOUR_LOCATION_STORE)
            _state.store = backend(
                reject_stale=getattr(settings, 'SANTA_TOUR_REJECT_STALE_FIXES', False)
            )
            logger.info("Using location store %s", settings.SANTA_TOUR_LOCATION_STORE)
        return _state.store


def set_location_store(store: LocationStore) -> None:
    """Replace the process-wide store (used by tests and embedding code)."""
    with _state.lock:
        _state.store = store


def reset_location_store() -> None:
    """Drop the current store so the next call re-reads settings."""
    with _state.lock:
        _state.store = None
