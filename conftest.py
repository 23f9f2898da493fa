"""Shared test fixtures for the santa-tour project."""

from collections.abc import Iterator
from typing import Any

import pytest
from rest_framework.test import APIClient

from santa_tour.models import SantaTourRoute
from santa_tour.store import (InMemoryLocationStore, reset_location_store,
                              set_location_store)


@pytest.fixture
def api_client() -> APIClient:
    """Provide an anonymous DRF API client."""
    return APIClient()


@pytest.fixture
def memory_store() -> Iterator[InMemoryLocationStore]:
    """Install an empty in-memory location store for the duration of a test."""
    store = InMemoryLocationStore()
    set_location_store(store)
    yield store
    reset_location_store()


@pytest.fixture
def route(db: Any) -> SantaTourRoute:
    """Create a tour route."""
    return SantaTourRoute.objects.create(
        name='Caterham Village',
        area='Caterham on the Hill',
        duration='2h',
        stops_count=12,
    )
