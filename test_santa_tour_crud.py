"""
Tests for the route and schedule planning endpoints.
"""
from typing import Any

import pytest
from hamcrest import (assert_that, contains_exactly, equal_to, has_entries,
                      has_key, has_length, is_, none)
from rest_framework import status
from rest_framework.test import APIClient

from santa_tour.models import SantaTourRoute, SantaTourSchedule

ROUTES_URL = '/api/santa-tour/routes'
SCHEDULES_URL = '/api/santa-tour/schedules'


@pytest.mark.django_db
class TestRoutes:
    """Tests for /api/santa-tour/routes."""

    def test_list_sorted_by_name(self, api_client: APIClient) -> None:
        """Routes are listed alphabetically inside the success envelope."""
        SantaTourRoute.objects.create(name='Whyteleafe', area='North')
        SantaTourRoute.objects.create(name='Chaldon', area='West')

        response = api_client.get(ROUTES_URL)

        assert_that(response.status_code, equal_to(status.HTTP_200_OK))
        body = response.json()
        assert_that(body['message'], equal_to('success'))
        assert_that([r['name'] for r in body['data']], contains_exactly('Chaldon', 'Whyteleafe'))

    def test_create_returns_id(self, api_client: APIClient) -> None:
        """Creating a route answers 201 with the new id."""
        response = api_client.post(
            ROUTES_URL,
            {'name': 'Old Coulsdon', 'area': 'East', 'duration': '90m', 'stops_count': 8},
            format='json',
        )

        assert_that(response.status_code, equal_to(status.HTTP_201_CREATED))
        body = response.json()
        assert_that(body['message'], equal_to('success'))
        route = SantaTourRoute.objects.get(pk=body['id'])
        assert_that(route.stops_count, equal_to(8))

    def test_create_requires_name_and_area(self, api_client: APIClient) -> None:
        """Missing required fields give a 400 with field errors."""
        response = api_client.post(ROUTES_URL, {'notes': 'no name'}, format='json')

        assert_that(response.status_code, equal_to(status.HTTP_400_BAD_REQUEST))
        assert_that(response.json()['errors'], has_key('name'))
        assert_that(response.json()['errors'], has_key('area'))

    def test_retrieve(self, api_client: APIClient, route: SantaTourRoute) -> None:
        """A single route is returned inside the envelope."""
        response = api_client.get(f'{ROUTES_URL}/{route.pk}')
        assert_that(response.status_code, equal_to(status.HTTP_200_OK))
        assert_that(response.json()['data'], has_entries(name='Caterham Village', stops_count=12))

    def test_retrieve_unknown_is_404(self, api_client: APIClient, db: Any) -> None:
        """Unknown ids are not found."""
        response = api_client.get(f'{ROUTES_URL}/999')
        assert_that(response.status_code, equal_to(status.HTTP_404_NOT_FOUND))

    def test_update_reports_changes(self, api_client: APIClient, route: SantaTourRoute) -> None:
        """A full update answers with the number of changed rows."""
        response = api_client.put(
            f'{ROUTES_URL}/{route.pk}',
            {'name': 'Caterham Valley', 'area': 'Valley', 'stops_count': 15},
            format='json',
        )

        assert_that(response.status_code, equal_to(status.HTTP_200_OK))
        assert_that(response.json(), equal_to({'message': 'success', 'changes': 1}))
        route.refresh_from_db()
        assert_that(route.name, equal_to('Caterham Valley'))

    def test_delete(self, api_client: APIClient, route: SantaTourRoute) -> None:
        """Deleting answers with the number of removed rows."""
        response = api_client.delete(f'{ROUTES_URL}/{route.pk}/')

        assert_that(response.status_code, equal_to(status.HTTP_200_OK))
        assert_that(response.json(), equal_to({'message': 'deleted', 'changes': 1}))
        assert_that(SantaTourRoute.objects.filter(pk=route.pk).exists(), is_(False))

    def test_delete_unknown_reports_no_changes(self, api_client: APIClient, db: Any) -> None:
        """Deleting a missing id is not an error."""
        response = api_client.delete(f'{ROUTES_URL}/999')
        assert_that(response.json(), equal_to({'message': 'deleted', 'changes': 0}))


@pytest.mark.django_db
class TestSchedules:
    """Tests for /api/santa-tour/schedules."""

    def test_create_with_route(self, api_client: APIClient, route: SantaTourRoute) -> None:
        """A night can be linked to a route and shows the route's name."""
        response = api_client.post(
            SCHEDULES_URL,
            {'night_number': 1, 'date': '2026-12-01', 'route_id': route.pk, 'start_time': '18:30'},
            format='json',
        )
        assert_that(response.status_code, equal_to(status.HTTP_201_CREATED))

        detail = api_client.get(f"{SCHEDULES_URL}/{response.json()['id']}").json()['data']
        assert_that(detail, has_entries(
            night_number=1, date='2026-12-01', route_id=route.pk,
            route_name='Caterham Village', start_time='18:30',
        ))

    def test_blank_start_time_defaults(self, api_client: APIClient, db: Any) -> None:
        """Without a start time the night starts at 18:00."""
        response = api_client.post(
            SCHEDULES_URL, {'night_number': 2, 'date': '2026-12-02', 'start_time': ''}, format='json'
        )
        schedule = SantaTourSchedule.objects.get(pk=response.json()['id'])
        assert_that(schedule.start_time, equal_to('18:00'))
        assert_that(schedule.route, is_(none()))

    def test_start_time_normalised(self, api_client: APIClient, db: Any) -> None:
        """Single-digit hours are zero-padded."""
        response = api_client.post(
            SCHEDULES_URL, {'night_number': 3, 'date': '2026-12-03', 'start_time': '6:05'}, format='json'
        )
        schedule = SantaTourSchedule.objects.get(pk=response.json()['id'])
        assert_that(schedule.start_time, equal_to('06:05'))

    @pytest.mark.parametrize('start_time', ['25:00', '18:60', 'dusk', '18'])
    def test_invalid_start_time(self, api_client: APIClient, db: Any, start_time: str) -> None:
        """Start times must be HH:MM on a 24-hour clock."""
        response = api_client.post(
            SCHEDULES_URL,
            {'night_number': 4, 'date': '2026-12-04', 'start_time': start_time},
            format='json',
        )
        assert_that(response.status_code, equal_to(status.HTTP_400_BAD_REQUEST))
        assert_that(response.json()['errors'], has_key('start_time'))

    def test_unknown_route_rejected(self, api_client: APIClient, db: Any) -> None:
        """Linking to a missing route is a validation error."""
        response = api_client.post(
            SCHEDULES_URL, {'night_number': 5, 'date': '2026-12-05', 'route_id': 999}, format='json'
        )
        assert_that(response.status_code, equal_to(status.HTTP_400_BAD_REQUEST))
        assert_that(response.json()['errors'], has_key('route_id'))

    def test_list_sorted_by_date_then_night(self, api_client: APIClient, db: Any) -> None:
        """Nights are listed in calendar order."""
        SantaTourSchedule.objects.create(night_number=2, date='2026-12-02')
        SantaTourSchedule.objects.create(night_number=1, date='2026-12-02')
        SantaTourSchedule.objects.create(night_number=3, date='2026-12-01')

        data = api_client.get(SCHEDULES_URL).json()['data']

        assert_that(data, has_length(3))
        assert_that([(s['date'], s['night_number']) for s in data], contains_exactly(
            ('2026-12-01', 3), ('2026-12-02', 1), ('2026-12-02', 2),
        ))

    def test_deleting_route_keeps_schedule(self, api_client: APIClient, route: SantaTourRoute) -> None:
        """Removing a route unlinks its nights instead of deleting them."""
        schedule = SantaTourSchedule.objects.create(night_number=1, date='2026-12-01', route=route)

        api_client.delete(f'{ROUTES_URL}/{route.pk}')

        schedule.refresh_from_db()
        assert_that(schedule.route, is_(none()))
