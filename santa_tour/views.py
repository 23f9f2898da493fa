"""
API views for the Santa tour.

This module provides the endpoint the driver's tracker pushes positions to,
the endpoint the public map polls, and the route and schedule planning
endpoints used by the admin dashboard.
"""
import logging
from typing import Any

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.conf import settings
from django.utils.decorators import method_decorator
from django.views.decorators.csrf import csrf_exempt
from rest_framework import status, viewsets
from rest_framework.permissions import AllowAny
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from .models import SantaTourRoute, SantaTourSchedule
from .serializers import (LocationFixSerializer, SantaTourRouteSerializer,
                          SantaTourScheduleSerializer)
from .store import LocationStore, get_location_store

logger = logging.getLogger(__name__)

# Channel layer group every WebSocket viewer joins.
LOCATION_GROUP = 'santa_tour_location'


def get_client_ip(request: Request) -> str | None:
    """Return the caller's address, honouring X-Forwarded-For."""
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        return x_forwarded_for.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


def broadcast_fix(data: dict[str, Any]) -> None:
    """
    Push a freshly recorded fix to connected WebSocket viewers.

    Failures are logged and swallowed: the fix is already stored and
    polling viewers will pick it up on their next request.

    Args:
        data: The fix in its served JSON shape
    """
    try:
        channel_layer = get_channel_layer()
        if channel_layer is None:
            logger.warning("WebSocket broadcast skipped: no channel layer configured")
            return
        async_to_sync(channel_layer.group_send)(
            LOCATION_GROUP,
            {
                'type': 'location_update',
                'data': data,
            }
        )
    except Exception:
        logger.error("WebSocket broadcast of sleigh position failed", exc_info=True)


@method_decorator(csrf_exempt, name='dispatch')
class LocationView(APIView):
    """
    Current sleigh position.

    - POST: the driver's tracker overwrites the current fix
    - GET: viewers read the current fix, or ``{}`` before the first one
    """

    permission_classes = [AllowAny]
    store: LocationStore | None = None

    def get_store(self) -> LocationStore:
        """Return the injected store, falling back to the configured one."""
        return self.store if self.store is not None else get_location_store()

    def get(self, request: Request) -> Response:
        """
        Return the current fix.

        Returns:
            200 with ``{lat, lng, accuracy, active, timestamp}``, or an empty
            object when no fix has been recorded yet
        """
        fix = self.get_store().get_current_fix()
        if fix is None:
            return Response({}, status=status.HTTP_200_OK)
        return Response(fix.as_dict(), status=status.HTTP_200_OK)

    def post(self, request: Request) -> Response:
        """
        Record a fix submitted by the driver.

        Request body:
            {
                "lat": 51.280,
                "lng": -0.080,
                "accuracy": 10,
                "active": true
            }

        Returns:
            200: Fix recorded
            400: Invalid coordinates or accuracy outside the tracking bound
            403: Tracking secret required and missing or wrong
        """
        client_ip = get_client_ip(request)
        logger.debug("Position submission from %s: %s", client_ip, request.data)

        required_secret = settings.SANTA_TRACK_SECRET
        if required_secret and settings.SANTA_TOUR_PRODUCTION:
            submitted = request.data.get('secret') if isinstance(request.data, dict) else None
            if submitted != required_secret:
                logger.warning("Rejected position submission from %s: bad secret", client_ip)
                return Response({'error': 'Unauthorized'}, status=status.HTTP_403_FORBIDDEN)

        serializer = LocationFixSerializer(data=request.data)
        if not serializer.is_valid():
            logger.info("Rejected position submission from %s: %s", client_ip, serializer.errors)
            return Response(
                {'message': 'invalid', 'errors': serializer.errors},
                status=status.HTTP_400_BAD_REQUEST
            )

        fix = serializer.to_fix()
        stored = self.get_store().record_fix(fix)
        data = fix.as_dict()
        if stored:
            logger.info(
                "Sleigh at (%.5f, %.5f) ±%sm from %s",
                fix.lat, fix.lng, fix.accuracy, client_ip
            )
            broadcast_fix(data)
            return Response({'message': 'Position updated', 'data': data}, status=status.HTTP_200_OK)

        return Response({'message': 'Stale position ignored', 'data': data}, status=status.HTTP_200_OK)


class EnvelopeModelViewSet(viewsets.ModelViewSet):
    """
    ModelViewSet answering in the ``{message, data|id|changes}`` envelope
    the admin dashboard expects.
    """

    permission_classes = [AllowAny]
    pagination_class = None
    lookup_value_regex = r'\d+'

    def list(self, request: Request, *args: Any, **kwargs: Any) -> Response:
        serializer = self.get_serializer(self.get_queryset(), many=True)
        return Response({'message': 'success', 'data': serializer.data})

    def retrieve(self, request: Request, *args: Any, **kwargs: Any) -> Response:
        serializer = self.get_serializer(self.get_object())
        return Response({'message': 'success', 'data': serializer.data})

    def create(self, request: Request, *args: Any, **kwargs: Any) -> Response:
        serializer = self.get_serializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                {'message': 'invalid', 'errors': serializer.errors},
                status=status.HTTP_400_BAD_REQUEST
            )
        instance = serializer.save()
        logger.info("Created %s %s", instance._meta.verbose_name, instance.pk)
        return Response({'message': 'success', 'id': instance.pk}, status=status.HTTP_201_CREATED)

    def update(self, request: Request, *args: Any, **kwargs: Any) -> Response:
        partial = kwargs.pop('partial', False)
        serializer = self.get_serializer(self.get_object(), data=request.data, partial=partial)
        if not serializer.is_valid():
            return Response(
                {'message': 'invalid', 'errors': serializer.errors},
                status=status.HTTP_400_BAD_REQUEST
            )
        serializer.save()
        return Response({'message': 'success', 'changes': 1})

    def destroy(self, request: Request, *args: Any, **kwargs: Any) -> Response:
        model = self.get_queryset().model
        deleted, _ = model._default_manager.filter(pk=kwargs.get(self.lookup_field)).delete()
        return Response({'message': 'deleted', 'changes': deleted})


class SantaTourRouteViewSet(EnvelopeModelViewSet):
    """Routes the sleigh can take, ordered by name."""

    queryset = SantaTourRoute.objects.all()
    serializer_class = SantaTourRouteSerializer


class SantaTourScheduleViewSet(EnvelopeModelViewSet):
    """Tour nights, ordered by date then night number."""

    queryset = SantaTourSchedule.objects.select_related('route')
    serializer_class = SantaTourScheduleSerializer
