"""
Serializers for the Santa tour API.

This module provides DRF serializers for driver position submissions and
for the route and schedule planning records.
"""
import logging
from typing import Any

from django.utils import timezone
from rest_framework import serializers

from .models import SantaTourRoute, SantaTourSchedule
from .store import MAX_ACCURACY_METERS, LocationFix

logger = logging.getLogger(__name__)


class LocationFixSerializer(serializers.Serializer):
    """
    Validates a position submitted by the driver's tracker.

    The driver filters out imprecise fixes before sending them. The same
    bound is enforced here so the stored fix always honours it.
    """

    lat = serializers.FloatField(min_value=-90, max_value=90, help_text="Latitude in decimal degrees")
    lng = serializers.FloatField(min_value=-180, max_value=180, help_text="Longitude in decimal degrees")
    accuracy = serializers.FloatField(
        min_value=0,
        help_text="Radius of the device's confidence circle in meters"
    )
    active = serializers.BooleanField(default=True)
    timestamp = serializers.DateTimeField(
        required=False,
        help_text="Capture time; defaults to the time the server received the fix"
    )
    secret = serializers.CharField(write_only=True, required=False, allow_blank=True)

    def validate_accuracy(self, value: float) -> float:
        """Reject fixes less precise than the tracker's accuracy bound."""
        if value > MAX_ACCURACY_METERS:
            raise serializers.ValidationError(
                f"Expected accuracy of at most {MAX_ACCURACY_METERS:g}m, got {value:g}m"
            )
        return value

    def to_fix(self) -> LocationFix:
        """Build the store value from validated data."""
        data: dict[str, Any] = self.validated_data  # type: ignore[assignment]
        return LocationFix(
            lat=data['lat'],
            lng=data['lng'],
            accuracy=data['accuracy'],
            active=data['active'],
            timestamp=data.get('timestamp') or timezone.now(),
        )


class SantaTourRouteSerializer(serializers.ModelSerializer):
    """Serializer for SantaTourRoute model."""

    class Meta:
        model = SantaTourRoute
        fields = [
            'id', 'name', 'area', 'duration', 'stops_count',
            'notes', 'map_data', 'created_at',
        ]
        read_only_fields = ['id', 'created_at']


class SantaTourScheduleSerializer(serializers.ModelSerializer):
    """Serializer for SantaTourSchedule model."""

    route_id = serializers.PrimaryKeyRelatedField(
        source='route',
        queryset=SantaTourRoute.objects.all(),
        allow_null=True,
        required=False,
    )
    route_name = serializers.SerializerMethodField()

    class Meta:
        model = SantaTourSchedule
        fields = [
            'id', 'night_number', 'date', 'route_id', 'route_name',
            'santa_member', 'driver_member', 'helper1_member', 'helper2_member',
            'start_time', 'notes', 'created_at',
        ]
        read_only_fields = ['id', 'created_at']
        extra_kwargs = {
            'start_time': {'required': False, 'allow_blank': True},
        }

    def get_route_name(self, obj: SantaTourSchedule) -> str | None:
        """Return the route's name for display."""
        return obj.route.name if obj.route else None

    def validate_start_time(self, value: str) -> str:
        """Blank start times fall back to the usual evening start."""
        if not value:
            return SantaTourSchedule.DEFAULT_START_TIME
        parts = value.split(':')
        if len(parts) != 2 or not all(p.isdigit() for p in parts):
            raise serializers.ValidationError(f"Expected HH:MM start time, got '{value}'")
        hours, minutes = int(parts[0]), int(parts[1])
        if not (0 <= hours <= 23 and 0 <= minutes <= 59):
            raise serializers.ValidationError(f"Expected HH:MM start time, got '{value}'")
        return f"{hours:02d}:{minutes:02d}"
