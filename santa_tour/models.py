"""
Database models for the Santa tour.

This module defines the single-slot record holding the sleigh's latest
position, and the routes and nightly schedules the tour is planned with.
"""
from django.db import models


class CurrentFix(models.Model):
    """
    The sleigh's most recent accepted GPS fix.

    Only one row (primary key ``SINGLETON_PK``) ever exists. Every accepted
    submission overwrites it; no history is kept.
    """

    SINGLETON_PK = 1

    latitude = models.FloatField(
        help_text="Latitude in decimal degrees (-90 to +90)"
    )
    longitude = models.FloatField(
        help_text="Longitude in decimal degrees (-180 to +180)"
    )
    accuracy = models.FloatField(
        null=True,
        blank=True,
        help_text="Radius of the device's confidence circle in meters"
    )
    active = models.BooleanField(
        default=True,  # type: ignore[reportArgumentType]  # django-stubs issue
        help_text="Whether the driver is currently broadcasting"
    )
    timestamp = models.DateTimeField(
        help_text="When the fix was captured"
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="When the server last overwrote this record"
    )

    class Meta:
        verbose_name = 'Current fix'
        verbose_name_plural = 'Current fix'

    def __str__(self) -> str:
        """Return string representation of the fix."""
        return f"Sleigh @ ({self.latitude}, {self.longitude}) on {self.timestamp}"


class SantaTourRoute(models.Model):
    """A route the sleigh can be driven along on a tour night."""

    name = models.CharField(max_length=200)
    area = models.CharField(max_length=200)
    duration = models.CharField(
        max_length=50,
        blank=True,
        default='',
        help_text="Free-form duration, e.g. '2 hours'"
    )
    stops_count = models.PositiveIntegerField(default=0)  # type: ignore[reportArgumentType]
    notes = models.TextField(blank=True, default='')
    map_data = models.TextField(
        blank=True,
        default='',
        help_text="Serialized route geometry from the route planner"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['name']
        verbose_name = 'Route'
        verbose_name_plural = 'Routes'

    def __str__(self) -> str:
        """Return string representation of the route."""
        return f"{self.name} ({self.area})"


class SantaTourSchedule(models.Model):
    """
    One night of the tour.

    Crew slots hold member ids from the club's membership system, which
    lives outside this app.
    """

    DEFAULT_START_TIME = '18:00'

    night_number = models.PositiveIntegerField()
    date = models.DateField()
    route = models.ForeignKey(
        SantaTourRoute,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='schedules',
    )
    santa_member = models.IntegerField(null=True, blank=True)
    driver_member = models.IntegerField(null=True, blank=True)
    helper1_member = models.IntegerField(null=True, blank=True)
    helper2_member = models.IntegerField(null=True, blank=True)
    start_time = models.CharField(max_length=5, default=DEFAULT_START_TIME)
    notes = models.TextField(blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['date', 'night_number']
        verbose_name = 'Schedule'
        verbose_name_plural = 'Schedules'

    def __str__(self) -> str:
        """Return string representation of the schedule."""
        return f"Night {self.night_number} on {self.date}"
