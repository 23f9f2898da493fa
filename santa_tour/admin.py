"""Django admin configuration for the Santa tour app."""

from django.contrib import admin

from .models import CurrentFix, SantaTourRoute, SantaTourSchedule


@admin.register(CurrentFix)
class CurrentFixAdmin(admin.ModelAdmin):
    """Admin interface for the sleigh's current fix."""

    list_display: tuple[str, ...] = (
        'latitude',
        'longitude',
        'accuracy',
        'active',
        'timestamp',
        'updated_at'
    )
    readonly_fields: tuple[str, ...] = ('updated_at',)


@admin.register(SantaTourRoute)
class SantaTourRouteAdmin(admin.ModelAdmin):
    """Admin interface for SantaTourRoute model."""

    list_display: tuple[str, ...] = ('name', 'area', 'duration', 'stops_count')
    search_fields: tuple[str, ...] = ('name', 'area')
    readonly_fields: tuple[str, ...] = ('created_at',)


@admin.register(SantaTourSchedule)
class SantaTourScheduleAdmin(admin.ModelAdmin):
    """Admin interface for SantaTourSchedule model."""

    list_display: tuple[str, ...] = ('night_number', 'date', 'route', 'start_time')
    list_filter: tuple[str, ...] = ('date', 'route')
    readonly_fields: tuple[str, ...] = ('created_at',)
    date_hierarchy: str = 'date'
