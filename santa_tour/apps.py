"""App configuration for santa_tour application."""

import logging

from django.apps import AppConfig

logger = logging.getLogger(__name__)


class SantaTourConfig(AppConfig):
    """Configuration for the santa_tour app."""

    default_auto_field: str = 'django.db.models.BigAutoField'
    name: str = 'santa_tour'
    verbose_name: str = 'Santa Tour'

    def ready(self) -> None:
        """Log the active store backend once the app registry is loaded."""
        from django.conf import settings

        logger.debug(
            "Location store backend: %s (reject stale fixes: %s)",
            settings.SANTA_TOUR_LOCATION_STORE,
            settings.SANTA_TOUR_REJECT_STALE_FIXES,
        )
