"""URL routing for the Santa tour app."""

from django.urls import include, path, re_path
from django.urls.resolvers import URLPattern, URLResolver
from rest_framework.routers import DefaultRouter

from .views import LocationView, SantaTourRouteViewSet, SantaTourScheduleViewSet


class OptionalSlashRouter(DefaultRouter):
    """Router that accepts URLs both with and without trailing slashes."""

    include_root_view = False

    def __init__(self, *args: object, **kwargs: object) -> None:
        super().__init__(*args, **kwargs)
        self.trailing_slash = "/?"


router = OptionalSlashRouter()
router.register(r'santa-tour/routes', SantaTourRouteViewSet, basename='santa-tour-route')
router.register(r'santa-tour/schedules', SantaTourScheduleViewSet, basename='santa-tour-schedule')

urlpatterns: list[URLPattern | URLResolver] = [
    re_path(r'^santa-tour/location/?$', LocationView.as_view(), name='santa-tour-location'),
    path('', include(router.urls)),
]
