"""
WebSocket URL routing for the Santa tour app.

Defines WebSocket URL patterns for live sleigh position pushes.
"""
from django.urls import re_path

from . import consumers

websocket_urlpatterns = [
    re_path(r'^ws/santa-tour/location/?$', consumers.SleighLocationConsumer.as_asgi()),
]
