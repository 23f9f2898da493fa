"""
WSGI config for the santa-tour project.

It exposes the WSGI callable as a module-level variable named ``application``.
WebSocket pushes are only available through the ASGI application.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

application = get_wsgi_application()
