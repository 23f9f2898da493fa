"""
ASGI config for the santa-tour project.

It exposes the ASGI callable as a module-level variable named ``application``.

For more information on this file, see
https://docs.djangoproject.com/en/5.0/howto/deployment/asgi/
"""

import asyncio
import logging
import os
from typing import Any, Callable, cast

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

from channels.routing import ProtocolTypeRouter, URLRouter  # noqa: E402
from django.core.asgi import get_asgi_application  # noqa: E402

# Initialize Django ASGI application early to ensure the AppRegistry
# is populated before importing code that may import ORM models.
django_asgi_app = get_asgi_application()

from santa_tour.routing import websocket_urlpatterns  # noqa: E402

logger = logging.getLogger(__name__)


class ClientDisconnectMiddleware:
    """ASGI middleware that handles client disconnections gracefully.

    Viewers poll the sleigh position from phones on mobile data and drop
    off mid-request all the time. The ASGI server then cancels the request
    task, which surfaces as a CancelledError from sync_to_async and would
    otherwise be logged at ERROR with a full traceback.

    This middleware catches the CancelledError at the application boundary
    so it never reaches the event loop's exception handler.
    """

    def __init__(self, app: Callable[..., Any]) -> None:
        self.app = app

    async def __call__(
        self,
        scope: dict[str, Any],
        receive: Callable[..., Any],
        send: Callable[..., Any],
    ) -> None:
        try:
            await self.app(scope, receive, send)
        except asyncio.CancelledError:
            method = scope.get('method', '')
            path = scope.get('path', '')
            logger.debug("Client disconnected during %s %s", method, path)


application = ProtocolTypeRouter({
    "http": ClientDisconnectMiddleware(django_asgi_app),
    "websocket": URLRouter(
        cast(list, websocket_urlpatterns)  # type: ignore[arg-type]
    ),
})
