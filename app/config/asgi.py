"""
ASGI config for the chat backend.

This file exposes the ASGI callable as a module-level variable named
`application`. It is the production entry point: Uvicorn serves both the
REST API and the chat WebSocket from it.

Protocol routing:
- http: Django's ASGI handler (REST API, admin, docs, health check)
- websocket: ws/chat/ -> chat.consumers.ChatConsumer, authenticated from the
  JWT carried in the query string or subprotocol

For more information on this file, see:
https://docs.djangoproject.com/en/5.2/howto/deployment/asgi/
"""

import os

from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

# Initialize Django before importing anything that touches models
django_asgi_app = get_asgi_application()

from channels.routing import ProtocolTypeRouter, URLRouter  # noqa: E402
from channels.security.websocket import AllowedHostsOriginValidator  # noqa: E402

from chat.middleware import JWTAuthMiddleware  # noqa: E402
from chat.routing import websocket_urlpatterns  # noqa: E402

application = ProtocolTypeRouter(
    {
        "http": django_asgi_app,
        # 1. AllowedHostsOriginValidator - origin must match ALLOWED_HOSTS
        # 2. JWTAuthMiddleware - resolves scope["user"] from the access token
        # 3. URLRouter - dispatches ws/chat/ to ChatConsumer
        "websocket": AllowedHostsOriginValidator(
            JWTAuthMiddleware(URLRouter(websocket_urlpatterns))
        ),
    }
)
