"""
WebSocket URL routing for the chat application.

URL Patterns:
    ws/chat/ - The single chat socket; identity comes from the join event

Authentication:
    JWT access token as query parameter (?token=<jwt>) or as the
    "jwt, <token>" subprotocol. JWTAuthMiddleware attaches the user to the
    consumer's scope.
"""

from django.urls import path

from chat import consumers

websocket_urlpatterns = [
    path("ws/chat/", consumers.ChatConsumer.as_asgi()),
]
