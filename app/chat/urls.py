"""
URL configuration for chat API.

URL Structure:
    Messages:
        /messages/                       POST
        /messages/unread/                GET
        /messages/with/{user_id}/        GET
        /messages/{id}/read/             POST

    Presence:
        /presence/{user_id}/             GET

WebSocket routes live in chat/routing.py.
"""

from django.urls import path

from chat.views import (
    ConversationHistoryView,
    MarkReadView,
    MessageCreateView,
    UnreadCountView,
    UserPresenceView,
)

app_name = "chat"

urlpatterns = [
    path("messages/", MessageCreateView.as_view(), name="message-create"),
    path("messages/unread/", UnreadCountView.as_view(), name="message-unread"),
    path("messages/with/<uuid:user_id>/", ConversationHistoryView.as_view(), name="conversation-history"),
    path("messages/<int:pk>/read/", MarkReadView.as_view(), name="message-read"),
    path("presence/<uuid:user_id>/", UserPresenceView.as_view(), name="user-presence"),
]
