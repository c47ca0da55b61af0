"""
URL configuration for the chat backend.

URL Structure:
    /                                   - ReDoc API documentation
    /admin/                             - Django admin interface
    /health/                            - Health check endpoint (load balancers, Docker)
    /schema/                            - OpenAPI schema (YAML)
    /api/v1/auth/                       - Accounts (authentication.urls)
        register/                       - Create account, assigns a handle
        login/                          - Email/password -> JWT pair + user
        token/refresh/                  - Refresh access token
        me/                             - Current user
        users/search/{handle}/          - Directory lookup by handle
    /api/v1/friends/                    - Friend relationships (friends.urls)
        (root)                          - Accepted friends
        requests/                       - Send friend request
        requests/pending/               - Incoming pending requests
        requests/{id}/respond/          - Accept or reject
    /api/v1/chat/                       - Messaging (chat.urls)
        messages/                       - Send message (REST path into the router)
        messages/with/{user_id}/        - Conversation history
        messages/{id}/read/             - Mark as read
        messages/unread/                - Unread counts
        presence/{user_id}/             - Online status

WebSocket routes live in chat.routing (ws/chat/).

For more information, see:
https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
# All routes here are prefixed with /api/v1/ automatically
api_v1_patterns = [
    path("auth/", include("authentication.urls")),
    path("friends/", include("friends.urls")),
    path("chat/", include("chat.urls")),
]

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    # Admin
    path("admin/", admin.site.urls),
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
    # API v1
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Chat Admin"
admin.site.site_title = "Chat Admin Portal"
admin.site.index_title = "Users, friendships and messages"
