"""
URL configuration for authentication app.

URL structure:
    /api/v1/auth/register/                 - Create account
    /api/v1/auth/login/                    - JWT pair + user
    /api/v1/auth/token/refresh/            - Refresh access token
    /api/v1/auth/me/                       - Current user
    /api/v1/auth/users/search/<handle>/    - Find a user by handle
"""

from django.urls import path

from authentication.views import (
    LoginView,
    MeView,
    RefreshView,
    RegisterView,
    UserSearchView,
)

app_name = "authentication"

urlpatterns = [
    path("register/", RegisterView.as_view(), name="register"),
    path("login/", LoginView.as_view(), name="login"),
    path("token/refresh/", RefreshView.as_view(), name="token-refresh"),
    path("me/", MeView.as_view(), name="me"),
    path("users/search/<str:handle>/", UserSearchView.as_view(), name="user-search"),
]
