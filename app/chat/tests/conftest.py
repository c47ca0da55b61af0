"""
Test configuration and fixtures for chat tests.

This module provides:
- Named users (ana, ben, cleo) and a friendship between ana and ben
- API client helpers for authenticated requests
- A fresh in-memory channel layer per test

Usage:
    def test_example(friends, client_for, ana, ben):
        response = client_for(ana).get(f"/api/v1/chat/messages/with/{ben.pk}/")
        assert response.status_code == 200

Async tests:
    Channel-layer and consumer tests drive a coroutine with async_to_sync and
    use django_db(transaction=True), because database_sync_to_async runs the
    ORM on another thread.
"""

import pytest
from asgiref.sync import async_to_sync
from channels.layers import channel_layers, get_channel_layer
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import AccessToken, RefreshToken

from authentication.tests.factories import UserFactory
from friends.tests.factories import make_friends


# =============================================================================
# Channel Layer
# =============================================================================


@pytest.fixture(autouse=True)
def channel_layer():
    """In-memory channel layer, emptied before and after each test."""
    channel_layers.backends.clear()
    layer = get_channel_layer()
    yield layer
    async_to_sync(layer.flush)()
    channel_layers.backends.clear()


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def ana(db):
    return UserFactory(email="ana@example.com", username="ana")


@pytest.fixture
def ben(db):
    return UserFactory(email="ben@example.com", username="ben")


@pytest.fixture
def cleo(db):
    """A user with no friendships."""
    return UserFactory(email="cleo@example.com", username="cleo")


@pytest.fixture
def inactive_user(db):
    return UserFactory(email="gone@example.com", username="gone", is_active=False)


@pytest.fixture
def friends(ana, ben):
    """Accepted friendship between ana and ben."""
    return make_friends(ana, ben)


# =============================================================================
# Auth Helpers
# =============================================================================


@pytest.fixture
def client_for(db):
    """
    Factory to create authenticated API clients for any user.

    Usage:
        def test_example(client_for, ana):
            response = client_for(ana).get("/api/v1/chat/messages/unread/")
    """

    def _make_client(user):
        client = APIClient()
        refresh = RefreshToken.for_user(user)
        client.credentials(HTTP_AUTHORIZATION=f"Bearer {refresh.access_token}")
        return client

    return _make_client


@pytest.fixture
def token_for():
    """Access token string for a user, as a WebSocket client would send it."""

    def _make_token(user):
        return str(AccessToken.for_user(user))

    return _make_token
