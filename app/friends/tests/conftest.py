"""
Test configuration and fixtures for friends tests.
"""

import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from authentication.tests.factories import UserFactory


@pytest.fixture
def ana(db):
    return UserFactory(email="ana@example.com", username="ana")


@pytest.fixture
def ben(db):
    return UserFactory(email="ben@example.com", username="ben")


@pytest.fixture
def cleo(db):
    return UserFactory(email="cleo@example.com", username="cleo")


@pytest.fixture
def client_for(db):
    """
    Factory to create authenticated clients for any user.

    Usage:
        def test_example(client_for, ana):
            response = client_for(ana).get("/api/v1/friends/")
    """

    def _make_client(user):
        client = APIClient()
        refresh = RefreshToken.for_user(user)
        client.credentials(HTTP_AUTHORIZATION=f"Bearer {refresh.access_token}")
        return client

    return _make_client
