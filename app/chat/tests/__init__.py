"""
Tests for chat app.

This package contains test modules for:
- test_models.py: Message model, payload shape and inbound serializers
- test_services.py: MessageStore tests
- test_presence.py: PresenceRegistry tests
- test_delivery.py: DeliveryRouter tests
- test_consumers.py: WebSocket consumer tests
- test_middleware.py: JWT WebSocket middleware tests
- test_views.py: REST API endpoint tests

Usage:
    pytest chat/tests/
    pytest chat/tests/test_consumers.py
"""
