"""
Fixtures for chatclient tests.

Nothing here touches Django or the database; payloads are built in the
server's wire form by hand.
"""

import itertools
from datetime import datetime, timedelta, timezone

import pytest

ANA = "0b9f6a2e-9d1f-4a43-9a8e-1f6c2f1b7a10"
BEN = "5f0c8a39-6a43-4d7e-9c77-0d3b3f0e2b11"
CLEO = "9a1e1c1d-2b3c-4d5e-8f90-112233445566"


@pytest.fixture
def make_payload():
    """
    Build server message payloads.

    Usage:
        payload = make_payload(ANA, BEN, "hi", id=42, client_id="tmp-1")
    """
    ids = itertools.count(1)

    def _make(sender, recipient, content, id=None, timestamp=None, read=False, client_id=None):
        timestamp = timestamp or datetime.now(timezone.utc)
        return {
            "id": id if id is not None else next(ids),
            "from": sender,
            "to": recipient,
            "content": content,
            "timestamp": timestamp.isoformat().replace("+00:00", "Z"),
            "read": read,
            "client_id": client_id,
        }

    return _make


@pytest.fixture
def earlier():
    """A timestamp factory: earlier(seconds) is that many seconds ago."""

    def _earlier(seconds):
        return datetime.now(timezone.utc) - timedelta(seconds=seconds)

    return _earlier
