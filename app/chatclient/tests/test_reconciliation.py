"""
Tests for InFlightRegistry and ConversationView.

Test Organization:
    - TestInFlightRegistry: expiry, LRU bound, explicit eviction
    - TestOptimisticSend: pending -> sent via echo or ack, and rollback
    - TestIncomingMessages: pushes from the partner and from elsewhere
    - TestHistory: server history as the source of truth
"""

from datetime import datetime, timedelta, timezone

import pytest
from freezegun import freeze_time

from chatclient.reconciliation import (
    ConversationView,
    InFlightRegistry,
    MessageState,
    parse_timestamp,
)
from chatclient.tests.conftest import ANA, BEN, CLEO


# =============================================================================
# TestInFlightRegistry
# =============================================================================


class TestInFlightRegistry:
    def test_add_and_contains(self):
        registry = InFlightRegistry()
        registry.add("tmp-1")

        assert "tmp-1" in registry
        assert len(registry) == 1

    def test_expires_after_ttl(self):
        """
        Provisional ids leave the registry after the window even if unconfirmed.

        Why it matters: A later message with the same text must not be
        swallowed as an echo of a long-gone optimistic send.
        """
        with freeze_time("2024-05-01 10:00:00") as frozen:
            registry = InFlightRegistry(ttl=5)
            registry.add("tmp-1")

            frozen.tick(timedelta(seconds=4))
            assert "tmp-1" in registry

            frozen.tick(timedelta(seconds=2))
            assert "tmp-1" not in registry
            assert registry.ids() == []

    def test_bounded_size_drops_oldest(self):
        registry = InFlightRegistry(max_size=2)
        for provisional_id in ("tmp-1", "tmp-2", "tmp-3"):
            registry.add(provisional_id)

        assert registry.ids() == ["tmp-2", "tmp-3"]

    def test_readding_refreshes(self):
        registry = InFlightRegistry(max_size=2)
        registry.add("tmp-1")
        registry.add("tmp-2")
        registry.add("tmp-1")
        registry.add("tmp-3")

        assert registry.ids() == ["tmp-1", "tmp-3"]

    def test_evict(self):
        registry = InFlightRegistry()
        registry.add("tmp-1")

        assert registry.evict("tmp-1") is True
        assert registry.evict("tmp-1") is False

    def test_rejects_bad_bounds(self):
        with pytest.raises(ValueError):
            InFlightRegistry(ttl=0)


# =============================================================================
# TestOptimisticSend
# =============================================================================


class TestOptimisticSend:
    def test_pending_message_shows_immediately(self):
        view = ConversationView(ANA, BEN)

        pending = view.add_pending("hi")

        assert pending.id.startswith("tmp-")
        assert pending.state is MessageState.PENDING
        assert view.messages == [pending]
        assert pending.id in view.in_flight

    def test_echo_with_client_id_replaces_provisional(self, make_payload):
        """
        The server echo of our own message replaces the optimistic entry.

        Why it matters: Exactly one "hi" must be visible, never the
        provisional and the durable copy side by side.
        """
        view = ConversationView(ANA, BEN)
        pending = view.add_pending("hi")

        merged = view.apply_push(make_payload(ANA, BEN, "hi", id=42, client_id=pending.id))

        assert [m.content for m in view.messages] == ["hi"]
        assert merged.id == 42
        assert merged.state is MessageState.SENT
        assert pending.id not in view.in_flight

    def test_echo_without_client_id_matches_by_content_and_time(self, make_payload):
        view = ConversationView(ANA, BEN)
        view.add_pending("hi")

        view.apply_push(make_payload(ANA, BEN, "hi", id=42))

        assert [(m.id, m.content) for m in view.messages] == [(42, "hi")]

    def test_echo_outside_tolerance_is_a_new_message(self, make_payload, earlier):
        view = ConversationView(ANA, BEN, tolerance=10)
        view.add_pending("hi")

        view.apply_push(make_payload(ANA, BEN, "hi", id=42, timestamp=earlier(60)))

        assert len(view.messages) == 2
        assert len(view.pending) == 1

    def test_expired_provisional_is_not_matched_heuristically(self, make_payload):
        with freeze_time("2024-05-01 10:00:00") as frozen:
            view = ConversationView(ANA, BEN, in_flight=InFlightRegistry(ttl=5), tolerance=10)
            view.add_pending("hi")
            frozen.tick(timedelta(seconds=6))

            view.apply_push(make_payload(ANA, BEN, "hi", id=42))

        assert len(view.messages) == 2

    def test_repeated_echo_is_deduplicated(self, make_payload):
        """Pushes to several tabs, or push plus ack, settle into one entry."""
        view = ConversationView(ANA, BEN)
        pending = view.add_pending("hi")
        payload = make_payload(ANA, BEN, "hi", id=42, client_id=pending.id)

        view.apply_push(payload)
        view.apply_push(payload)
        view.confirm(pending.id, payload)

        assert [m.id for m in view.messages] == [42]

    def test_ack_before_echo(self, make_payload):
        view = ConversationView(ANA, BEN)
        pending = view.add_pending("hi")
        payload = make_payload(ANA, BEN, "hi", id=42, client_id=pending.id)

        confirmed = view.confirm(pending.id, payload)
        view.apply_push(payload)

        assert confirmed.id == 42
        assert [m.id for m in view.messages] == [42]

    def test_two_identical_pending_messages_each_get_one_echo(self, make_payload):
        view = ConversationView(ANA, BEN)
        first = view.add_pending("ok")
        second = view.add_pending("ok")

        view.apply_push(make_payload(ANA, BEN, "ok", id=1, client_id=first.id))
        view.apply_push(make_payload(ANA, BEN, "ok", id=2, client_id=second.id))

        assert [m.id for m in view.messages] == [1, 2]
        assert view.pending == []

    def test_failure_rolls_back(self):
        view = ConversationView(ANA, BEN)
        pending = view.add_pending("hi")

        removed = view.fail(pending.id, "Message content cannot be empty")

        assert removed is pending
        assert view.messages == []
        assert view.errors == [(pending.id, "Message content cannot be empty")]
        assert pending.id not in view.in_flight

    def test_pending_sorted_after_durable(self, make_payload, earlier):
        view = ConversationView(ANA, BEN)
        pending = view.add_pending("still sending")
        view.apply_push(make_payload(BEN, ANA, "older", id=7, timestamp=earlier(30)))

        assert [m.content for m in view.messages] == ["older", "still sending"]
        assert view.messages[-1] is pending


# =============================================================================
# TestIncomingMessages
# =============================================================================


class TestIncomingMessages:
    def test_partner_message_is_appended(self, make_payload):
        view = ConversationView(ANA, BEN)

        message = view.apply_push(make_payload(BEN, ANA, "hello ana", id=5))

        assert message.sender_id == BEN
        assert [m.id for m in view.messages] == [5]

    def test_same_text_from_partner_does_not_match_my_pending(self, make_payload):
        view = ConversationView(ANA, BEN)
        view.add_pending("hi")

        view.apply_push(make_payload(BEN, ANA, "hi", id=5))

        assert len(view.messages) == 2
        assert len(view.pending) == 1

    def test_other_conversation_is_ignored(self, make_payload):
        view = ConversationView(ANA, BEN)

        assert view.apply_push(make_payload(CLEO, ANA, "psst", id=9)) is None
        assert view.messages == []

    def test_ordered_by_timestamp_then_id(self, make_payload):
        view = ConversationView(ANA, BEN)
        moment = datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)

        view.apply_push(make_payload(BEN, ANA, "c", id=3, timestamp=moment + timedelta(seconds=1)))
        view.apply_push(make_payload(BEN, ANA, "b", id=2, timestamp=moment))
        view.apply_push(make_payload(ANA, BEN, "a", id=1, timestamp=moment))

        assert [m.content for m in view.messages] == ["a", "b", "c"]

    def test_read_receipt(self, make_payload):
        view = ConversationView(ANA, BEN)
        view.apply_push(make_payload(ANA, BEN, "hi", id=42))

        assert view.mark_read(42) is True
        assert view.get(42).read is True
        assert view.mark_read(999) is False


# =============================================================================
# TestHistory
# =============================================================================


class TestHistory:
    def test_history_is_authoritative_for_messages_it_contains(self, make_payload):
        view = ConversationView(ANA, BEN)
        view.apply_push(make_payload(ANA, BEN, "a", id=10))

        view.load_history([make_payload(ANA, BEN, "a", id=10, read=True), make_payload(BEN, ANA, "b", id=11)])

        assert [m.id for m in view.messages] == [10, 11]
        assert view.get(10).read is True

    def test_push_newer_than_snapshot_is_kept(self, make_payload, earlier):
        """
        A message pushed while history was being fetched is not in the
        snapshot and must stay in the view.

        Why it matters: The push is the only copy the client will get until
        the next history load; replacing the view would lose it.
        """
        view = ConversationView(ANA, BEN)
        view.apply_push(make_payload(BEN, ANA, "pushed during fetch", id=12))

        view.load_history(
            [
                make_payload(ANA, BEN, "a", id=10, timestamp=earlier(30)),
                make_payload(BEN, ANA, "b", id=11, timestamp=earlier(20)),
            ]
        )

        assert [m.id for m in view.messages] == [10, 11, 12]

    def test_pending_survives_history_load(self, make_payload):
        view = ConversationView(ANA, BEN)
        pending = view.add_pending("in flight")

        view.load_history([make_payload(BEN, ANA, "b", id=11)])

        assert [m.id for m in view.messages] == [11, pending.id]

    def test_history_settles_pending_by_client_id(self, make_payload):
        view = ConversationView(ANA, BEN)
        pending = view.add_pending("hi")

        view.load_history([make_payload(ANA, BEN, "hi", id=42, client_id=pending.id)])

        assert [m.id for m in view.messages] == [42]
        assert pending.id not in view.in_flight

    def test_foreign_messages_in_history_are_dropped(self, make_payload):
        view = ConversationView(ANA, BEN)

        view.load_history([make_payload(CLEO, ANA, "x", id=1)])

        assert view.messages == []


def test_parse_timestamp_accepts_z_suffix():
    parsed = parse_timestamp("2024-05-01T10:00:00.123456Z")

    assert parsed == datetime(2024, 5, 1, 10, 0, 0, 123456, tzinfo=timezone.utc)
