"""
Tests for the Event System (Observer Pattern)

Tests the dispatcher, the outbox that defers publication until commit, and
the events the ledger emits.
"""

import pytest
from datetime import datetime
from unittest.mock import Mock

from accrual_ledger.errors import InsufficientBalance, Unauthorized
from accrual_ledger.events import DomainEvent, EventDispatcher, EventOutbox, EventPayload

from conftest import MINTER, UNIT


class TestEventPayload:
    """Test EventPayload creation and serialization"""

    def test_event_payload_creation(self):
        event = EventPayload(
            event_type=DomainEvent.MINTED,
            entity_type="account",
            entity_id="alice",
            data={"amount": "100"}
        )

        assert event.event_type == DomainEvent.MINTED
        assert isinstance(event.timestamp, datetime)
        assert len(event.event_id) > 0

    def test_event_payload_serialization(self):
        original = EventPayload(
            event_type=DomainEvent.GLOBAL_RATE_CHANGED,
            entity_type="protocol",
            entity_id="global_rate",
            data={"new_rate": "1"}
        )

        restored = EventPayload.from_dict(original.to_dict())
        assert restored.event_type == original.event_type
        assert restored.timestamp == original.timestamp
        assert restored.event_id == original.event_id
        assert restored.data == original.data


class TestEventDispatcher:
    """Test publish/subscribe"""

    def test_subscribe_and_publish(self):
        dispatcher = EventDispatcher()
        handler = Mock()
        dispatcher.subscribe(DomainEvent.MINTED, handler)

        event = EventPayload(DomainEvent.MINTED, "account", "alice", {})
        dispatcher.publish(event)
        dispatcher.publish(EventPayload(DomainEvent.BURNED, "account", "alice", {}))

        handler.assert_called_once_with(event)

    def test_global_handler_receives_everything(self):
        dispatcher = EventDispatcher()
        handler = Mock()
        dispatcher.subscribe_all(handler)

        dispatcher.publish(EventPayload(DomainEvent.MINTED, "account", "a", {}))
        dispatcher.publish(EventPayload(DomainEvent.BURNED, "account", "a", {}))
        assert handler.call_count == 2

    def test_unsubscribe(self):
        dispatcher = EventDispatcher()
        handler = Mock()
        dispatcher.subscribe(DomainEvent.MINTED, handler)
        dispatcher.subscribe_all(handler)
        assert dispatcher.get_handler_count() == 2

        dispatcher.unsubscribe(DomainEvent.MINTED, handler)
        dispatcher.unsubscribe_all(handler)
        assert dispatcher.get_handler_count() == 0

        # Unsubscribing twice is only a warning
        dispatcher.unsubscribe(DomainEvent.MINTED, handler)

    def test_failing_handler_does_not_stop_others(self):
        dispatcher = EventDispatcher()
        failing = Mock(side_effect=RuntimeError("handler bug"))
        working = Mock()
        dispatcher.subscribe(DomainEvent.MINTED, failing)
        dispatcher.subscribe(DomainEvent.MINTED, working)

        dispatcher.publish(EventPayload(DomainEvent.MINTED, "account", "a", {}))
        working.assert_called_once()

    def test_clear(self):
        dispatcher = EventDispatcher()
        dispatcher.subscribe(DomainEvent.MINTED, Mock())
        dispatcher.clear()
        assert dispatcher.get_handler_count(DomainEvent.MINTED) == 0


class TestEventOutbox:
    """Test deferred publication"""

    @pytest.fixture
    def received(self):
        return []

    @pytest.fixture
    def outbox(self, received):
        dispatcher = EventDispatcher()
        dispatcher.subscribe_all(received.append)
        return EventOutbox(dispatcher)

    def test_publishes_immediately_outside_block(self, outbox, received):
        outbox.queue(DomainEvent.MINTED, "account", "a", {})
        assert len(received) == 1

    def test_publishes_after_outermost_block(self, outbox, received):
        with outbox.collecting():
            outbox.queue(DomainEvent.MINTED, "account", "a", {})
            with outbox.collecting():
                outbox.queue(DomainEvent.BURNED, "account", "a", {})
            assert received == []
            assert outbox.pending_count == 2

        assert [e.event_type for e in received] == [DomainEvent.MINTED, DomainEvent.BURNED]
        assert outbox.pending_count == 0

    def test_drops_events_on_failure(self, outbox, received):
        with pytest.raises(RuntimeError):
            with outbox.collecting():
                outbox.queue(DomainEvent.MINTED, "account", "a", {})
                raise RuntimeError("abort")

        assert received == []
        assert outbox.pending_count == 0

        outbox.queue(DomainEvent.BURNED, "account", "a", {})
        assert len(received) == 1

    def test_without_dispatcher(self):
        outbox = EventOutbox()
        outbox.queue(DomainEvent.MINTED, "account", "a", {})
        assert outbox.pending_count == 0


class TestLedgerEvents:
    """Test events raised by ledger operations"""

    def test_mint_publishes_rate_assignment_and_mint(self, system, ledger):
        received = []
        system.dispatcher.subscribe_all(received.append)

        ledger.mint(MINTER, "alice", 10 * UNIT)

        types = [e.event_type for e in received]
        assert types == [DomainEvent.ACCOUNT_RATE_ASSIGNED, DomainEvent.MINTED]
        assert received[1].data["amount"] == str(10 * UNIT)

    def test_rejected_operation_publishes_nothing(self, system, ledger, clock):
        ledger.mint(MINTER, "alice", UNIT)
        clock.advance(3600)
        received = []
        system.dispatcher.subscribe_all(received.append)

        with pytest.raises(InsufficientBalance):
            ledger.burn(MINTER, "alice", 2 * UNIT)
        with pytest.raises(Unauthorized):
            ledger.mint("mallory", "mallory", UNIT)

        assert received == []

    def test_crystallization_event(self, system, ledger, clock):
        ledger.mint(MINTER, "alice", UNIT)
        clock.advance(3600)
        handler = Mock()
        system.dispatcher.subscribe(DomainEvent.INTEREST_CRYSTALLIZED, handler)

        interest = ledger.crystallize("alice")

        handler.assert_called_once()
        assert handler.call_args[0][0].data["interest"] == str(interest)
