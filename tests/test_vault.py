"""
Test suite for the vault adapter

Tests deposits and redemptions against the in-memory asset store,
including rollback of the burn when the external payout fails.
"""

import pytest

from accrual_ledger.accrual import MAX_AMOUNT
from accrual_ledger.audit import AuditEventType
from accrual_ledger.errors import InsufficientBalance, RedeemTransferFailed
from accrual_ledger.events import DomainEvent
from accrual_ledger.vault import AssetTransferError, InMemoryAssetStore, Vault

from conftest import UNIT


@pytest.fixture
def funded(system):
    """System where alice holds 100 units of the external asset"""
    system.asset_store.credit("alice", 100 * UNIT)
    return system


class TestInMemoryAssetStore:
    """Test the external asset store"""

    def test_receive_moves_into_reserve(self):
        store = InMemoryAssetStore()
        store.credit("alice", 10)
        store.receive("alice", 4)
        assert store.holdings_of("alice") == 6
        assert store.reserve == 4

    def test_receive_more_than_held(self):
        store = InMemoryAssetStore()
        with pytest.raises(InsufficientBalance):
            store.receive("alice", 1)

    def test_release_limited_by_reserve(self):
        store = InMemoryAssetStore(reserve=5)
        with pytest.raises(AssetTransferError):
            store.release("alice", 6)
        store.release("alice", 5)
        assert store.holdings_of("alice") == 5
        assert store.reserve == 0


class TestDeposit:
    """Test deposits"""

    def test_deposit_mints(self, funded):
        funded.vault.deposit("alice", 40 * UNIT)

        assert funded.ledger.balance_of("alice") == 40 * UNIT
        assert funded.asset_store.holdings_of("alice") == 60 * UNIT
        assert funded.asset_store.reserve == 40 * UNIT

        event = funded.audit_trail.get_events_by_type(AuditEventType.DEPOSITED)[-1]
        assert event.metadata == {"account": "alice", "amount": str(40 * UNIT)}

    def test_failed_pull_rolls_back_mint(self, funded):
        with pytest.raises(InsufficientBalance):
            funded.vault.deposit("alice", 101 * UNIT)

        assert funded.ledger.get_account("alice") is None
        assert funded.asset_store.holdings_of("alice") == 100 * UNIT
        assert funded.audit_trail.get_events_by_type(AuditEventType.MINTED) == []

    def test_deposit_events(self, funded):
        received = []
        funded.dispatcher.subscribe_all(received.append)

        funded.vault.on_deposit("alice", UNIT)

        assert [e.event_type for e in received] == [
            DomainEvent.ACCOUNT_RATE_ASSIGNED, DomainEvent.MINTED, DomainEvent.DEPOSITED
        ]


class TestRedeem:
    """Test redemptions"""

    def test_redeem_partial(self, funded):
        funded.vault.deposit("alice", 50 * UNIT)
        assert funded.vault.redeem("alice", 20 * UNIT) == 20 * UNIT
        assert funded.ledger.balance_of("alice") == 30 * UNIT
        assert funded.asset_store.holdings_of("alice") == 70 * UNIT

    def test_redeem_interest_needs_reserve(self, funded, clock):
        funded.vault.deposit("alice", 50 * UNIT)
        clock.advance(86400)
        balance = funded.ledger.balance_of("alice")

        # Principal alone is backed; interest needs reward funding
        with pytest.raises(RedeemTransferFailed):
            funded.vault.redeem("alice", MAX_AMOUNT)
        assert funded.ledger.principal_balance_of("alice") == 50 * UNIT

        funded.vault.add_rewards(UNIT)
        assert funded.vault.on_redeem("alice", MAX_AMOUNT) == balance
        assert funded.ledger.balance_of("alice") == 0

    def test_payout_failure_rolls_back_burn(self, funded):
        funded.vault.deposit("alice", 10 * UNIT)
        funded.asset_store.fail_releases = True
        events_before = funded.audit_trail.count_events()

        with pytest.raises(RedeemTransferFailed) as exc_info:
            funded.vault.redeem("alice", 5 * UNIT)

        assert exc_info.value.details["amount"] == str(5 * UNIT)
        assert funded.ledger.balance_of("alice") == 10 * UNIT
        assert funded.audit_trail.count_events() == events_before

    def test_redeem_more_than_balance(self, funded):
        funded.vault.deposit("alice", UNIT)
        with pytest.raises(InsufficientBalance):
            funded.vault.redeem("alice", 2 * UNIT)
        assert funded.ledger.balance_of("alice") == UNIT


class TestRewards:
    """Test reserve funding"""

    def test_add_rewards_funds_reserve(self, system):
        system.vault.add_rewards(3 * UNIT)
        assert system.asset_store.reserve == 3 * UNIT

    def test_add_rewards_on_custom_store(self, system):
        class RecordingStore(InMemoryAssetStore):
            def __init__(self):
                super().__init__()
                self.funded = []

            def fund_reserve(self, amount):
                self.funded.append(amount)
                super().fund_reserve(amount)

        store = RecordingStore()
        vault = Vault(system.ledger, store, identity=system.vault.identity)
        vault.add_rewards(UNIT)
        assert store.funded == [UNIT]
