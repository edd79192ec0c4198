"""
Vault (Asset Adapter)

Exchanges an external asset for ledger credits one-to-one. Deposits mint,
redemptions burn and then pay the external asset out; the burn and the
payout succeed or fail together.
"""

import threading
from typing import Dict, Protocol

from .accrual import checked_add, checked_sub, validate_amount
from .audit import AuditEventType
from .errors import InsufficientBalance, RedeemTransferFailed
from .events import DomainEvent
from .ledger import AccrualLedger
from .logging_config import get_logger, log_action


class AssetTransferError(Exception):
    """The external asset store could not move funds"""


class AssetStore(Protocol):
    """External value store the vault settles against"""

    def receive(self, account: str, amount: int) -> None:
        """Pull `amount` of the external asset from account into the vault"""
        ...

    def release(self, account: str, amount: int) -> None:
        """Pay `amount` of the external asset out to account; raise on failure"""
        ...

    def fund_reserve(self, amount: int) -> None:
        """Add external asset that backs interest paid out on redemption"""
        ...


class InMemoryAssetStore:
    """
    External asset held in memory

    Tracks what each account holds outside the ledger and the vault's reserve.
    The reserve has to be funded separately to cover interest paid out on
    redemption.
    """

    def __init__(self, reserve: int = 0):
        self._holdings: Dict[str, int] = {}
        self.reserve = reserve
        self.fail_releases = False
        self._lock = threading.Lock()

    def holdings_of(self, account: str) -> int:
        return self._holdings.get(account, 0)

    def credit(self, account: str, amount: int) -> None:
        """Give account external funds (e.g. a faucet or an on-ramp)"""
        with self._lock:
            self._holdings[account] = checked_add(self.holdings_of(account), amount)

    def fund_reserve(self, amount: int) -> None:
        with self._lock:
            self.reserve = checked_add(self.reserve, amount)

    def receive(self, account: str, amount: int) -> None:
        with self._lock:
            held = self.holdings_of(account)
            if amount > held:
                raise InsufficientBalance(
                    "External asset balance too low for deposit",
                    {"account": account, "held": str(held), "amount": str(amount)}
                )
            self._holdings[account] = held - amount
            self.reserve = checked_add(self.reserve, amount)

    def release(self, account: str, amount: int) -> None:
        with self._lock:
            if self.fail_releases:
                raise AssetTransferError("External transfer rejected")
            if amount > self.reserve:
                raise AssetTransferError(
                    f"Vault reserve {self.reserve} cannot cover payout of {amount}"
                )
            self.reserve = checked_sub(self.reserve, amount)
            self._holdings[account] = checked_add(self.holdings_of(account), amount)


class Vault:
    """Adapter between an external asset store and the ledger"""

    def __init__(self, ledger: AccrualLedger, asset_store: AssetStore, identity: str = "vault"):
        self.ledger = ledger
        self.asset_store = asset_store
        self.identity = identity
        self.logger = get_logger("accrue.vault")

    def deposit(self, account: str, amount: int) -> None:
        """
        Take `amount` of the external asset from account and mint it

        The mint runs first so that a failed asset pull rolls it back.
        """
        validate_amount(amount)
        with self.ledger.atomic():
            self.ledger.mint(self.identity, account, amount)
            self.asset_store.receive(account, amount)
            self.ledger.audit_trail.log_event(
                event_type=AuditEventType.DEPOSITED,
                entity_type="vault",
                entity_id=self.identity,
                metadata={"account": account, "amount": amount},
                user_id=account
            )
            self.ledger.outbox.queue(DomainEvent.DEPOSITED, "account", account,
                                     {"amount": str(amount)})

        log_action(
            self.logger, "info", "Deposit",
            user_id=account, action="deposit", resource=f"vault:{self.identity}",
            extra={"amount": str(amount)}
        )

    def redeem(self, account: str, amount: int) -> int:
        """
        Burn `amount` (or MAX_AMOUNT for everything) and pay it out

        Returns:
            The amount burned and paid out

        Raises:
            RedeemTransferFailed: If the payout fails; the burn is rolled back
        """
        validate_amount(amount)
        with self.ledger.atomic():
            resolved = self.ledger.burn(self.identity, account, amount)
            try:
                self.asset_store.release(account, resolved)
            except Exception as exc:
                log_action(
                    self.logger, "error", "Redeem payout failed, burn rolled back",
                    user_id=account, action="redeem", resource=f"vault:{self.identity}",
                    extra={"amount": str(resolved), "error": str(exc)}
                )
                raise RedeemTransferFailed(
                    "External payout failed",
                    {"account": account, "amount": str(resolved)}
                ) from exc

            self.ledger.audit_trail.log_event(
                event_type=AuditEventType.REDEEMED,
                entity_type="vault",
                entity_id=self.identity,
                metadata={"account": account, "amount": resolved},
                user_id=account
            )
            self.ledger.outbox.queue(DomainEvent.REDEEMED, "account", account,
                                     {"amount": str(resolved)})

        log_action(
            self.logger, "info", "Redeem",
            user_id=account, action="redeem", resource=f"vault:{self.identity}",
            extra={"amount": str(resolved)}
        )
        return resolved

    # Ledger-facing adapter hooks
    on_deposit = deposit
    on_redeem = redeem

    def add_rewards(self, amount: int) -> None:
        """Fund the external reserve that backs interest payouts"""
        validate_amount(amount)
        self.asset_store.fund_reserve(amount)
        log_action(
            self.logger, "info", "Rewards added",
            action="add_rewards", resource=f"vault:{self.identity}",
            extra={"amount": str(amount)}
        )
