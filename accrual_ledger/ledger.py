"""
Accrual Ledger Engine

Owns every account's principal, assigned rate and last-accrual time. Balances
are never stored: `balance_of` derives them from principal and elapsed time.
Each mutating operation first crystallizes pending interest into principal,
then applies its change, all inside one atomic block.
"""

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .accrual import (
    MAX_AMOUNT, accrued_interest, checked_add, checked_sub,
    compute_balance, elapsed_time, validate_amount
)
from .access import AccessController, Capability
from .audit import AuditTrail, AuditEventType
from .clock import Clock
from .errors import InsufficientBalance, LedgerError
from .events import DomainEvent, EventOutbox
from .logging_config import get_logger, log_action
from .rates import RateRegistry
from .storage import StorageInterface


@dataclass
class AccountRecord:
    """
    Stored state of one ledger account

    `principal` excludes interest that has not been crystallized yet; use
    AccrualLedger.balance_of for the balance a holder actually owns.
    """
    account_id: str
    principal: int = 0
    assigned_rate: int = 0
    last_accrual_at: Optional[int] = None
    # False until the record has been written once
    stored: bool = field(default=False, repr=False, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.account_id,
            'principal': str(self.principal),
            'assigned_rate': str(self.assigned_rate),
            'last_accrual_at': self.last_accrual_at
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AccountRecord':
        return cls(
            account_id=data['id'],
            principal=int(data['principal']),
            assigned_rate=int(data['assigned_rate']),
            last_accrual_at=data.get('last_accrual_at'),
            stored=True
        )


class AccrualLedger:
    """
    Interest-accruing balance ledger

    The ledger is the only writer of account records. Every mutation runs
    under the ledger lock and inside `storage.atomic()`, so it either applies
    completely or not at all.
    """

    def __init__(
        self,
        storage: StorageInterface,
        audit_trail: AuditTrail,
        rate_registry: RateRegistry,
        access: AccessController,
        clock: Clock,
        outbox: Optional[EventOutbox] = None
    ):
        self.storage = storage
        self.audit_trail = audit_trail
        self.rate_registry = rate_registry
        self.access = access
        self.clock = clock
        self.outbox = outbox or rate_registry.outbox
        self.accounts_table = "ledger_accounts"
        self.logger = get_logger("accrue.ledger")
        self._lock = threading.RLock()

    # Record access

    def _load(self, account: str) -> AccountRecord:
        data = self.storage.load(self.accounts_table, account)
        if data:
            return AccountRecord.from_dict(data)
        return AccountRecord(account_id=account)

    def _save(self, record: AccountRecord) -> None:
        """Persist record; an account is only created once it holds principal"""
        if not record.stored and record.principal == 0:
            return
        self.storage.save(self.accounts_table, record.account_id, record.to_dict())
        record.stored = True

    def get_account(self, account: str) -> Optional[AccountRecord]:
        """Stored record for account, or None if it never held a balance"""
        data = self.storage.load(self.accounts_table, account)
        if data:
            return AccountRecord.from_dict(data)
        return None

    def list_accounts(self) -> List[AccountRecord]:
        return [AccountRecord.from_dict(data) for data in self.storage.load_all(self.accounts_table)]

    # Reads

    def _resolve_time(self, at: Optional[int]) -> int:
        return self.clock.now() if at is None else at

    def balance_of(self, account: str, at: Optional[int] = None) -> int:
        """
        Computed balance including interest not yet crystallized

        Args:
            account: Account identifier
            at: Evaluate at this time instead of the clock's current time
        """
        record = self._load(account)
        elapsed = elapsed_time(record.last_accrual_at, self._resolve_time(at))
        return compute_balance(record.principal, record.assigned_rate, elapsed)

    def principal_balance_of(self, account: str) -> int:
        """Stored principal, excluding interest not yet crystallized"""
        return self._load(account).principal

    def assigned_rate(self, account: str) -> int:
        return self._load(account).assigned_rate

    def global_rate(self) -> int:
        return self.rate_registry.global_rate

    def total_supply(self, at: Optional[int] = None) -> int:
        """Sum of all computed balances"""
        now = self._resolve_time(at)
        total = 0
        for record in self.list_accounts():
            elapsed = elapsed_time(record.last_accrual_at, now)
            total += compute_balance(record.principal, record.assigned_rate, elapsed)
        return total

    def allowance(self, owner: str, spender: str) -> int:
        return self.access.allowance(owner, spender)

    # Transaction plumbing

    @contextmanager
    def atomic(self):
        """
        One indivisible ledger transition

        Nested blocks join the outer one. Events queued inside are published
        after the outermost block commits and dropped if it rolls back.
        """
        with self._lock, self.outbox.collecting(), self.storage.atomic():
            yield

    @contextmanager
    def _mutation(self, action: str, caller: str, resource: str, **extra):
        try:
            with self.atomic():
                yield
        except LedgerError as e:
            log_action(
                self.logger, "warning", f"{action} rejected: {e.reason}",
                user_id=caller, action=action, resource=resource,
                extra={"error": e.code, **extra}
            )
            raise

    def _crystallize(self, record: AccountRecord, now: int) -> int:
        """Fold accrued interest into principal and restart the accrual clock"""
        elapsed = elapsed_time(record.last_accrual_at, now)
        delta = accrued_interest(record.principal, record.assigned_rate, elapsed)

        if delta > 0:
            record.principal = checked_add(record.principal, delta)
            self.audit_trail.log_event(
                event_type=AuditEventType.INTEREST_CRYSTALLIZED,
                entity_type="account",
                entity_id=record.account_id,
                metadata={
                    "interest": delta,
                    "principal": record.principal,
                    "rate": record.assigned_rate,
                    "elapsed": elapsed
                }
            )
            self.outbox.queue(
                DomainEvent.INTEREST_CRYSTALLIZED, "account", record.account_id,
                {"interest": str(delta), "principal": str(record.principal)}
            )

        if record.last_accrual_at is None or now > record.last_accrual_at:
            record.last_accrual_at = now
        return delta

    # Mutations

    def crystallize(self, account: str) -> int:
        """
        Crystallize pending interest for account

        Returns:
            Interest added to principal (0 when called again at the same time)
        """
        with self._mutation("crystallize", account, f"account:{account}"):
            record = self._load(account)
            delta = self._crystallize(record, self.clock.now())
            self._save(record)
        return delta

    def mint(self, caller: str, account: str, amount: int) -> None:
        """
        Credit account with newly created units

        An empty account receives the current global rate.

        Raises:
            Unauthorized: If caller lacks the mint-and-burn capability
        """
        with self._mutation("mint", caller, f"account:{account}", amount=str(amount)):
            self.access.require(caller, Capability.MINT_AND_BURN)
            validate_amount(amount)

            record = self._load(account)
            self._crystallize(record, self.clock.now())
            if record.principal == 0 and amount > 0:
                self.rate_registry.assign_rate(record)
            record.principal = checked_add(record.principal, amount)
            self._save(record)

            self.audit_trail.log_event(
                event_type=AuditEventType.MINTED,
                entity_type="account",
                entity_id=account,
                metadata={"amount": amount, "principal": record.principal},
                user_id=caller
            )
            self.outbox.queue(DomainEvent.MINTED, "account", account,
                              {"amount": str(amount), "minted_by": caller})

        log_action(
            self.logger, "info", "Minted",
            user_id=caller, action="mint", resource=f"account:{account}",
            extra={"amount": str(amount), "principal": str(record.principal),
                   "rate": str(record.assigned_rate)}
        )

    def burn(self, caller: str, account: str, amount: int) -> int:
        """
        Destroy units held by account

        Args:
            caller: Account holding the mint-and-burn capability
            account: Account to debit
            amount: Units to burn, or MAX_AMOUNT for the whole computed balance

        Returns:
            The amount actually burned

        Raises:
            Unauthorized: If caller lacks the mint-and-burn capability
            InsufficientBalance: If amount exceeds the computed balance
        """
        with self._mutation("burn", caller, f"account:{account}", amount=str(amount)):
            self.access.require(caller, Capability.MINT_AND_BURN)
            validate_amount(amount)

            record = self._load(account)
            self._crystallize(record, self.clock.now())
            resolved = record.principal if amount == MAX_AMOUNT else amount
            if resolved > record.principal:
                raise InsufficientBalance(
                    "Burn exceeds balance",
                    {"account": account, "balance": str(record.principal), "amount": str(resolved)}
                )
            record.principal = checked_sub(record.principal, resolved)
            self._save(record)

            self.audit_trail.log_event(
                event_type=AuditEventType.BURNED,
                entity_type="account",
                entity_id=account,
                metadata={"amount": resolved, "principal": record.principal},
                user_id=caller
            )
            self.outbox.queue(DomainEvent.BURNED, "account", account,
                              {"amount": str(resolved), "burned_by": caller})

        log_action(
            self.logger, "info", "Burned",
            user_id=caller, action="burn", resource=f"account:{account}",
            extra={"amount": str(resolved), "principal": str(record.principal)}
        )
        return resolved

    def transfer(self, caller: str, to: str, amount: int) -> int:
        """Move units from caller's own account; returns the amount moved"""
        return self._transfer(caller, caller, to, amount)

    def transfer_from(self, caller: str, owner: str, to: str, amount: int) -> int:
        """
        Move units out of owner's account on owner's behalf

        Raises:
            Unauthorized: If caller is neither owner nor an approved delegate
                with enough allowance
        """
        return self._transfer(caller, owner, to, amount)

    def _transfer(self, caller: str, sender: str, to: str, amount: int) -> int:
        with self._mutation("transfer", caller, f"account:{sender}", to=to, amount=str(amount)):
            self.access.require_owner_or_delegate(caller, sender)
            validate_amount(amount)
            now = self.clock.now()

            source = self._load(sender)
            self._crystallize(source, now)
            if to == sender:
                target = source
            else:
                target = self._load(to)
                self._crystallize(target, now)

            resolved = source.principal if amount == MAX_AMOUNT else amount
            if resolved > source.principal:
                raise InsufficientBalance(
                    "Transfer exceeds balance",
                    {"account": sender, "balance": str(source.principal), "amount": str(resolved)}
                )
            if caller != sender:
                self.access.spend_allowance(sender, caller, resolved)

            if target is not source:
                # New holders inherit the sender's terms, not the current global rate
                if target.principal == 0 and resolved > 0:
                    self.rate_registry.inherit_rate(target, source.assigned_rate)
                source.principal = checked_sub(source.principal, resolved)
                target.principal = checked_add(target.principal, resolved)
                self._save(target)
            self._save(source)

            self.audit_trail.log_event(
                event_type=AuditEventType.TRANSFERRED,
                entity_type="account",
                entity_id=sender,
                metadata={"to": to, "amount": resolved, "principal": source.principal},
                user_id=caller
            )
            self.outbox.queue(DomainEvent.TRANSFERRED, "account", sender,
                              {"to": to, "amount": str(resolved), "initiated_by": caller})

        log_action(
            self.logger, "info", "Transferred",
            user_id=caller, action="transfer", resource=f"account:{sender}",
            extra={"to": to, "amount": str(resolved)}
        )
        return resolved

    def approve(self, owner: str, spender: str, amount: int) -> None:
        """Allow spender to transfer up to amount out of owner's account"""
        with self._mutation("approve", owner, f"account:{owner}", spender=spender, amount=str(amount)):
            self.access.approve(owner, spender, amount)
            self.audit_trail.log_event(
                event_type=AuditEventType.APPROVAL_SET,
                entity_type="account",
                entity_id=owner,
                metadata={"spender": spender, "amount": amount},
                user_id=owner
            )
            self.outbox.queue(DomainEvent.APPROVAL, "account", owner,
                              {"spender": spender, "amount": str(amount)})

    def set_global_rate(self, caller: str, new_rate: int) -> int:
        """
        Lower (or keep) the global rate; returns the previous rate

        Raises:
            Unauthorized: If caller lacks the admin capability
            RateIncreaseRejected: If new_rate is above the current rate
        """
        with self._mutation("set_global_rate", caller, "protocol:global_rate", new_rate=str(new_rate)):
            self.access.require(caller, Capability.ADMIN)
            return self.rate_registry.set_global_rate(new_rate, changed_by=caller)

    def grant_mint_and_burn_capability(self, caller: str, account: str) -> bool:
        with self._mutation("grant_capability", caller, f"account:{account}"):
            return self.access.grant_mint_and_burn_capability(caller, account)

    def revoke_mint_and_burn_capability(self, caller: str, account: str) -> bool:
        with self._mutation("revoke_capability", caller, f"account:{account}"):
            return self.access.revoke(caller, account, Capability.MINT_AND_BURN)
