"""
Capability Gate Module

Decides who may mutate the ledger: administrative capability, the
mint-and-burn capability, and per-owner delegate allowances for
transfers made on another account's behalf.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Set

from .accrual import MAX_AMOUNT, checked_sub, validate_amount
from .audit import AuditEventType, AuditTrail
from .errors import Unauthorized
from .events import DomainEvent, EventOutbox
from .storage import StorageInterface, StorageRecord


class Capability(Enum):
    """Ledger capabilities"""
    ADMIN = "admin"                  # set global rate, grant capabilities
    MINT_AND_BURN = "mint_and_burn"  # create and destroy ledger credits


@dataclass
class CapabilityGrant(StorageRecord):
    """A capability held by an account"""
    account_id: str
    capability: Capability
    granted_by: str

    def to_dict(self) -> Dict:
        result = super().to_dict()
        result['capability'] = self.capability.value
        return result

    @classmethod
    def from_dict(cls, data: Dict) -> 'CapabilityGrant':
        data = dict(data)
        data['capability'] = Capability(data['capability'])
        return super().from_dict(data)


class AccessController:
    """Capability and delegate-approval checks for ledger mutations"""

    def __init__(self, storage: StorageInterface, audit_trail: AuditTrail,
                 owner: str, outbox: Optional[EventOutbox] = None):
        self.storage = storage
        self.audit = audit_trail
        self.owner = owner
        self.outbox = outbox or EventOutbox()
        self.capabilities_table = "capabilities"
        self.allowances_table = "allowances"

        if not self.has_capability(owner, Capability.ADMIN):
            self._store_grant(owner, Capability.ADMIN, granted_by=owner)

    @staticmethod
    def _grant_id(account: str, capability: Capability) -> str:
        return f"{account}:{capability.value}"

    @staticmethod
    def _allowance_id(owner: str, spender: str) -> str:
        return f"{owner}:{spender}"

    # Capabilities

    def has_capability(self, account: str, capability: Capability) -> bool:
        return self.storage.exists(self.capabilities_table, self._grant_id(account, capability))

    def capabilities_of(self, account: str) -> Set[Capability]:
        return {cap for cap in Capability if self.has_capability(account, cap)}

    def list_grants(self) -> List[CapabilityGrant]:
        return [CapabilityGrant.from_dict(data)
                for data in self.storage.load_all(self.capabilities_table)]

    def require(self, caller: str, capability: Capability) -> None:
        """Raise Unauthorized unless caller holds capability"""
        if not self.has_capability(caller, capability):
            raise Unauthorized(
                f"{caller} lacks {capability.value} capability",
                {"caller": caller, "capability": capability.value}
            )

    def _store_grant(self, account: str, capability: Capability, granted_by: str) -> None:
        now = datetime.now(timezone.utc)
        grant = CapabilityGrant(
            id=self._grant_id(account, capability),
            created_at=now,
            updated_at=now,
            account_id=account,
            capability=capability,
            granted_by=granted_by
        )
        self.storage.save(self.capabilities_table, grant.id, grant.to_dict())
        self.audit.log_event(
            AuditEventType.CAPABILITY_GRANTED,
            "capability",
            grant.id,
            {"account": account, "capability": capability.value},
            granted_by
        )
        self.outbox.queue(DomainEvent.CAPABILITY_GRANTED, "account", account,
                          {"capability": capability.value, "granted_by": granted_by})

    def grant(self, caller: str, account: str, capability: Capability) -> bool:
        """
        Grant a capability

        Returns:
            False if the account already held it
        """
        self.require(caller, Capability.ADMIN)
        if self.has_capability(account, capability):
            return False
        with self.outbox.collecting(), self.storage.atomic():
            self._store_grant(account, capability, granted_by=caller)
        return True

    def grant_mint_and_burn_capability(self, caller: str, account: str) -> bool:
        return self.grant(caller, account, Capability.MINT_AND_BURN)

    def revoke(self, caller: str, account: str, capability: Capability) -> bool:
        """Revoke a capability; the owner's admin capability is permanent"""
        self.require(caller, Capability.ADMIN)
        if account == self.owner and capability == Capability.ADMIN:
            raise Unauthorized("Owner admin capability cannot be revoked", {"account": account})

        with self.outbox.collecting(), self.storage.atomic():
            deleted = self.storage.delete(self.capabilities_table, self._grant_id(account, capability))
            if deleted:
                self.audit.log_event(
                    AuditEventType.CAPABILITY_REVOKED,
                    "capability",
                    self._grant_id(account, capability),
                    {"account": account, "capability": capability.value},
                    caller
                )
                self.outbox.queue(DomainEvent.CAPABILITY_REVOKED, "account", account,
                                  {"capability": capability.value, "revoked_by": caller})
        return deleted

    # Delegate allowances

    def allowance(self, owner: str, spender: str) -> int:
        data = self.storage.load(self.allowances_table, self._allowance_id(owner, spender))
        if not data:
            return 0
        return int(data['amount'])

    def approve(self, owner: str, spender: str, amount: int) -> None:
        """Set the amount spender may transfer out of owner's account"""
        validate_amount(amount)
        self.storage.save(self.allowances_table, self._allowance_id(owner, spender), {
            'owner': owner,
            'spender': spender,
            'amount': str(amount),
            'updated_at': datetime.now(timezone.utc).isoformat()
        })

    def spend_allowance(self, owner: str, spender: str, amount: int) -> None:
        """Consume allowance; MAX_AMOUNT allowances are never reduced"""
        current = self.allowance(owner, spender)
        if current == MAX_AMOUNT:
            return
        if amount > current:
            raise Unauthorized(
                "Transfer exceeds delegate allowance",
                {"owner": owner, "spender": spender, "allowance": str(current), "amount": str(amount)}
            )
        self.approve(owner, spender, checked_sub(current, amount))

    def require_owner_or_delegate(self, caller: str, owner: str) -> None:
        """Raise Unauthorized unless caller is owner or holds an allowance"""
        if caller == owner:
            return
        if self.allowance(owner, caller) == 0:
            raise Unauthorized(
                f"{caller} is not owner or approved delegate of {owner}",
                {"caller": caller, "owner": owner}
            )
