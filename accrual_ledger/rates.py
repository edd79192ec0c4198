"""
Rate Registry Module

Owns the protocol-wide (global) rate and assigns per-account rates. The
global rate can only ever stay the same or go down; accounts keep the rate
they were given when their principal went from zero to nonzero.
"""

from datetime import datetime, timezone
from typing import List, Optional, TYPE_CHECKING

from .accrual import validate_amount
from .audit import AuditEventType, AuditTrail
from .errors import RateIncreaseRejected
from .events import DomainEvent, EventOutbox
from .logging_config import get_logger, log_action
from .storage import StorageInterface

if TYPE_CHECKING:
    from .ledger import AccountRecord


DEFAULT_GLOBAL_RATE = 5 * 10 ** 10


class RateRegistry:
    """
    Global rate state with a single, monotonically decreasing mutation path
    """

    STATE_ID = "global_rate"

    def __init__(
        self,
        storage: StorageInterface,
        audit_trail: AuditTrail,
        outbox: Optional[EventOutbox] = None,
        default_rate: int = DEFAULT_GLOBAL_RATE
    ):
        self.storage = storage
        self.audit_trail = audit_trail
        self.outbox = outbox or EventOutbox()
        self.state_table = "protocol_state"
        self.logger = get_logger("accrue.rates")

        if not self.storage.exists(self.state_table, self.STATE_ID):
            validate_amount(default_rate)
            with self.storage.atomic():
                self._save_global_rate(default_rate)
                self.audit_trail.log_event(
                    event_type=AuditEventType.GLOBAL_RATE_INITIALIZED,
                    entity_type="protocol",
                    entity_id=self.STATE_ID,
                    metadata={"new_rate": default_rate}
                )

    @property
    def global_rate(self) -> int:
        """Current global rate (per second, scaled by PRECISION)"""
        data = self.storage.load(self.state_table, self.STATE_ID)
        return int(data['rate'])

    def _save_global_rate(self, rate: int) -> None:
        self.storage.save(self.state_table, self.STATE_ID, {
            'id': self.STATE_ID,
            'rate': str(rate),
            'updated_at': datetime.now(timezone.utc).isoformat()
        })

    def _require_empty(self, record: 'AccountRecord') -> None:
        if record.principal != 0:
            raise ValueError(
                f"Rate can only be assigned to an empty account, {record.account_id} holds principal"
            )

    def assign_rate(self, record: 'AccountRecord') -> int:
        """
        Give an empty account the current global rate

        Args:
            record: Account record whose principal is about to become nonzero

        Returns:
            The assigned rate

        Raises:
            ValueError: If the account still holds principal
        """
        self._require_empty(record)
        record.assigned_rate = self.global_rate
        self._record_assignment(record, source="global")
        return record.assigned_rate

    def inherit_rate(self, record: 'AccountRecord', source_rate: int) -> int:
        """Give an empty account the rate of the account funding it"""
        self._require_empty(record)
        record.assigned_rate = source_rate
        self._record_assignment(record, source="transfer")
        return record.assigned_rate

    def _record_assignment(self, record: 'AccountRecord', source: str) -> None:
        self.audit_trail.log_event(
            event_type=AuditEventType.ACCOUNT_RATE_ASSIGNED,
            entity_type="account",
            entity_id=record.account_id,
            metadata={"rate": record.assigned_rate, "source": source}
        )
        self.outbox.queue(
            DomainEvent.ACCOUNT_RATE_ASSIGNED, "account", record.account_id,
            {"rate": str(record.assigned_rate), "source": source}
        )

    def set_global_rate(self, new_rate: int, changed_by: Optional[str] = None) -> int:
        """
        Replace the global rate with an equal or lower value

        Args:
            new_rate: Proposed global rate
            changed_by: Account making the change

        Returns:
            The previous global rate

        Raises:
            RateIncreaseRejected: If new_rate is above the current rate
        """
        validate_amount(new_rate)

        with self.outbox.collecting(), self.storage.atomic():
            previous = self.global_rate
            if new_rate > previous:
                log_action(
                    self.logger, "warning", "Global rate increase rejected",
                    user_id=changed_by, action="set_global_rate", resource="protocol:global_rate",
                    extra={"current_rate": str(previous), "proposed_rate": str(new_rate)}
                )
                raise RateIncreaseRejected(
                    "Global rate can only decrease",
                    {"current_rate": str(previous), "proposed_rate": str(new_rate)}
                )

            self._save_global_rate(new_rate)
            self.audit_trail.log_event(
                event_type=AuditEventType.GLOBAL_RATE_CHANGED,
                entity_type="protocol",
                entity_id=self.STATE_ID,
                metadata={"previous_rate": previous, "new_rate": new_rate},
                user_id=changed_by
            )
            self.outbox.queue(
                DomainEvent.GLOBAL_RATE_CHANGED, "protocol", self.STATE_ID,
                {"previous_rate": str(previous), "new_rate": str(new_rate)}
            )

        log_action(
            self.logger, "info", "Global rate changed",
            user_id=changed_by, action="set_global_rate", resource="protocol:global_rate",
            extra={"previous_rate": str(previous), "new_rate": str(new_rate)}
        )
        return previous

    def rate_history(self) -> List[int]:
        """Every accepted global rate, oldest first"""
        history = []
        for event in self.audit_trail.get_all_events():
            if event.event_type in (AuditEventType.GLOBAL_RATE_INITIALIZED,
                                    AuditEventType.GLOBAL_RATE_CHANGED):
                history.append(int(event.metadata['new_rate']))
        return history
