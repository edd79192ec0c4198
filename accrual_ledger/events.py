"""
Event System Module

Observer-pattern event dispatcher. The ledger publishes domain events only
after the state change they describe has been committed.
"""

from enum import Enum
from typing import Callable, Dict, List, Any, Optional
from dataclasses import dataclass, field
from datetime import datetime, timezone
import uuid
import logging
from threading import RLock
from contextlib import contextmanager


class DomainEvent(Enum):
    """Domain events that can occur in the ledger"""

    # Ledger events
    MINTED = "ledger.minted"
    BURNED = "ledger.burned"
    TRANSFERRED = "ledger.transferred"
    APPROVAL = "ledger.approval"
    INTEREST_CRYSTALLIZED = "ledger.interest_crystallized"

    # Rate events
    GLOBAL_RATE_CHANGED = "rate.global_changed"
    ACCOUNT_RATE_ASSIGNED = "rate.account_assigned"

    # Capability events
    CAPABILITY_GRANTED = "access.capability_granted"
    CAPABILITY_REVOKED = "access.capability_revoked"

    # Vault events
    DEPOSITED = "vault.deposited"
    REDEEMED = "vault.redeemed"


@dataclass
class EventPayload:
    """Payload for domain events"""
    event_type: DomainEvent
    entity_type: str
    entity_id: str
    data: Dict[str, Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            'event_type': self.event_type.value,
            'entity_type': self.entity_type,
            'entity_id': self.entity_id,
            'data': self.data,
            'timestamp': self.timestamp.isoformat(),
            'event_id': self.event_id
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EventPayload':
        """Create from dictionary"""
        return cls(
            event_type=DomainEvent(data['event_type']),
            entity_type=data['entity_type'],
            entity_id=data['entity_id'],
            data=data['data'],
            timestamp=datetime.fromisoformat(data['timestamp']) if isinstance(data['timestamp'], str) else data['timestamp'],
            event_id=data['event_id']
        )


def _handler_name(handler: Callable) -> str:
    return getattr(handler, "__name__", repr(handler))


class EventDispatcher:
    """Central event dispatcher, publish/subscribe pattern"""

    def __init__(self):
        self._handlers: Dict[DomainEvent, List[Callable]] = {}
        self._global_handlers: List[Callable] = []
        self._lock = RLock()
        self.logger = logging.getLogger("accrue.events")

    def subscribe(self, event_type: DomainEvent, handler: Callable) -> None:
        """Subscribe to a specific event type"""
        with self._lock:
            self._handlers.setdefault(event_type, []).append(handler)
            self.logger.debug(f"Subscribed handler {_handler_name(handler)} to {event_type.value}")

    def subscribe_all(self, handler: Callable) -> None:
        """Subscribe to ALL events"""
        with self._lock:
            self._global_handlers.append(handler)
            self.logger.debug(f"Subscribed global handler {_handler_name(handler)}")

    def unsubscribe(self, event_type: DomainEvent, handler: Callable) -> None:
        """Unsubscribe from a specific event type"""
        with self._lock:
            try:
                self._handlers.get(event_type, []).remove(handler)
            except ValueError:
                self.logger.warning(f"Handler {_handler_name(handler)} was not subscribed to {event_type.value}")

    def unsubscribe_all(self, handler: Callable) -> None:
        """Unsubscribe a global handler"""
        with self._lock:
            try:
                self._global_handlers.remove(handler)
            except ValueError:
                self.logger.warning(f"Global handler {_handler_name(handler)} was not subscribed")

    def publish(self, event: EventPayload) -> None:
        """Publish event to all subscribers"""
        with self._lock:
            handlers = list(self._handlers.get(event.event_type, [])) + list(self._global_handlers)

        self.logger.debug(f"Publishing event {event.event_type.value} for {event.entity_type}:{event.entity_id}")

        for handler in handlers:
            try:
                handler(event)
            except Exception:
                # The state change is already committed; a failing observer cannot undo it
                self.logger.exception(
                    f"Error in event handler {_handler_name(handler)} for {event.event_type.value}"
                )

    def clear(self) -> None:
        """Clear all handlers"""
        with self._lock:
            self._handlers.clear()
            self._global_handlers.clear()

    def get_handler_count(self, event_type: Optional[DomainEvent] = None) -> int:
        """Get count of handlers for a specific event type or all"""
        with self._lock:
            if event_type:
                return len(self._handlers.get(event_type, []))
            total = sum(len(handlers) for handlers in self._handlers.values())
            return total + len(self._global_handlers)


class EventOutbox:
    """
    Holds domain events until the operation that raised them commits

    Components queue events while inside ``collecting()``. When the outermost
    block exits normally the events are published; if it raises they are
    dropped together with the rolled back state.
    """

    def __init__(self, dispatcher: Optional[EventDispatcher] = None):
        self.dispatcher = dispatcher
        self._pending: List[EventPayload] = []
        self._depth = 0
        self._lock = RLock()

    def queue(self, event_type: DomainEvent, entity_type: str, entity_id: str,
              data: Dict[str, Any]) -> None:
        """Queue a domain event, publishing at once outside any block"""
        event = EventPayload(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            data=data
        )
        with self._lock:
            self._pending.append(event)
            if self._depth == 0:
                self._flush()

    @contextmanager
    def collecting(self):
        with self._lock:
            self._depth += 1
            try:
                yield
            except BaseException:
                self._depth = 0
                self._pending.clear()
                raise
            else:
                self._depth -= 1
                if self._depth == 0:
                    self._flush()

    def _flush(self) -> None:
        pending = list(self._pending)
        self._pending.clear()
        if not self.dispatcher:
            return
        for event in pending:
            self.dispatcher.publish(event)

    @property
    def pending_count(self) -> int:
        return len(self._pending)
