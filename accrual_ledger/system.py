"""
Ledger system wiring

Builds every component once, in dependency order, and shares a single
storage backend and event outbox between them.
"""

from typing import Optional

from .access import AccessController
from .audit import AuditTrail, AuditEventType
from .clock import Clock, SystemClock
from .config import LedgerConfig, get_config
from .events import EventDispatcher, EventOutbox
from .ledger import AccrualLedger
from .logging_config import get_logger
from .rates import RateRegistry
from .storage import StorageInterface, create_storage
from .vault import AssetStore, InMemoryAssetStore, Vault


class LedgerSystem:
    """Ledger with all collaborators initialized"""

    def __init__(
        self,
        config: Optional[LedgerConfig] = None,
        storage: Optional[StorageInterface] = None,
        clock: Optional[Clock] = None,
        asset_store: Optional[AssetStore] = None
    ):
        self.config = config or get_config()
        self.logger = get_logger("accrue.system")

        self.storage = storage or create_storage(self.config.storage_backend, self.config.sqlite_path)
        self.clock = clock or SystemClock()
        self.dispatcher = EventDispatcher()
        self.outbox = EventOutbox(self.dispatcher)

        self.audit_trail = AuditTrail(self.storage)
        self.access = AccessController(
            self.storage, self.audit_trail, owner=self.config.owner_account, outbox=self.outbox
        )
        self.rate_registry = RateRegistry(
            self.storage, self.audit_trail, outbox=self.outbox,
            default_rate=self.config.default_global_rate
        )
        self.ledger = AccrualLedger(
            self.storage, self.audit_trail, self.rate_registry, self.access,
            self.clock, outbox=self.outbox
        )

        self.asset_store = asset_store or InMemoryAssetStore(reserve=self.config.vault_reserve)
        self.vault = Vault(self.ledger, self.asset_store, identity=self.config.vault_account)
        self.ledger.grant_mint_and_burn_capability(self.config.owner_account, self.vault.identity)

        self.audit_trail.log_event(
            AuditEventType.SYSTEM_START,
            "system",
            "ledger",
            {"storage": type(self.storage).__name__, "global_rate": self.ledger.global_rate()}
        )
        self.logger.info("Ledger system started")

    def close(self) -> None:
        self.storage.close()
