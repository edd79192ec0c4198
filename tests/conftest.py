"""
Shared pytest fixtures for ledger tests

Every fixture builds on in-memory storage and a manual clock so that time
only moves when a test moves it.
"""

import pytest

from accrual_ledger.audit import AuditTrail
from accrual_ledger.clock import ManualClock
from accrual_ledger.config import LedgerConfig
from accrual_ledger.storage import InMemoryStorage
from accrual_ledger.system import LedgerSystem


OWNER = "owner"
MINTER = "minter"
VAULT = "vault"
UNIT = 10 ** 18
START_TIME = 1_700_000_000
DEFAULT_RATE = 5 * 10 ** 10
SECONDS_PER_HOUR = 3600


@pytest.fixture
def storage():
    """Create in-memory storage for tests"""
    return InMemoryStorage()


@pytest.fixture
def audit(storage):
    """Create audit trail for tests"""
    return AuditTrail(storage)


@pytest.fixture
def clock():
    return ManualClock(start=START_TIME)


@pytest.fixture
def config():
    return LedgerConfig(
        _env_file=None,
        storage_backend="memory",
        owner_account=OWNER,
        vault_account=VAULT,
        default_global_rate=DEFAULT_RATE,
    )


@pytest.fixture
def system(config, storage, clock):
    return LedgerSystem(config=config, storage=storage, clock=clock)


@pytest.fixture
def ledger(system):
    """Ledger with a dedicated minter account"""
    system.ledger.grant_mint_and_burn_capability(OWNER, MINTER)
    return system.ledger
