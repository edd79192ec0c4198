"""
Tests for configuration and structured logging
"""

import json
import logging

from accrual_ledger.config import LedgerConfig
from accrual_ledger.logging_config import JSONFormatter, log_action, setup_logging


class TestLedgerConfig:
    """Test environment-based configuration"""

    def test_defaults(self):
        config = LedgerConfig(_env_file=None)
        assert config.storage_backend == "sqlite"
        assert config.default_global_rate == 5 * 10 ** 10
        assert config.owner_account == "owner"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("ACCRUE_STORAGE_BACKEND", "memory")
        monkeypatch.setenv("ACCRUE_DEFAULT_GLOBAL_RATE", "1000")
        monkeypatch.setenv("ACCRUE_API_PORT", "9000")

        config = LedgerConfig(_env_file=None)
        assert config.storage_backend == "memory"
        assert config.default_global_rate == 1000
        assert config.api_port == 9000


class TestStructuredLogging:
    """Test JSON log output"""

    def test_json_formatter_includes_action_fields(self):
        logger = logging.getLogger("accrue.test.formatter")
        record = logger.makeRecord(logger.name, logging.INFO, __name__, 0, "Minted", (), None)
        record.user_id = "minter"
        record.action = "mint"
        record.extra = {"amount": "10"}

        entry = json.loads(JSONFormatter().format(record))
        assert entry["message"] == "Minted"
        assert entry["user_id"] == "minter"
        assert entry["action"] == "mint"
        assert entry["extra"] == {"amount": "10"}
        assert "resource" not in entry

    def test_log_action_writes_to_file(self, tmp_path):
        log_file = tmp_path / "ledger.log"
        logger = setup_logging("INFO", "accrue.test.file", log_file=str(log_file))

        log_action(logger, "info", "Transferred", user_id="alice", action="transfer",
                   resource="account:alice", extra={"to": "bob"})
        log_action(logger, "debug", "Hidden")
        for handler in logger.handlers:
            handler.flush()

        lines = log_file.read_text().strip().splitlines()
        assert len(lines) == 1
        entry = json.loads(lines[0])
        assert entry["resource"] == "account:alice"
        assert entry["level"] == "INFO"


def test_reload_config_picks_up_environment(monkeypatch):
    from accrual_ledger import config as config_module

    monkeypatch.setenv("ACCRUE_OWNER_ACCOUNT", "treasury")
    monkeypatch.setattr(config_module, "config", config_module.config)
    reloaded = config_module.reload_config()

    assert reloaded.owner_account == "treasury"
    assert config_module.get_config() is reloaded
