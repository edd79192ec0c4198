"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class LedgerConfig(BaseSettings):
    """Accrue ledger configuration"""

    model_config = SettingsConfigDict(
        env_prefix="ACCRUE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage configuration
    storage_backend: str = "sqlite"  # memory or sqlite
    sqlite_path: str = "accrue.db"

    # Ledger configuration
    default_global_rate: int = 5 * 10 ** 10  # per second, scaled by 1e18
    owner_account: str = "owner"
    vault_account: str = "vault"
    vault_reserve: int = 0  # external asset the vault starts with

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8090

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stdout


# Global configuration instance
config = LedgerConfig()


def get_config() -> LedgerConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> LedgerConfig:
    """Reload configuration from environment"""
    global config
    config = LedgerConfig()
    return config
