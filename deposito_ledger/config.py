"""
Configuration Management Module

Centralized configuration using pydantic-settings. Every field can be
overridden with a DEPOSITO_-prefixed environment variable or a .env file.
"""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class DepositoConfig(BaseSettings):
    """Deposito ledger configuration"""

    model_config = SettingsConfigDict(
        env_prefix="DEPOSITO_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Storage configuration
    database_url: str = "sqlite:///deposito.db"  # or memory://

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stderr

    # Concurrency configuration
    lock_timeout_seconds: float = 5.0
    max_conflict_retries: int = 3
    conflict_backoff_seconds: float = 0.05

    # Numeric configuration
    accrual_precision: int = 6  # Decimal places kept during projection
    display_precision: int = 2  # Decimal places of posted amounts

    # Feature flags
    enable_audit_logging: bool = True

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8090


# Global configuration instance
config = DepositoConfig()


def get_config() -> DepositoConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> DepositoConfig:
    """Reload configuration from environment"""
    global config
    config = DepositoConfig()
    return config
