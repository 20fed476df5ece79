"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from decimal import Decimal
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LedgerConfig(BaseSettings):
    """Bank ledger configuration"""

    model_config = SettingsConfigDict(
        env_prefix="BANK_LEDGER_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Interest rates (annual nominal, accrued monthly)
    savings_interest_rate: Decimal = Field(default=Decimal("0.04"), ge=0, le=1)
    current_interest_rate: Decimal = Field(default=Decimal("0.01"), ge=0, le=1)

    # Account numbering
    account_number_prefix: str = "ACCT"
    account_number_start: int = Field(default=1000, ge=0)  # First issued number is start + 1

    # Session configuration
    max_login_attempts: int = Field(default=3, ge=1)
    reveal_unknown_accounts: bool = False  # If False, unknown numbers look like bad credentials

    # Persistence configuration
    snapshot_path: str = "bank_data.txt"
    placeholder_credential: str = "0000"  # Credentials are not part of the snapshot

    # Reporting
    statement_length: int = Field(default=5, ge=1)

    # Logging configuration
    log_level: str = "INFO"
    log_format: Literal["json", "text"] = "json"


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
