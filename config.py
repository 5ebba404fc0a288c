from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Literal
from functools import lru_cache

from models import AMOUNT_ROUNDING_MODES


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application settings
    app_env: str = "default"  # development, production or testing selects a profile
    app_version: str = "1.0.0"

    # Logging settings (always written to stderr, stdout carries the CSV)
    log_level: str = "WARNING"
    log_format: Literal["json", "text"] = "text"

    # Business logic settings
    amount_rounding: str = "reject"  # reject or truncate amounts with more than 4 decimals
    reject_locked_accounts: bool = False  # skip deposits/withdrawals on locked accounts

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("amount_rounding")
    @classmethod
    def validate_amount_rounding(cls, v: str) -> str:
        mode = v.strip().lower()
        if mode not in AMOUNT_ROUNDING_MODES:
            raise ValueError(f"amount_rounding must be one of {', '.join(AMOUNT_ROUNDING_MODES)}")
        return mode


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings for the profile named by APP_ENV."""
    return get_settings_for_environment(Settings().app_env)


# Environment-specific configurations
class DevelopmentSettings(Settings):
    log_level: str = "DEBUG"


class ProductionSettings(Settings):
    log_level: str = "WARNING"
    log_format: Literal["json", "text"] = "json"


class TestingSettings(Settings):
    log_level: str = "ERROR"  # Reduce noise in tests


def get_settings_for_environment(env: str = "development") -> Settings:
    """Get settings for specific environment; unknown names fall back to the base settings."""
    settings_map = {
        "development": DevelopmentSettings,
        "production": ProductionSettings,
        "testing": TestingSettings,
    }

    settings_class = settings_map.get(env.strip().lower(), Settings)
    return settings_class()
