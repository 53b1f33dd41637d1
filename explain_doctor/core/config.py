"""
Application configuration management using Pydantic Settings
"""

import json
from pathlib import Path
from typing import Optional, Union

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from explain_doctor.core.constants import (
    DEFAULT_MAX_CONCURRENT_FETCHES,
    DEFAULT_QUERY_TIMEOUT,
)
from explain_doctor.core.exceptions import ConfigurationError


class DatabaseSettings(BaseSettings):
    """Schema provider settings"""

    query_timeout: int = Field(default=DEFAULT_QUERY_TIMEOUT, ge=1, le=600)
    echo_sql: bool = Field(default=False)


class AnalysisSettings(BaseSettings):
    """EXPLAIN analysis settings"""

    # Metadata fetches issued at the same time within one run
    max_concurrent_fetches: int = Field(default=DEFAULT_MAX_CONCURRENT_FETCHES, ge=1, le=32)


class LoggingSettings(BaseSettings):
    """Logging settings"""

    level: str = Field(default="INFO")
    file_enabled: bool = Field(default=False)
    log_dir: Optional[Path] = Field(default=None)
    retention_days: int = Field(default=7, ge=1, le=30)

    @field_validator('level')
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        v = v.upper()
        if v not in valid_levels:
            v = 'INFO'
        return v


class Settings(BaseSettings):
    """Main application settings"""

    model_config = SettingsConfigDict(
        env_prefix='EXPLAINDOCTOR_',
        env_nested_delimiter='__',
        extra='ignore',
    )

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    analysis: AnalysisSettings = Field(default_factory=AnalysisSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @classmethod
    def load(cls, path: Optional[Union[str, Path]] = None) -> 'Settings':
        """
        Load settings from an optional JSON file

        Environment variables still override values from the file.

        Raises:
            ConfigurationError: If the file exists but cannot be used
        """
        if path is None:
            return cls()

        settings_file = Path(path)
        if not settings_file.exists():
            return cls()

        try:
            with open(settings_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Cannot read settings file: {e}", {"path": str(settings_file)})

        if not isinstance(data, dict):
            raise ConfigurationError("Settings file must contain a JSON object", {"path": str(settings_file)})

        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid settings: {e}", {"path": str(settings_file)})


# Global settings instance (cached)
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get global settings instance (singleton)"""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def configure(path: Optional[Union[str, Path]] = None) -> Settings:
    """Load settings from a file and make them the global instance"""
    global _settings
    _settings = Settings.load(path)
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next access reloads them"""
    global _settings
    _settings = None
