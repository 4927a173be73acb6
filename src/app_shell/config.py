"""
Application configuration.

Settings live in configuration.yaml (path overridable with APP_CONFIG_PATH)
and are validated with pydantic-settings. Environment variables of the form
APP_<SECTION>__<KEY> override file values, e.g. APP_APPLICATION__PORT=8001.
"""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, SecretStr
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from src.components.subscriptions.models import SubscriberEmail

DEFAULT_CONFIG_PATH = "configuration.yaml"


class ConfigError(ValueError):
    """Configuration file missing, malformed, or invalid."""


class ApplicationSettings(BaseModel):
    host: str = "127.0.0.1"
    port: int = Field(default=8000, ge=0, le=65535)
    base_url: str = "http://127.0.0.1:8000"


class DatabaseSettings(BaseModel):
    path: str = "./data/newsletter.db"
    acquire_timeout_seconds: float = Field(default=2.0, gt=0)
    migrations_dir: str = "migrations"
    migrate_on_startup: bool = True


class EmailClientSettings(BaseModel):
    base_url: str
    sender_email: str
    authorization_token: SecretStr
    timeout_milliseconds: int = Field(default=10_000, gt=0)

    def sender(self) -> SubscriberEmail:
        """Sender address, validated like any subscriber email."""
        return SubscriberEmail.parse(self.sender_email)

    def timeout(self) -> float:
        """Request timeout in seconds."""
        return self.timeout_milliseconds / 1000

    @property
    def is_dev(self) -> bool:
        """dev:// base URLs log emails instead of sending them."""
        return self.base_url.startswith("dev://")


class LoggingSettings(BaseModel):
    level: str = "INFO"
    json_logs: bool = Field(default=True, alias="json")

    model_config = ConfigDict(populate_by_name=True)


class Settings(BaseSettings):
    """
    Service settings.

    Priority (highest to lowest):
    1. APP_<SECTION>__<KEY> environment variables
    2. configuration.yaml (passed as init kwargs)
    3. Field defaults
    """

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    application: ApplicationSettings = Field(default_factory=ApplicationSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    email_client: EmailClientSettings
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Environment wins over the YAML file.
        return env_settings, init_settings


def read_config_file(config_path: Path) -> dict:
    """Parse the YAML file into a mapping. Raises ConfigError."""
    if not config_path.exists():
        raise ConfigError(f"Configuration file not found at: {config_path}")

    with open(config_path) as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML syntax in configuration file: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError("Configuration file must contain a mapping at the top level")
    return data


def load_settings(path: Path | None = None) -> Settings:
    """
    Load and validate the configuration file plus environment overrides.

    Raises ConfigError if the file is missing, is not valid YAML,
    or does not match the Settings schema.
    """
    config_path = path or Path(os.environ.get("APP_CONFIG_PATH", DEFAULT_CONFIG_PATH))
    data = read_config_file(config_path)

    try:
        return Settings(**data)
    except PydanticValidationError as e:
        raise ConfigError(f"Configuration validation failed:\n{e}") from e
