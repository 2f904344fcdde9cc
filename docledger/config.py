"""Configuration management with Pydantic and XDG base directory support."""

import os
import sys
from pathlib import Path

from pydantic import Field, PrivateAttr
from pydantic_settings import BaseSettings, SettingsConfigDict

from docledger.utils.crypto import load_or_create_hmac_key


def get_xdg_data_home() -> Path:
    """Get XDG_DATA_HOME directory, defaulting to ~/.local/share."""
    xdg_data = os.getenv("XDG_DATA_HOME")
    if xdg_data:
        return Path(xdg_data)
    return Path.home() / ".local" / "share"


def get_xdg_config_home() -> Path:
    """Get XDG_CONFIG_HOME directory, defaulting to ~/.config."""
    xdg_config = os.getenv("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config)
    return Path.home() / ".config"


class Settings(BaseSettings):
    """docledger configuration settings.

    Precedence: CLI flag > environment variable > .env file > defaults.
    """

    model_config = SettingsConfigDict(
        env_prefix="DOCLEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Data directories
    data_dir: Path | None = Field(
        default=None,
        description="Override data directory (defaults to XDG_DATA_HOME/docledger)",
    )

    config_dir: Path | None = Field(
        default=None,
        description="Override config directory (defaults to XDG_CONFIG_HOME/docledger)",
    )

    # Journal settings
    journal_enabled: bool = Field(
        default=True,
        description="Persist registrations to the append-only journal",
    )

    journal_fsync: bool = Field(
        default=True,
        description="fsync the journal after every registration",
    )

    journal_hmac_key_path: Path | None = Field(
        default=None,
        description="Location of the HMAC key sealing journal entries",
    )

    # Registry settings
    page_size: int = Field(
        default=100,
        ge=1,
        description="Number of records fetched per page when enumerating the registry",
    )

    log_events: bool = Field(
        default=False,
        description="Mirror registry notifications to the application log",
    )

    _resolved_data_dir: Path | None = PrivateAttr(default=None)
    _data_dir_warning_emitted: bool = PrivateAttr(default=False)

    def get_data_dir(self) -> Path:
        """Get the data directory, creating if necessary."""
        if self.data_dir:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            return self.data_dir

        if self._resolved_data_dir is not None:
            return self._resolved_data_dir

        primary_dir = get_xdg_data_home() / "docledger"
        try:
            primary_dir.mkdir(parents=True, exist_ok=True)
            self._resolved_data_dir = primary_dir
            return primary_dir
        except PermissionError as exc:
            fallback = Path.cwd() / ".docledger-data"
            fallback.mkdir(parents=True, exist_ok=True)
            self._resolved_data_dir = fallback
            if not self._data_dir_warning_emitted:
                print(
                    f"Warning: cannot create data directory at {primary_dir} ({exc}). "
                    f"Using local '{fallback}' instead. Pass --data-dir to override.",
                    file=sys.stderr,
                )
                self._data_dir_warning_emitted = True
            return fallback

    def get_config_dir(self) -> Path:
        """Get the config directory, creating if necessary."""
        if self.config_dir:
            config_dir = self.config_dir
        else:
            config_dir = get_xdg_config_home() / "docledger"

        config_dir.mkdir(parents=True, exist_ok=True)
        return config_dir

    def get_journal_path(self) -> Path:
        """Get path to the registration journal file."""
        return self.get_data_dir() / "registry.jsonl"

    def get_journal_hmac_key(self) -> bytes:
        """Return the HMAC key used to seal journal entries and metadata."""
        key_path = (
            self.journal_hmac_key_path
            if self.journal_hmac_key_path is not None
            else self.get_config_dir() / "journal.key"
        )
        return load_or_create_hmac_key(key_path, length=32)


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def set_settings(settings: Settings) -> None:
    """Set the global settings instance (useful for testing)."""
    global _settings
    _settings = settings
