"""Application settings and configuration."""

from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


def get_default_data_dir() -> Path:
    """Return the default data directory based on platform."""
    return Path.home() / "Documents" / "Cashflow Chronicles"


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="CASHFLOW_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "Cashflow Chronicles"
    app_version: str = "0.1.0"

    # Data directory (ledger file and backups live here)
    data_dir: Optional[Path] = None

    # Ledger file (derived from data_dir if not set explicitly)
    data_file: Optional[Path] = None

    # Document defaults
    default_currency: str = "CHF"
    timezone: str = "Europe/Zurich"

    # Auto-save
    autosave_enabled: bool = True
    autosave_debounce_seconds: float = 2.0
    autosave_retry_on_failure: bool = True
    max_backups: int = 10

    log_level: str = "INFO"

    def get_data_dir(self) -> Path:
        """Get the data directory, creating it if needed."""
        data_dir = self.data_dir or get_default_data_dir()
        data_dir.mkdir(parents=True, exist_ok=True)
        return data_dir

    def get_data_file(self) -> Path:
        """Get the ledger file path, deriving from data_dir if not set."""
        if self.data_file:
            return self.data_file
        return self.get_data_dir() / "budget.toml"

    def get_backup_dir(self) -> Path:
        """Get the directory holding rotated backups of the ledger file."""
        backup_dir = self.get_data_file().parent / "backups"
        backup_dir.mkdir(parents=True, exist_ok=True)
        return backup_dir


# Global settings instance (can be replaced at runtime)
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Return the current settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def set_settings(settings: Settings) -> None:
    """Set the global settings instance."""
    global _settings
    _settings = settings


def reset_settings() -> None:
    """Reset settings to force reload."""
    global _settings
    _settings = None
