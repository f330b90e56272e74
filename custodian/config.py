"""Configuration loading for the file custodian bot."""

import json
import os
from pathlib import Path
from typing import Dict, Optional

from pydantic import BaseModel, Field, ValidationError

from common.constants import MAX_FILE_SIZE_BYTES, PLACEHOLDER_BOT_TOKEN
from custodian.exceptions import ConfigurationError


CONFIG_PATH_ENV = "CUSTODIAN_CONFIG"

DEFAULT_CONFIG_RELATIVE_PATH = Path("config") / "config.json"

ENV_OVERRIDES = {
    "CUSTODIAN_BOT_TOKEN": "bot_token",
    "CUSTODIAN_MONGO_URI": "mongo_uri",
    "CUSTODIAN_MONGO_DATABASE": "mongo_database",
    "CUSTODIAN_SQLITE_PATH": "sqlite_path",
    "LOG_LEVEL": "log_level",
}


class Settings(BaseModel):
    """Validated bot configuration."""
    bot_token: str = ""
    mongo_uri: str = ""
    mongo_database: str = "telegram_bot"
    sqlite_path: str = str(Path("db") / "telegram.db")
    admins: Dict[str, bool] = Field(default_factory=dict)
    google_credentials_path: Optional[str] = None
    audit_spreadsheet_id: Optional[str] = None
    audit_sheet_name: str = "Sheet1"
    max_file_size_bytes: int = Field(default=MAX_FILE_SIZE_BYTES, gt=0)
    max_concurrent_updates: int = Field(default=16, ge=1)
    download_timeout_seconds: float = Field(default=60.0, gt=0)
    log_level: str = "INFO"

    def is_admin(self, username: Optional[str]) -> bool:
        """
        Look a username up in the static administrator set.

        Args:
            username: Platform username, may be empty

        Returns:
            True only when the username is listed with a true value
        """
        if not username:
            return False
        return bool(self.admins.get(username, False))

    @property
    def audit_enabled(self) -> bool:
        return bool(self.google_credentials_path and self.audit_spreadsheet_id)

    def validate_for_startup(self) -> None:
        """
        Reject settings the bot cannot start with.

        Raises:
            ConfigurationError: If the bot token or the MongoDB URI is not set
        """
        if not self.bot_token or self.bot_token == PLACEHOLDER_BOT_TOKEN:
            raise ConfigurationError("Bot token is not set, edit the configuration file")
        if not self.mongo_uri:
            raise ConfigurationError("MongoDB URI is not set, edit the configuration file")


def resolve_config_path(explicit: Optional[str] = None) -> Path:
    """
    Find the configuration file.

    An explicit argument or CUSTODIAN_CONFIG is used as given. Otherwise
    config/config.json next to the package, then in the working directory.

    Returns:
        Chosen path, or the working-directory path if no candidate exists
    """
    if explicit:
        return Path(explicit)
    env_path = os.environ.get(CONFIG_PATH_ENV)
    if env_path:
        return Path(env_path)

    cwd_path = Path.cwd() / DEFAULT_CONFIG_RELATIVE_PATH
    for candidate in (Path(__file__).resolve().parent.parent / DEFAULT_CONFIG_RELATIVE_PATH, cwd_path):
        if candidate.exists():
            return candidate
    return cwd_path


def load_settings(config_path: Path, environ: Optional[Dict[str, str]] = None) -> Settings:
    """
    Load settings from a JSON file and apply environment overrides.

    Args:
        config_path: Path to the JSON configuration file
        environ: Environment mapping, defaults to os.environ

    Returns:
        Validated Settings instance

    Raises:
        ConfigurationError: If the file is missing, is not valid JSON or fails validation
    """
    if environ is None:
        environ = os.environ

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except FileNotFoundError:
        raise ConfigurationError(f"Configuration file not found: {config_path}")
    except (json.JSONDecodeError, OSError) as e:
        raise ConfigurationError(f"Cannot read configuration file {config_path}: {e}")

    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file {config_path} must contain a JSON object")

    if data.get("admins") is None:
        data["admins"] = {}

    for env_name, field_name in ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if value:
            data[field_name] = value

    try:
        return Settings(**data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration in {config_path}: {e}")
