"""Configuration via pydantic-settings with .env support."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import SecretStr, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from imap_sync.core.exceptions import ConfigError

REQUIRED_FIELDS = ("server", "username", "mailbox")


class ImapSyncSettings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_prefix="IMAP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Server and account
    server: str = ""
    username: str = ""
    password: SecretStr | None = None
    timeout_seconds: float = 60.0

    # Mailbox
    mailbox: str = ""

    # Output path
    messages_dir: Path = Path("messages")

    # Abort the run on the first per-message failure
    stop_on_error: bool = True

    # Logging
    log_level: str = "INFO"

    def validate_required(self) -> None:
        """Raise ConfigError if server, username or mailbox is missing."""
        missing = [name for name in REQUIRED_FIELDS if not getattr(self, name).strip()]
        if missing:
            raise ConfigError(f"Missing required settings: {', '.join(missing)}")

    def password_value(self) -> str | None:
        if self.password is None:
            return None
        return self.password.get_secret_value() or None


def load_settings(**overrides: Any) -> ImapSyncSettings:
    """Build settings from the environment and .env, with explicit overrides.

    Raises:
        ConfigError: If any value fails validation (e.g. IMAP_TIMEOUT_SECONDS=soon).
    """
    try:
        return ImapSyncSettings(**overrides)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigError(f"Invalid settings: {problems}") from e
