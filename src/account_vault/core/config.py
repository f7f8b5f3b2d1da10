# Core - Configuration
#
# Where the vault lives and where the two external CLIs read their live
# credentials from. Values come from the environment (optionally a .env file):
#
#   ACCOUNT_VAULT_HOME       data directory (accounts/, password.json, audit_logs/)
#   ACCOUNT_VAULT_LIVE_HOME  home directory the live credential paths hang off
#   ACCOUNT_VAULT_USAGE_URL  override for the claude usage telemetry endpoint

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

APP_DIR_NAME = "account-vault"

DEFAULT_USAGE_URL = "https://api.anthropic.com/api/oauth/usage"
DEFAULT_USAGE_TIMEOUT_SEC = 5.0


def default_data_dir() -> Path:
    """Per-user application data directory for the current platform."""
    if sys.platform == "win32":
        base = os.environ.get("APPDATA") or os.path.join(os.path.expanduser("~"), "AppData", "Roaming")
        return Path(base) / APP_DIR_NAME
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / APP_DIR_NAME
    base = os.environ.get("XDG_CONFIG_HOME") or os.path.join(os.path.expanduser("~"), ".config")
    return Path(base) / APP_DIR_NAME


@dataclass(frozen=True)
class VaultPaths:
    """On-disk layout of the vault under the data directory."""

    data_dir: Path

    @property
    def accounts_dir(self) -> Path:
        return self.data_dir / "accounts"

    @property
    def password_config(self) -> Path:
        return self.data_dir / "password.json"

    @property
    def audit_log_dir(self) -> Path:
        return self.data_dir / "audit_logs"


@dataclass(frozen=True)
class LivePaths:
    """Fixed locations the external tools read their active credentials from."""

    home_dir: Path

    @property
    def claude_credentials(self) -> Path:
        return self.home_dir / ".claude" / ".credentials.json"

    @property
    def claude_config_primary(self) -> Path:
        return self.home_dir / ".claude" / ".claude.json"

    @property
    def claude_config_fallback(self) -> Path:
        return self.home_dir / ".claude.json"

    @property
    def codex_auth(self) -> Path:
        return self.home_dir / ".codex" / "auth.json"

    @property
    def codex_sessions_dir(self) -> Path:
        return self.home_dir / ".codex" / "sessions"


@dataclass
class Settings:
    data_dir: Path = field(default_factory=default_data_dir)
    home_dir: Path = field(default_factory=Path.home)
    usage_url: str = DEFAULT_USAGE_URL
    usage_timeout: float = DEFAULT_USAGE_TIMEOUT_SEC

    @property
    def paths(self) -> VaultPaths:
        return VaultPaths(Path(self.data_dir))

    @property
    def live(self) -> LivePaths:
        return LivePaths(Path(self.home_dir))


def load_settings(env_file: Optional[str] = None) -> Settings:
    """Build Settings from the environment, loading a .env file first if present."""
    load_dotenv(env_file)

    settings = Settings()
    data_dir = os.environ.get("ACCOUNT_VAULT_HOME")
    if data_dir:
        settings.data_dir = Path(data_dir).expanduser()
    live_home = os.environ.get("ACCOUNT_VAULT_LIVE_HOME")
    if live_home:
        settings.home_dir = Path(live_home).expanduser()
    usage_url = os.environ.get("ACCOUNT_VAULT_USAGE_URL")
    if usage_url:
        settings.usage_url = usage_url
    return settings
