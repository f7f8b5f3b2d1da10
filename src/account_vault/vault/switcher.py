# Vault - Account Switching
#
# save:   live location → vault (encrypted when the session is unlocked)
# switch: vault → live location, backing up each live file first
# delete: remove a stored profile
#
# Live files belong to the external CLIs. They are read and overwritten here
# but never encrypted: the tools read them directly.

import logging
import shutil
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from ..core import EventType, LivePaths, get_audit_logger
from ..core.jwt_claims import email_from_token, plan_from_token
from .errors import NotFound, VaultError, VaultIOError
from .store import (
    PROFILE_KINDS,
    VaultStore,
    atomic_write_text,
    parse_json,
    read_text,
    sanitize_name,
    validate_service,
)

logger = logging.getLogger(__name__)

BACKUP_SUFFIX = ".backup"

# Error text when a live file needed by save() is missing
_MISSING_LIVE = {
    ("claude", "credentials"): "No active credentials found",
    ("claude", "config"): "No active config found",
    ("codex", "auth"): "No active account found",
}


def backup_path(live_path: Path) -> Path:
    """Fixed sibling path holding the single-generation backup."""
    return live_path.with_name(live_path.name + BACKUP_SUFFIX)


class AccountSwitcher:
    """Copies profiles between the vault and the live credential locations."""

    def __init__(self, store: VaultStore, live: LivePaths):
        self.store = store
        self.live = live
        self.logger = get_audit_logger()

    # ------------------------------------------------------------------
    # Live locations
    # ------------------------------------------------------------------

    def claude_config_path(self) -> Path:
        """
        Primary config path if it holds an ``oauthAccount``, else the fallback.

        Evaluated on every call: which of the two is live can change between
        save and switch.
        """
        primary = self.live.claude_config_primary
        if primary.is_file():
            try:
                data = parse_json(read_text(primary), primary.name)
                if isinstance(data, dict) and data.get("oauthAccount"):
                    return primary
            except VaultError:
                logger.debug("Primary claude config unreadable, using fallback")
        return self.live.claude_config_fallback

    def live_paths(self, service: str) -> Dict[str, Path]:
        """Live file for every profile kind of ``service``."""
        if validate_service(service) == "claude":
            return {
                "credentials": self.live.claude_credentials,
                "config": self.claude_config_path(),
            }
        return {"auth": self.live.codex_auth}

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def save(self, service: str, name: str) -> str:
        """
        Store the currently active account for ``service`` under ``name``.

        Every live file must exist before any vault file is written.

        Returns:
            The sanitized name the profile was stored under.
        """
        validate_service(service)
        name = sanitize_name(name)

        live_texts: List[Tuple[str, str]] = []
        for kind, live_path in self.live_paths(service).items():
            if not live_path.is_file():
                raise NotFound(_MISSING_LIVE[(service, kind)])
            text = read_text(live_path)
            parse_json(text, live_path.name)
            live_texts.append((kind, text))

        for kind, text in live_texts:
            self.store.write_profile_text(service, name, kind, text)

        self.logger.log_vault_event(
            EventType.PROFILE_SAVED,
            f"Saved {service} profile",
            details={"service": service, "name": name,
                     "encrypted": self.store.session.is_unlocked},
        )
        return name

    def switch(self, service: str, name: str) -> str:
        """
        Make the stored profile ``name`` the live account for ``service``.

        Order: back up every existing live file, then decrypt every stored
        blob, then overwrite the live files. A decrypt failure leaves the live
        files untouched with their backups already written.
        """
        validate_service(service)
        name = sanitize_name(name)

        for kind in PROFILE_KINDS[service]:
            if not self.store.exists(service, name, kind):
                raise NotFound("Saved account not found")

        targets = self.live_paths(service)

        for live_path in targets.values():
            if live_path.is_file():
                try:
                    shutil.copy2(live_path, backup_path(live_path))
                except OSError as exc:
                    raise VaultIOError(f"Failed to back up {live_path.name}: {exc}") from exc

        texts = {
            kind: self.store.read_profile_text(service, name, kind)
            for kind in targets
        }

        for kind, live_path in targets.items():
            atomic_write_text(live_path, texts[kind])

        self.logger.log_vault_event(
            EventType.PROFILE_SWITCHED,
            f"Switched {service} profile",
            details={"service": service, "name": name},
        )
        return name

    def delete(self, service: str, name: str) -> str:
        """Remove every stored blob of ``name``; NotFound if none existed."""
        validate_service(service)
        name = sanitize_name(name)

        deleted = False
        for kind in PROFILE_KINDS[service]:
            if self.store.remove(service, name, kind):
                deleted = True

        if not deleted:
            raise NotFound("Account not found")

        self.logger.log_vault_event(
            EventType.PROFILE_DELETED,
            f"Deleted {service} profile",
            details={"service": service, "name": name},
        )
        return name

    # ------------------------------------------------------------------
    # Live account summary
    # ------------------------------------------------------------------

    def _read_live_json(self, path: Path) -> Optional[Any]:
        if not path.is_file():
            return None
        try:
            return parse_json(read_text(path), path.name)
        except VaultError as exc:
            logger.warning("Unreadable live file %s: %s", path, exc)
            return None

    def current_accounts(self) -> Dict[str, Dict[str, Any]]:
        """Identity of the accounts the two tools are currently using."""
        config = self._read_live_json(self.claude_config_path())
        creds = self._read_live_json(self.live.claude_credentials)
        codex = self._read_live_json(self.live.codex_auth)

        claude_info: Dict[str, Any] = {"exists": False}
        oauth_account = config.get("oauthAccount") if isinstance(config, dict) else None
        if isinstance(oauth_account, dict) and oauth_account:
            oauth = creds.get("claudeAiOauth") if isinstance(creds, dict) else None
            if not isinstance(oauth, dict):
                oauth = {}
            claude_info = {
                "exists": True,
                "email": oauth_account.get("emailAddress") or "Unknown",
                "subscriptionType": oauth.get("subscriptionType") or "Unknown",
            }

        codex_info: Dict[str, Any] = {"exists": False}
        if codex:
            tokens = codex.get("tokens") if isinstance(codex, dict) else None
            id_token = tokens.get("id_token") if isinstance(tokens, dict) else None
            codex_info = {
                "exists": True,
                "email": email_from_token(id_token) or "Unknown",
                "planType": plan_from_token(id_token) or "Unknown",
            }

        return {"claude": claude_info, "codex": codex_info}
