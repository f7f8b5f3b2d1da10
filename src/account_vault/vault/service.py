# Vault - Service Facade
#
# The single entry point external callers (CLI, any UI) use. Every public
# method returns an OperationResult; vault errors and OS errors are turned
# into {success: False, error, error_kind} and never escape as exceptions.
#
# One VaultService owns one VaultSession. All vault operations run under a
# re-entrant lock so bulk migrations and switches never interleave within
# the process.

import logging
import threading
from pathlib import Path
from typing import Any, Callable, Optional

from ..core import EventSeverity, EventType, OperationResult, Settings, get_audit_logger, load_settings
from ..usage.claude_usage import ClaudeUsageFetcher, get_claude_usage
from ..usage.codex_usage import get_codex_usage
from .errors import AuthenticationFailed, AuthenticationRequired, VaultError
from .migration import MigrationEngine
from .password_manager import PasswordManager
from .session import VaultSession
from .store import SERVICES, VaultStore
from .switcher import AccountSwitcher
from .transfer import export_to_file, import_from_file

logger = logging.getLogger(__name__)

AUTH_REQUIRED_MESSAGE = "Password authentication required. Please unlock the app first."


class VaultService:
    """
    Facade over the vault components.

    Usage::

        service = VaultService()
        service.verify_password("hunter22")
        result = service.switch_account("codex", "work")
        if not result.success:
            print(result.error_kind, result.error)
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        usage_fetcher: Optional[ClaudeUsageFetcher] = None,
    ):
        self.settings = settings or load_settings()
        paths = self.settings.paths

        self.session = VaultSession()
        self.store = VaultStore(paths.accounts_dir, self.session)
        self.migration = MigrationEngine(self.store)
        self.passwords = PasswordManager(
            paths.password_config, self.store, self.session, self.migration
        )
        self.switcher = AccountSwitcher(self.store, self.settings.live)
        self.usage_fetcher = usage_fetcher
        self.logger = get_audit_logger()

        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    def _run(self, operation: str, func: Callable[[], OperationResult]) -> OperationResult:
        with self._lock:
            try:
                return func()
            except VaultError as exc:
                logger.info("%s failed: %s: %s", operation, exc.kind, exc)
                return OperationResult.fail(str(exc), exc.kind)
            except OSError as exc:
                logger.error("%s failed with OS error: %s", operation, exc)
                self.logger.log_event(
                    event_type=EventType.VAULT_ERROR,
                    severity=EventSeverity.ALERT,
                    message=f"Vault: {operation} failed",
                    details={"error": str(exc)},
                )
                return OperationResult.fail(str(exc), "IOError")

    def _require_authentication(self) -> None:
        """Protected vaults need an unlocked session for profile operations."""
        if self.passwords.is_configured() and not self.session.is_unlocked:
            raise AuthenticationRequired(AUTH_REQUIRED_MESSAGE)

    @property
    def is_unlocked(self) -> bool:
        return self.session.is_unlocked

    # ------------------------------------------------------------------
    # Password lifecycle
    # ------------------------------------------------------------------

    def password_status(self) -> OperationResult:
        def op():
            status = self.passwords.status()
            return OperationResult.ok(unlocked=self.session.is_unlocked, **status)
        return self._run("password_status", op)

    def setup_password(self, password: str) -> OperationResult:
        def op():
            report = self.passwords.setup(password)
            return OperationResult.ok(migration=report.to_dict())
        return self._run("setup_password", op)

    def verify_password(self, password: str) -> OperationResult:
        def op():
            if not self.passwords.verify(password):
                raise AuthenticationFailed("Incorrect password")
            return OperationResult.ok()
        return self._run("verify_password", op)

    def change_password(self, old_password: str, new_password: str) -> OperationResult:
        def op():
            report = self.passwords.change(old_password, new_password)
            return OperationResult.ok(migration=report.to_dict())
        return self._run("change_password", op)

    def lock(self) -> OperationResult:
        def op():
            self.passwords.lock()
            return OperationResult.ok()
        return self._run("lock", op)

    # ------------------------------------------------------------------
    # Profiles
    # ------------------------------------------------------------------

    def list_accounts(self) -> OperationResult:
        def op():
            return OperationResult.ok(
                accounts={service: self.store.list_profiles(service) for service in SERVICES}
            )
        return self._run("list_accounts", op)

    def current_accounts(self) -> OperationResult:
        def op():
            return OperationResult.ok(current=self.switcher.current_accounts())
        return self._run("current_accounts", op)

    def save_account(self, service: str, name: Any) -> OperationResult:
        def op():
            self._require_authentication()
            saved = self.switcher.save(service, name)
            return OperationResult.ok(service=service, name=saved)
        return self._run("save_account", op)

    def switch_account(self, service: str, name: Any) -> OperationResult:
        def op():
            self._require_authentication()
            switched = self.switcher.switch(service, name)
            return OperationResult.ok(service=service, name=switched)
        return self._run("switch_account", op)

    def delete_account(self, service: str, name: Any) -> OperationResult:
        def op():
            deleted = self.switcher.delete(service, name)
            return OperationResult.ok(service=service, name=deleted)
        return self._run("delete_account", op)

    # ------------------------------------------------------------------
    # Export / import
    # ------------------------------------------------------------------

    def export_accounts(self, path: Path) -> OperationResult:
        def op():
            self._require_authentication()
            counts = export_to_file(self.store, Path(path))
            return OperationResult.ok(
                path=str(path), counts=counts, isEncrypted=self.session.is_unlocked
            )
        return self._run("export_accounts", op)

    def import_accounts(self, path: Path) -> OperationResult:
        def op():
            self._require_authentication()
            report = import_from_file(self.store, Path(path))
            return OperationResult.ok(**report.to_dict())
        return self._run("import_accounts", op)

    # ------------------------------------------------------------------
    # Usage
    # ------------------------------------------------------------------

    def usage_stats(self) -> OperationResult:
        """Usage for both active accounts; a service without data reports None."""
        def op():
            claude = get_claude_usage(self.settings, self.usage_fetcher)
            codex = get_codex_usage(self.settings)
            return OperationResult.ok(
                claude=claude.to_dict() if claude else None,
                codex=codex.to_dict() if codex else None,
            )
        return self._run("usage_stats", op)
