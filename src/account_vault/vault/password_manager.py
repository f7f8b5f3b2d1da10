# Vault - Password Lifecycle
#
# The vault has at most one password. Its PasswordConfig
# ({salt, hash, iterations, algorithm}) is the "protected" flag: when the file
# exists, stored profiles are expected to be envelopes.
#
# The password itself is never stored; only a PBKDF2-HMAC-SHA512 hash of it.

import hmac
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..core import EventSeverity, EventType, get_audit_logger
from .encryption import EnvelopeCodec, is_envelope
from .errors import AuthenticationFailed, NotFound, ValidationError, VaultError
from .migration import MigrationEngine, MigrationReport
from .session import VaultSession
from .store import VaultStore, atomic_write_text, dump_json, parse_json, read_text

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 4
PASSWORD_ALGORITHM = "pbkdf2-sha512"


@dataclass(frozen=True)
class PasswordConfig:
    salt: str
    hash: str
    iterations: int
    algorithm: str = PASSWORD_ALGORITHM

    def to_dict(self) -> dict:
        return {
            "salt": self.salt,
            "hash": self.hash,
            "iterations": self.iterations,
            "algorithm": self.algorithm,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PasswordConfig":
        return cls(
            salt=data["salt"],
            hash=data["hash"],
            iterations=int(data.get("iterations") or EnvelopeCodec.PBKDF2_ITERATIONS),
            algorithm=data.get("algorithm", PASSWORD_ALGORITHM),
        )

    @classmethod
    def create(cls, password: str) -> "PasswordConfig":
        salt = EnvelopeCodec.generate_salt()
        digest = EnvelopeCodec.derive_key(password, salt)
        return cls(
            salt=salt.hex(),
            hash=digest.hex(),
            iterations=EnvelopeCodec.PBKDF2_ITERATIONS,
        )

    def matches(self, password: str) -> bool:
        """Recompute the hash with the stored salt/iterations; constant-time compare."""
        computed = EnvelopeCodec.derive_key(password, bytes.fromhex(self.salt), self.iterations)
        return hmac.compare_digest(computed, bytes.fromhex(self.hash))


def validate_new_password(password, label: str = "Password") -> str:
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"{label} must be at least {MIN_PASSWORD_LENGTH} characters")
    return password


class PasswordManager:
    """
    Configure, verify and change the vault password.

    Security:
    - Hash comparison is constant-time (hmac.compare_digest)
    - setup() encrypts any plaintext profiles retroactively
    - change() re-encrypts through the two-phase MigrationEngine protocol
    - Audit logging for every lifecycle event (never the password)
    """

    def __init__(
        self,
        config_path: Path,
        store: VaultStore,
        session: VaultSession,
        migration: Optional[MigrationEngine] = None,
    ):
        self.config_path = Path(config_path)
        self.store = store
        self.session = session
        self.migration = migration or MigrationEngine(store)
        self.logger = get_audit_logger()

    def is_configured(self) -> bool:
        return self.config_path.is_file()

    def load_config(self) -> PasswordConfig:
        if not self.is_configured():
            raise NotFound("No password configured")
        data = parse_json(read_text(self.config_path), self.config_path.name)
        try:
            return PasswordConfig.from_dict(data)
        except (KeyError, TypeError, ValueError, AttributeError):
            raise ValidationError("Password configuration is corrupt") from None

    def _write_config(self, password: str) -> None:
        config = PasswordConfig.create(password)
        atomic_write_text(self.config_path, dump_json(config.to_dict()))

    def has_orphaned_files(self) -> bool:
        """True when envelopes exist in the vault without a PasswordConfig."""
        for path in self.store.iter_files():
            try:
                if is_envelope(parse_json(read_text(path), path.name)):
                    return True
            except VaultError:
                continue
        return False

    def status(self) -> dict:
        configured = self.is_configured()
        return {
            "configured": configured,
            "hasOrphaned": (not configured) and self.has_orphaned_files(),
        }

    def setup(self, password: str) -> MigrationReport:
        """
        Set the vault password for the first time.

        Persists the PasswordConfig, unlocks the session and encrypts every
        existing plaintext profile.

        Raises:
            ValidationError: already configured, or password too short.
        """
        if self.is_configured():
            raise ValidationError("Password already configured")
        validate_new_password(password)

        self._write_config(password)
        self.session.unlock(password)
        report = self.migration.encrypt_all(password)

        self.logger.log_event(
            event_type=EventType.PASSWORD_SETUP,
            severity=EventSeverity.INFO if report.complete else EventSeverity.WARNING,
            message="Vault password configured",
            details=report.to_dict(),
        )
        return report

    def check(self, password: str) -> bool:
        """Compare ``password`` to the stored hash without touching the session."""
        config = self.load_config()
        if not isinstance(password, str):
            return False
        try:
            return config.matches(password)
        except ValueError:
            raise ValidationError("Password configuration is corrupt") from None

    def verify(self, password: str) -> bool:
        """
        Verify ``password`` and unlock the session on success.

        Raises:
            NotFound: no password configured.
        """
        if self.check(password):
            self.session.unlock(password)
            self.logger.log_vault_event(EventType.VAULT_UNLOCKED, "Session unlocked")
            return True

        self.logger.log_event(
            event_type=EventType.VAULT_UNLOCK_FAILED,
            severity=EventSeverity.WARNING,
            message="Vault: incorrect password",
        )
        return False

    def change(self, old_password: str, new_password: str) -> MigrationReport:
        """
        Re-encrypt the vault under ``new_password``.

        Raises:
            ValidationError: new password too short.
            AuthenticationFailed: old password wrong, or a stored file did
                not decrypt under it (no file has been modified).
        """
        validate_new_password(new_password, "New password")
        if not self.check(old_password):
            raise AuthenticationFailed("Current password is incorrect")

        report = self.migration.change_password(old_password, new_password)
        self._write_config(new_password)
        self.session.unlock(new_password)

        self.logger.log_event(
            event_type=EventType.PASSWORD_CHANGED,
            severity=EventSeverity.INFO,
            message="Vault password changed",
            details=report.to_dict(),
        )
        return report

    def lock(self) -> None:
        self.session.lock()
        self.logger.log_vault_event(EventType.VAULT_LOCKED, "Session locked")
