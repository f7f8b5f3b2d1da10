# Vault module - encrypted credential profile storage
#
# VaultService (vault/service.py) is the facade; it is imported from the
# top-level package rather than here because it depends on the usage module.

from .encryption import Envelope, EnvelopeCodec, PlaintextBlob, classify_blob, is_envelope
from .errors import (
    AuthenticationFailed,
    AuthenticationRequired,
    DecryptFailure,
    NotFound,
    PathTraversal,
    RemoteUnavailable,
    ValidationError,
    VaultError,
    VaultIOError,
)
from .migration import MigrationEngine, MigrationReport
from .password_manager import PasswordConfig, PasswordManager
from .session import VaultSession
from .store import SERVICES, VaultStore, sanitize_name
from .switcher import AccountSwitcher
from .transfer import ImportReport, build_export_bundle, import_bundle

__all__ = [
    "Envelope",
    "EnvelopeCodec",
    "PlaintextBlob",
    "classify_blob",
    "is_envelope",
    "VaultError",
    "ValidationError",
    "AuthenticationRequired",
    "AuthenticationFailed",
    "NotFound",
    "PathTraversal",
    "VaultIOError",
    "DecryptFailure",
    "RemoteUnavailable",
    "MigrationEngine",
    "MigrationReport",
    "PasswordConfig",
    "PasswordManager",
    "VaultSession",
    "SERVICES",
    "VaultStore",
    "sanitize_name",
    "AccountSwitcher",
    "ImportReport",
    "build_export_bundle",
    "import_bundle",
]
