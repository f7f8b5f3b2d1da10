# Account Vault - Main Package
#
# Encrypted local vault of named credential profiles for the claude and
# codex CLIs, with one-command switching of the live account and usage
# estimates for the active accounts.

__version__ = "0.1.0"
__author__ = "Account Vault Team"
__description__ = "Encrypted credential profile vault for the claude and codex CLIs"

from .core import (
    EventSeverity,
    EventType,
    OperationResult,
    Settings,
    get_audit_logger,
    load_settings,
)
from .vault.service import VaultService

__all__ = [
    "__version__",
    "VaultService",
    "OperationResult",
    "Settings",
    "load_settings",
    "EventType",
    "EventSeverity",
    "get_audit_logger",
]
