# Core module - shared utilities
#
# - Audit logging (structlog)
# - Configuration (paths, environment)
# - Structured operation results

from .audit_log import (
    AuditLogger,
    EventSeverity,
    EventType,
    get_audit_logger,
    log_vault_event,
    set_audit_logger,
)
from .config import LivePaths, Settings, VaultPaths, load_settings
from .results import OperationResult

__all__ = [
    # Audit Logging
    "AuditLogger",
    "EventType",
    "EventSeverity",
    "get_audit_logger",
    "set_audit_logger",
    "log_vault_event",
    # Configuration
    "Settings",
    "VaultPaths",
    "LivePaths",
    "load_settings",
    # Results
    "OperationResult",
]
