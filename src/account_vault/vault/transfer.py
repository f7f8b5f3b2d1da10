"""Export and import of the whole vault as one JSON bundle.

Bundle shape::

    {
      "version": "1.0",
      "exportDate": "<ISO 8601>",
      "isEncrypted": true,
      "claude": {"<name>": {"credentials": ..., "config": ...}},
      "codex":  {"<name>": {"auth": ...}}
    }

Stored values are embedded exactly as they sit on disk, so envelopes travel
encrypted and the bundle inherits the vault's encryption state. On import an
envelope is only accepted if the current session password opens it.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List

from ..core import EventSeverity, EventType, get_audit_logger
from .encryption import EnvelopeCodec, is_envelope
from .errors import AuthenticationFailed, AuthenticationRequired, DecryptFailure, ValidationError
from .store import (
    PROFILE_KINDS,
    SERVICES,
    VaultStore,
    atomic_write_text,
    dump_json,
    parse_json,
    read_text,
    sanitize_name,
)

logger = logging.getLogger(__name__)

BUNDLE_VERSION = "1.0"


@dataclass
class ImportReport:
    imported: Dict[str, int] = field(default_factory=lambda: {s: 0 for s in SERVICES})
    rejected: List[Dict[str, str]] = field(default_factory=list)

    @property
    def message(self) -> str:
        text = (
            f"Imported {self.imported['claude']} Claude and "
            f"{self.imported['codex']} Codex accounts"
        )
        if self.rejected:
            text += f", rejected {len(self.rejected)}"
        return text

    def to_dict(self) -> dict:
        return {
            "imported": dict(self.imported),
            "rejected": list(self.rejected),
            "message": self.message,
        }


def build_export_bundle(store: VaultStore) -> Dict[str, Any]:
    """Collect every complete stored profile into an export bundle."""
    bundle: Dict[str, Any] = {
        "version": BUNDLE_VERSION,
        "exportDate": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
    }
    for service in SERVICES:
        accounts: Dict[str, Dict[str, Any]] = {}
        for name in store.list_profiles(service):
            kinds = PROFILE_KINDS[service]
            if not all(store.exists(service, name, kind) for kind in kinds):
                logger.warning("Skipping incomplete %s profile %r in export", service, name)
                continue
            accounts[name] = {
                kind: store.read_stored(service, name, kind) for kind in kinds
            }
        bundle[service] = accounts
    bundle["isEncrypted"] = store.session.is_unlocked
    return bundle


def export_to_file(store: VaultStore, path: Path) -> Dict[str, int]:
    """Write the export bundle to ``path``; returns per-service counts."""
    bundle = build_export_bundle(store)
    atomic_write_text(Path(path), dump_json(bundle))
    counts = {service: len(bundle[service]) for service in SERVICES}

    get_audit_logger().log_vault_event(
        EventType.PROFILES_EXPORTED,
        "Exported stored profiles",
        details={"counts": counts, "isEncrypted": bundle["isEncrypted"]},
    )
    return counts


def _check_envelopes(store: VaultStore, entry: Dict[str, Any]) -> None:
    """Every envelope in ``entry`` must open with the session password."""
    envelopes = [value for value in entry.values() if is_envelope(value)]
    if not envelopes:
        return
    if not store.session.is_unlocked:
        raise AuthenticationRequired("Unlock the vault before importing encrypted accounts")
    for envelope in envelopes:
        try:
            EnvelopeCodec.decrypt(envelope, store.session.password)
        except DecryptFailure:
            raise AuthenticationFailed(
                "Cannot decrypt imported account. Was it exported with a different password?"
            ) from None


def _import_entry(store: VaultStore, service: str, name: str, entry: Any) -> None:
    kinds = PROFILE_KINDS[service]
    if not isinstance(entry, dict) or any(kind not in entry for kind in kinds):
        raise ValidationError(f"Entry is missing one of: {', '.join(kinds)}")

    _check_envelopes(store, entry)

    # Resolve every path before writing anything
    for kind in kinds:
        store.resolve_path(service, name, kind)

    for kind in kinds:
        value = entry[kind]
        if is_envelope(value):
            store.write_stored(service, name, kind, value)
        else:
            store.write_profile(service, name, kind, value)


def import_bundle(store: VaultStore, bundle: Any) -> ImportReport:
    """
    Store every acceptable entry of ``bundle``.

    Entries are judged one by one: a rejected entry (bad name, password
    mismatch, locked session with envelopes) is reported and skipped, the
    rest are imported.

    Raises:
        ValidationError: the bundle does not have the expected structure.
    """
    if (
        not isinstance(bundle, dict)
        or not bundle.get("version")
        or not all(isinstance(bundle.get(service), dict) for service in SERVICES)
    ):
        raise ValidationError("Invalid backup file format")

    report = ImportReport()
    for service in SERVICES:
        for raw_name, entry in bundle[service].items():
            try:
                name = sanitize_name(raw_name)
                _import_entry(store, service, name, entry)
            except (ValidationError, AuthenticationRequired, AuthenticationFailed) as exc:
                logger.warning("Rejected imported %s account %r: %s", service, raw_name, exc)
                report.rejected.append({
                    "service": service,
                    "name": str(raw_name),
                    "reason": str(exc),
                    "kind": exc.kind,
                })
                continue
            report.imported[service] += 1

    get_audit_logger().log_event(
        event_type=EventType.PROFILES_IMPORTED,
        severity=EventSeverity.WARNING if report.rejected else EventSeverity.INFO,
        message="Vault: imported profiles",
        details={"imported": dict(report.imported), "rejected": len(report.rejected)},
    )
    return report


def import_from_file(store: VaultStore, path: Path) -> ImportReport:
    path = Path(path)
    return import_bundle(store, parse_json(read_text(path), path.name))
