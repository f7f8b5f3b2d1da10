# Vault - Bulk Migration
#
# encrypt_all:     plaintext vault → envelopes (after a password is first set)
# change_password: envelopes under old password → envelopes under new password
#
# change_password is two-phase. Phase 1 reads and decrypts every stored file
# into memory; any failure aborts before a single write. Phase 2 re-encrypts
# and overwrites. Atomicity relies on the VaultService lock, not on the
# filesystem: a crash during phase 2 can leave a subset re-encrypted.

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Tuple

from ..core import EventSeverity, EventType, get_audit_logger
from .encryption import Envelope, EnvelopeCodec, classify_blob
from .errors import AuthenticationFailed, DecryptFailure, VaultError, VaultIOError
from .store import VaultStore, atomic_write_text, dump_json, parse_json, read_text

logger = logging.getLogger(__name__)


@dataclass
class MigrationReport:
    """What a bulk pass did to each stored file."""

    encrypted: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: List[Dict[str, str]] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.failed

    def to_dict(self) -> dict:
        return {
            "encrypted": len(self.encrypted),
            "skipped": len(self.skipped),
            "failed": list(self.failed),
        }


def _label(path: Path) -> str:
    """``service/file`` label for logs and reports."""
    return f"{path.parent.name}/{path.name}"


class MigrationEngine:
    """Bulk encrypt / re-encrypt over everything a VaultStore holds."""

    def __init__(self, store: VaultStore):
        self.store = store

    def encrypt_all(self, password: str) -> MigrationReport:
        """
        Encrypt every plaintext file under the vault root.

        Files already holding an envelope are skipped. A file that fails is
        logged and reported; the pass continues with the remaining files.
        """
        report = MigrationReport()
        for path in self.store.iter_files():
            label = _label(path)
            try:
                text = read_text(path)
                blob = classify_blob(parse_json(text, path.name))
                if isinstance(blob, Envelope):
                    report.skipped.append(label)
                    continue
                envelope = EnvelopeCodec.encrypt(text, password)
                atomic_write_text(path, dump_json(envelope.to_dict()))
                report.encrypted.append(label)
            except VaultError as exc:
                logger.error("Error migrating %s: %s", label, exc)
                report.failed.append({"file": label, "error": str(exc)})

        if report.failed:
            logger.warning(
                "Encryption pass left %d file(s) unencrypted", len(report.failed)
            )

        get_audit_logger().log_event(
            event_type=EventType.MIGRATION_COMPLETED,
            severity=EventSeverity.ALERT if report.failed else EventSeverity.INFO,
            message="Vault: encryption pass finished",
            details=report.to_dict(),
        )
        return report

    def change_password(self, old_password: str, new_password: str) -> MigrationReport:
        """
        Re-encrypt every stored file from ``old_password`` to ``new_password``.

        Raises:
            AuthenticationFailed: a file did not decrypt under ``old_password``.
                Nothing has been written.
            VaultIOError: a file could not be read. Nothing has been written.
        """
        # Phase 1: read and decrypt everything into memory
        contents: List[Tuple[Path, str]] = []
        for path in self.store.iter_files():
            label = _label(path)
            try:
                text = read_text(path)
                blob = classify_blob(parse_json(text, path.name))
                if isinstance(blob, Envelope):
                    plaintext = EnvelopeCodec.decrypt(blob, old_password)
                else:
                    plaintext = text
            except DecryptFailure as exc:
                raise AuthenticationFailed(f"Failed to decrypt {label}: {exc}") from exc
            except VaultError as exc:
                raise VaultIOError(f"Failed to read {label}: {exc}") from exc
            contents.append((path, plaintext))

        # Phase 2: re-encrypt and overwrite
        report = MigrationReport()
        for path, plaintext in contents:
            envelope = EnvelopeCodec.encrypt(plaintext, new_password)
            atomic_write_text(path, dump_json(envelope.to_dict()))
            report.encrypted.append(_label(path))
        return report
