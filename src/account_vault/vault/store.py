# Vault - Profile Storage
#
# Layout under the vault root (accounts dir):
#   claude/<name>-credentials.json + claude/<name>-config.json
#   codex/<name>.json
#
# Every stored file is either the exact JSON text of a live file or an
# Envelope wrapping that text. Reads decrypt and writes encrypt only while
# the session is unlocked.

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Iterator, List

from .encryption import Envelope, EnvelopeCodec, classify_blob
from .errors import NotFound, PathTraversal, ValidationError, VaultIOError
from .session import VaultSession

logger = logging.getLogger(__name__)

SERVICES = ("claude", "codex")

# kind -> file suffix appended to the account name
PROFILE_KINDS: Dict[str, Dict[str, str]] = {
    "claude": {
        "credentials": "-credentials.json",
        "config": "-config.json",
    },
    "codex": {
        "auth": ".json",
    },
}

# The suffix whose presence marks a listed profile
LISTING_KIND = {"claude": "config", "codex": "auth"}

MAX_NAME_LENGTH = 100
_DISALLOWED_NAME_CHARS = re.compile(r"[^A-Za-z0-9 _-]")


def validate_service(service: str) -> str:
    """Service must be exactly one of SERVICES."""
    if service not in SERVICES:
        raise ValidationError(f"Invalid service: {service}")
    return service


def sanitize_name(raw: Any) -> str:
    """
    Strip an account name down to ``[A-Za-z0-9 _-]`` and trim it.

    Raises:
        ValidationError: not a string, empty, nothing left after stripping,
            or longer than MAX_NAME_LENGTH.
    """
    if not isinstance(raw, str) or len(raw) == 0:
        raise ValidationError("Account name must be a non-empty string")
    sanitized = _DISALLOWED_NAME_CHARS.sub("", raw).strip()
    if not sanitized:
        raise ValidationError("Account name contains only invalid characters")
    if len(sanitized) > MAX_NAME_LENGTH:
        raise ValidationError(f"Account name too long (max {MAX_NAME_LENGTH} characters)")
    return sanitized


def ensure_path_within(path: Path, base_dir: Path) -> Path:
    """Resolve ``path`` and require it to sit strictly inside ``base_dir``."""
    resolved = Path(os.path.realpath(path))
    resolved_base = Path(os.path.realpath(base_dir))
    if resolved == resolved_base or resolved_base not in resolved.parents:
        raise PathTraversal("Path traversal detected")
    return resolved


def atomic_write_text(path: Path, text: str) -> None:
    """Write via a sibling temp file + os.replace, owner read/write only."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(path.name + ".tmp")
    try:
        with open(tmp_path, "w", encoding="utf-8", newline="") as f:
            f.write(text)
        try:
            os.chmod(tmp_path, 0o600)
        except OSError:
            logger.warning("Could not restrict permissions on %s", tmp_path)
        os.replace(tmp_path, path)
    except OSError as exc:
        if tmp_path.exists():
            tmp_path.unlink()
        raise VaultIOError(f"Failed to write {path.name}: {exc}") from exc


def read_text(path: Path) -> str:
    try:
        with open(path, "r", encoding="utf-8", newline="") as f:
            return f.read()
    except FileNotFoundError:
        raise NotFound(f"File not found: {Path(path).name}") from None
    except UnicodeDecodeError:
        raise VaultIOError(f"{Path(path).name} is not valid UTF-8 text") from None
    except OSError as exc:
        raise VaultIOError(f"Failed to read {Path(path).name}: {exc}") from exc


def parse_json(text: str, source: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        raise ValidationError(f"{source} is not valid JSON") from None


def dump_json(value: Any) -> str:
    return json.dumps(value, indent=2)


class VaultStore:
    """
    Named profile storage per service.

    Security:
    - Account names are sanitized before they reach the filesystem
    - Every resolved path is re-checked to lie inside the service directory
    - Envelope contents are only readable with the session password
    """

    def __init__(self, accounts_dir: Path, session: VaultSession):
        self.accounts_dir = Path(accounts_dir)
        self.session = session

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def service_dir(self, service: str) -> Path:
        return self.accounts_dir / validate_service(service)

    def resolve_path(self, service: str, name: str, kind: str) -> Path:
        """
        Build the on-disk path for one profile blob.

        The name is expected to be sanitized already; containment is still
        verified on the resolved path.
        """
        suffix = PROFILE_KINDS[validate_service(service)].get(kind)
        if suffix is None:
            raise ValidationError(f"Invalid profile kind for {service}: {kind}")
        base = self.service_dir(service)
        return ensure_path_within(base / f"{name}{suffix}", base)

    def profile_paths(self, service: str, name: str) -> Dict[str, Path]:
        """Paths of every blob making up one profile, keyed by kind."""
        return {
            kind: self.resolve_path(service, name, kind)
            for kind in PROFILE_KINDS[validate_service(service)]
        }

    def exists(self, service: str, name: str, kind: str) -> bool:
        return self.resolve_path(service, name, kind).is_file()

    # ------------------------------------------------------------------
    # Enumeration
    # ------------------------------------------------------------------

    def list_profiles(self, service: str) -> List[str]:
        """Names of stored profiles for ``service`` (order not significant)."""
        directory = self.service_dir(service)
        if not directory.is_dir():
            return []
        suffix = PROFILE_KINDS[service][LISTING_KIND[service]]
        names = []
        for entry in directory.iterdir():
            if entry.is_file() and entry.name.endswith(suffix):
                names.append(entry.name[: -len(suffix)])
        return sorted(names)

    def iter_files(self) -> Iterator[Path]:
        """Every stored ``.json`` file under the vault root."""
        for service in SERVICES:
            directory = self.accounts_dir / service
            if not directory.is_dir():
                continue
            for entry in sorted(directory.iterdir()):
                if entry.is_file() and entry.suffix == ".json":
                    yield entry

    # ------------------------------------------------------------------
    # Raw stored values (envelopes untouched)
    # ------------------------------------------------------------------

    def read_stored(self, service: str, name: str, kind: str) -> Any:
        path = self.resolve_path(service, name, kind)
        return parse_json(read_text(path), path.name)

    def write_stored(self, service: str, name: str, kind: str, value: Any) -> Path:
        path = self.resolve_path(service, name, kind)
        atomic_write_text(path, dump_json(value))
        return path

    def remove(self, service: str, name: str, kind: str) -> bool:
        path = self.resolve_path(service, name, kind)
        if not path.is_file():
            return False
        try:
            path.unlink()
        except OSError as exc:
            raise VaultIOError(f"Failed to delete {path.name}: {exc}") from exc
        return True

    # ------------------------------------------------------------------
    # Profile contents (transparent decryption / encryption)
    # ------------------------------------------------------------------

    def decode_text(self, text: str, source: str) -> str:
        """Return the plaintext JSON text held by a stored file's contents."""
        blob = classify_blob(parse_json(text, source))
        if isinstance(blob, Envelope):
            return EnvelopeCodec.decrypt(blob, self.session.require_password())
        return text

    def encode_text(self, text: str) -> str:
        """Stored representation of ``text`` under the current session."""
        if self.session.is_unlocked:
            envelope = EnvelopeCodec.encrypt(text, self.session.password)
            return dump_json(envelope.to_dict())
        return text

    def read_profile_text(self, service: str, name: str, kind: str) -> str:
        path = self.resolve_path(service, name, kind)
        return self.decode_text(read_text(path), path.name)

    def read_profile(self, service: str, name: str, kind: str) -> Any:
        return parse_json(self.read_profile_text(service, name, kind), name)

    def write_profile_text(self, service: str, name: str, kind: str, text: str) -> Path:
        """Store JSON text, encrypted when a session password is set."""
        parse_json(text, f"{service} {kind} for {name}")
        path = self.resolve_path(service, name, kind)
        atomic_write_text(path, self.encode_text(text))
        return path

    def write_profile(self, service: str, name: str, kind: str, data: Any) -> Path:
        return self.write_profile_text(service, name, kind, dump_json(data))
