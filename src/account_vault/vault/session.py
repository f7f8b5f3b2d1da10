"""In-memory holder for the session password.

The password unlocks envelope reads and writes for the lifetime of one
VaultSession. It is never persisted, logged, or exported; ``repr`` only
reports whether the session is unlocked.
"""

from typing import Optional

from .errors import AuthenticationRequired


class VaultSession:
    """Explicit session state passed to every component that touches envelopes."""

    def __init__(self, password: Optional[str] = None):
        self._password: Optional[str] = password

    @property
    def is_unlocked(self) -> bool:
        return self._password is not None

    @property
    def password(self) -> Optional[str]:
        return self._password

    def require_password(self) -> str:
        """Return the session password or raise AuthenticationRequired."""
        if self._password is None:
            raise AuthenticationRequired("Password required to read encrypted file")
        return self._password

    def unlock(self, password: str) -> None:
        self._password = password

    def lock(self) -> None:
        self._password = None

    def __repr__(self) -> str:
        state = "unlocked" if self.is_unlocked else "locked"
        return f"<VaultSession {state}>"
