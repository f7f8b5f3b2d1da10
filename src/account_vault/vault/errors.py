"""
Vault Exception Classes
"""


class VaultError(Exception):
    """Base exception for vault operations"""
    kind = "VaultError"


class ValidationError(VaultError):
    """Raised when a service name, account name or input document is malformed"""
    kind = "ValidationError"


class AuthenticationRequired(VaultError):
    """Raised when a password is needed but the session is locked"""
    kind = "AuthenticationRequired"


class AuthenticationFailed(VaultError):
    """Raised when a supplied password is wrong"""
    kind = "AuthenticationFailed"


class NotFound(VaultError):
    """Raised when a live or stored file is missing"""
    kind = "NotFound"


class PathTraversal(VaultError):
    """Raised when a resolved profile path escapes its service directory"""
    kind = "PathTraversal"


class VaultIOError(VaultError):
    """Raised when reading or writing a vault or live file fails"""
    kind = "IOError"


class DecryptFailure(VaultError):
    """Raised when an envelope cannot be authenticated or is corrupt"""
    kind = "DecryptFailure"


class RemoteUnavailable(VaultError):
    """Raised when usage telemetry could not be fetched"""
    kind = "RemoteUnavailable"
