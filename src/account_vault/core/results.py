"""Structured success/error values returned across the service boundary."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class OperationResult:
    """Outcome of an externally invoked vault operation.

    ``error_kind`` carries the taxonomy name (``ValidationError``,
    ``AuthenticationFailed``, ...) so callers can branch without parsing the
    message.
    """

    success: bool
    error: Optional[str] = None
    error_kind: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, **data: Any) -> "OperationResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, kind: str, **data: Any) -> "OperationResult":
        return cls(success=False, error=error, error_kind=kind, data=data)

    def to_dict(self) -> dict:
        result: Dict[str, Any] = {"success": self.success}
        if not self.success:
            result["error"] = self.error
            result["error_kind"] = self.error_kind
        result.update(self.data)
        return result
