"""Tagged handler outcomes."""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..errors import BuildError


@dataclass(frozen=True)
class HandlerError:
    """Structured failure reason: error kind plus message."""

    kind: str
    message: str

    @classmethod
    def from_exception(cls, error: BuildError) -> "HandlerError":
        return cls(kind=error.kind, message=error.message)

    def __str__(self) -> str:
        return f"{self.kind}: {self.message}"


@dataclass(frozen=True)
class HandlerResult:
    """
    Outcome of one handler run.

    Always check ``success`` before reading ``data``; a failed result
    carries ``error`` and no data.
    """

    success: bool
    data: Any = None
    error: Optional[HandlerError] = None

    @classmethod
    def ok(cls, data: Any) -> "HandlerResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: HandlerError) -> "HandlerResult":
        return cls(success=False, error=error)

    def to_dict(self) -> Dict[str, Any]:
        if self.success:
            return {"success": True, "data": self.data}
        return {
            "success": False,
            "error": {"kind": self.error.kind, "message": self.error.message},
        }
