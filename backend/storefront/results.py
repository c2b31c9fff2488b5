from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .errors import StorefrontError


@dataclass
class ActionResult:
    """
    Outcome of a client action, shaped for inline display.

    ok=False results carry the error message and its stable code
    (e.g. "duplicate_username", "unauthenticated").
    """
    ok: bool
    data: Any = None
    error: str | None = None
    code: str | None = None
    details: dict = field(default_factory=dict)

    @classmethod
    def success(cls, data: Any = None) -> "ActionResult":
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, exc: StorefrontError) -> "ActionResult":
        return cls(ok=False, error=str(exc), code=exc.code, details=dict(exc.details))

    def to_dict(self) -> dict:
        if self.ok:
            return {"ok": True, "data": self.data}
        return {"ok": False, "error": self.error, "code": self.code, "details": self.details}
