"""Outcome of a write-through action, returned instead of raising to the UI."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from bookstall.shared.core.errors import ApiError, ErrorInfo


@dataclass(frozen=True)
class ActionResult:
    ok: bool
    error: Optional[ErrorInfo] = None
    item: Any = None

    @classmethod
    def success(cls, item: Any = None) -> "ActionResult":
        return cls(ok=True, item=item)

    @classmethod
    def failure(cls, exc: ApiError) -> "ActionResult":
        return cls(ok=False, error=ErrorInfo.from_exception(exc))
