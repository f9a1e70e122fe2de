"""
Outcome envelope returned by every engine operation.
"""

from typing import Any

from pydantic import BaseModel

from topup_store.errors import ErrorKind


class OperationResult(BaseModel):
    success: bool
    data: Any = None
    error_kind: ErrorKind | None = None
    reason: str | None = None
    message: str | None = None

    @classmethod
    def ok(cls, data: Any = None) -> "OperationResult":
        return cls(success=True, data=data)

    @classmethod
    def failure(
        cls, kind: ErrorKind, message: str, reason: str | None = None
    ) -> "OperationResult":
        return cls(
            success=False, error_kind=kind, reason=reason, message=message
        )
