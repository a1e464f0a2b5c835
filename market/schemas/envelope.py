"""Uniform success/error envelope returned by every remote call and mutation."""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel

from market.core.errors import ErrorKind, classify_remote_error

T = TypeVar("T")


class RemoteResult(BaseModel, Generic[T]):
    success: bool
    data: T | None = None
    error: str | None = None
    kind: ErrorKind | None = None

    @classmethod
    def ok(cls, data: Any = None) -> "RemoteResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, kind: ErrorKind, error: str) -> "RemoteResult":
        return cls(success=False, error=error, kind=kind)

    @classmethod
    def rejected(cls, error: str | None) -> "RemoteResult":
        """Remote answered success=false. Keep its message verbatim."""
        message = error or "Unknown error"
        return cls(success=False, error=message, kind=classify_remote_error(message))
