"""
Error taxonomy shared by the remote client, coordinator and bootstrap.
"""

from enum import Enum


class ErrorKind(str, Enum):
    NOT_AUTHENTICATED = "NotAuthenticated"
    NOT_FOUND = "NotFound"
    UNAUTHORIZED = "Unauthorized"
    INVALID_INPUT = "InvalidInput"
    BUSY = "Busy"
    REMOTE_UNAVAILABLE = "RemoteUnavailable"
    CANCELLED = "Cancelled"


class MarketError(Exception):
    """Raised where a caller cannot continue (bad wire data, provider failure)."""

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __repr__(self) -> str:
        return f"<MarketError(kind={self.kind.value}, message={self.message!r})>"


class AuthError(MarketError):
    """Hard identity-provider failure. Cancellation is not an AuthError."""

    def __init__(self, message: str):
        super().__init__(ErrorKind.NOT_AUTHENTICATED, message)


# Remote services answer with free text; order matters (first match wins).
_REMOTE_ERROR_KEYWORDS: list[tuple[str, ErrorKind]] = [
    ("not found", ErrorKind.NOT_FOUND),
    ("unauthorized", ErrorKind.UNAUTHORIZED),
    ("authentication required", ErrorKind.NOT_AUTHENTICATED),
    ("not authenticated", ErrorKind.NOT_AUTHENTICATED),
    ("your own", ErrorKind.UNAUTHORIZED),
    ("already purchased", ErrorKind.UNAUTHORIZED),
    ("access denied", ErrorKind.UNAUTHORIZED),
    ("must purchase", ErrorKind.UNAUTHORIZED),
    ("cannot be empty", ErrorKind.INVALID_INPUT),
    ("exceed", ErrorKind.INVALID_INPUT),
    ("invalid", ErrorKind.INVALID_INPUT),
    ("too many", ErrorKind.INVALID_INPUT),
    ("too long", ErrorKind.INVALID_INPUT),
    ("must be between", ErrorKind.INVALID_INPUT),
    ("already exists", ErrorKind.INVALID_INPUT),
    ("already liked", ErrorKind.INVALID_INPUT),
    ("was not liked", ErrorKind.INVALID_INPUT),
]


def classify_remote_error(message: str | None) -> ErrorKind:
    """Map a remote error string to a kind. Unrecognized rejections are InvalidInput."""
    text = (message or "").lower()
    for keyword, kind in _REMOTE_ERROR_KEYWORDS:
        if keyword in text:
            return kind
    return ErrorKind.INVALID_INPUT
