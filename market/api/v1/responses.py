"""
Translate RemoteResult failures into HTTP errors for the presentation bridge.
"""

from typing import Any

from fastapi import HTTPException, status

from market.core.errors import ErrorKind
from market.schemas.envelope import RemoteResult

STATUS_BY_KIND = {
    ErrorKind.NOT_AUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.UNAUTHORIZED: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.BUSY: status.HTTP_409_CONFLICT,
    ErrorKind.CANCELLED: status.HTTP_409_CONFLICT,
    ErrorKind.INVALID_INPUT: status.HTTP_422_UNPROCESSABLE_CONTENT,
    ErrorKind.REMOTE_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def unwrap(result: RemoteResult) -> Any:
    """Return data on success; otherwise raise with the remote's message kept verbatim."""
    if result.success:
        return result.data
    kind = result.kind or ErrorKind.INVALID_INPUT
    raise HTTPException(
        status_code=STATUS_BY_KIND[kind],
        detail={"kind": kind.value, "error": result.error},
    )
