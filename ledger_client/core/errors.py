from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    AUTH_EXPIRED = "auth_expired"
    HTTP_ERROR = "http_error"
    NETWORK_ERROR = "network_error"
    MALFORMED_RESPONSE = "malformed_response"


@dataclass(eq=False)
class ApiError(Exception):
    """The single failure type surfaced to callers of the client.

    `status` is 0 when no response was received. `details` carries the parsed
    error body (or `{"raw": text}` for non-JSON bodies) so callers can branch
    without re-parsing.
    """

    message: str
    status: int = 0
    kind: ErrorKind = ErrorKind.HTTP_ERROR
    details: Any | None = None
    code: str | None = None

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.status:
            return f"{self.message} (HTTP {self.status})"
        return self.message


class AuthExpiredError(ApiError):
    def __init__(
        self,
        message: str = "Unauthorized",
        *,
        status: int = 401,
        details: Any | None = None,
        code: str | None = None,
    ):
        super().__init__(message=message, status=status, kind=ErrorKind.AUTH_EXPIRED, details=details, code=code)


class HttpError(ApiError):
    def __init__(
        self,
        message: str,
        *,
        status: int,
        details: Any | None = None,
        code: str | None = None,
    ):
        super().__init__(message=message, status=status, kind=ErrorKind.HTTP_ERROR, details=details, code=code)


class NetworkError(ApiError):
    def __init__(self, message: str = "Network request failed", *, details: Any | None = None):
        super().__init__(message=message, status=0, kind=ErrorKind.NETWORK_ERROR, details=details)


class MalformedResponseError(ApiError):
    def __init__(
        self,
        message: str = "Malformed response body",
        *,
        status: int = 0,
        details: Any | None = None,
    ):
        super().__init__(message=message, status=status, kind=ErrorKind.MALFORMED_RESPONSE, details=details)
