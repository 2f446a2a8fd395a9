from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ApiError(Exception):
    code: str
    message: str
    details: object | None = None
    status_code: int = 0
    raw_payload: object | None = None

    def __str__(self) -> str:
        return self.message


class TransportError(ApiError):
    """Network/transport failure before an HTTP response was returned."""


class AuthError(ApiError):
    """The session could not be (re)authorized; the user must sign in again."""


class DecodeError(ApiError):
    """A successful response carried a body that could not be decoded."""


class RequestError(ApiError):
    """The server answered with a non-2xx status."""


class UnauthorizedError(RequestError):
    """401 on a call that does not carry session credentials, e.g. bad login."""


class ForbiddenError(RequestError):
    pass


class NotFoundError(RequestError):
    pass


class ValidationError(RequestError):
    pass


class ConflictError(RequestError):
    """409 or conflict-style errors."""


class RateLimitError(RequestError):
    """429 throttling error."""


class ServerError(RequestError):
    """5xx server-side failures."""
