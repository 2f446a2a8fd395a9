from __future__ import annotations

from typing import Mapping

import httpx

from .exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    RateLimitError,
    RequestError,
    ServerError,
    UnauthorizedError,
    ValidationError,
)


def generic_message(status_code: int) -> str:
    return f"request failed with status {status_code}"


def map_error(status_code: int, payload: Mapping[str, object] | None) -> RequestError:
    payload = payload or {}
    raw_message = payload.get("message")
    message = raw_message if isinstance(raw_message, str) and raw_message else generic_message(status_code)
    code = str(payload.get("code") or "HTTP_ERROR")
    mapped: type[RequestError]
    if status_code == 401:
        mapped = UnauthorizedError
    elif status_code == 403:
        mapped = ForbiddenError
    elif status_code == 404:
        mapped = NotFoundError
    elif status_code in {400, 422}:
        mapped = ValidationError
    elif status_code == 409:
        mapped = ConflictError
    elif status_code == 429:
        mapped = RateLimitError
    elif status_code >= 500:
        mapped = ServerError
    else:
        mapped = RequestError
    return mapped(
        code=code,
        message=message,
        details=payload.get("details"),
        status_code=status_code,
        raw_payload=dict(payload) or None,
    )


def error_from_response(response: httpx.Response) -> RequestError:
    payload: Mapping[str, object] | None = None
    if response.content:
        try:
            parsed = response.json()
        except ValueError:
            parsed = None
        if isinstance(parsed, dict):
            payload = parsed
    return map_error(response.status_code, payload)
