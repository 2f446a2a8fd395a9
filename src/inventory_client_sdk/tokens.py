from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any

from jose import JWTError, jwt


@dataclass(frozen=True)
class TokenPair:
    access_token: str | None = None
    refresh_token: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.access_token and not self.refresh_token


def decode_claims(token: str) -> dict[str, Any] | None:
    """Read a JWT payload without verifying it. Returns None for opaque tokens."""
    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError:
        return None
    return claims if isinstance(claims, dict) else None


def seconds_until_expiry(token: str, now: float | None = None) -> float | None:
    claims = decode_claims(token)
    if not claims:
        return None
    exp = claims.get("exp")
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        return None
    current = time.time() if now is None else now
    return float(exp) - current


def is_token_expired(
    token: str | None,
    *,
    leeway_seconds: float = 60,
    is_refresh_token: bool = False,
    now: float | None = None,
) -> bool:
    """Client-side expiry check.

    Missing or undecodable tokens count as expired. Refresh tokens without an
    ``exp`` claim never expire; access tokens without one are expired.
    """
    if not token:
        return True
    claims = decode_claims(token)
    if claims is None:
        return True
    remaining = seconds_until_expiry(token, now=now)
    if remaining is None:
        return not is_refresh_token
    return remaining < leeway_seconds


def is_decodable_and_expired(token: str, *, leeway_seconds: float = 60, now: float | None = None) -> bool:
    """True only when the token carries an ``exp`` claim that has passed.

    Opaque tokens are left for the server to judge.
    """
    remaining = seconds_until_expiry(token, now=now)
    if remaining is None:
        return False
    return remaining < leeway_seconds
