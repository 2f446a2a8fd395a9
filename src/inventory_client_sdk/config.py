from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Iterable

from dotenv import load_dotenv


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class ClientConfig:
    env_name: str
    api_base_url: str
    timeout_seconds: float = 15.0
    verify_ssl: bool = True
    max_connections: int = 20
    token_expiry_leeway_seconds: int = 60

    def __post_init__(self) -> None:
        object.__setattr__(self, "api_base_url", self.api_base_url.strip().rstrip("/"))


def _require(values: dict[str, str | None], required: Iterable[str]) -> None:
    missing = [key for key in required if not values.get(key)]
    if missing:
        raise ConfigError(f"Missing required config values: {', '.join(missing)}")


def _coerce_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


def _read_float(name: str, default: str) -> float:
    raw = os.getenv(name, default)
    try:
        return float(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid {name}: expected a number, got {raw!r}") from exc


def _read_int(name: str, default: str) -> int:
    raw = os.getenv(name, default)
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid {name}: expected an integer, got {raw!r}") from exc


def _validate(condition: bool, message: str) -> None:
    if not condition:
        raise ConfigError(message)


def load_config(env_file: str | None = None) -> ClientConfig:
    """Load config from environment with optional .env override."""
    load_dotenv(env_file)

    env_name = (os.getenv("INVENTORY_ENV") or "dev").strip()
    env_key = env_name.upper()

    api_base_url = (
        (os.getenv(f"INVENTORY_API_BASE_URL_{env_key}") or "").strip()
        or (os.getenv("INVENTORY_API_BASE_URL") or "").strip()
    )
    _require({"INVENTORY_API_BASE_URL": api_base_url}, ["INVENTORY_API_BASE_URL"])

    timeout_seconds = _read_float("INVENTORY_TIMEOUT_SECONDS", "15")
    _validate(
        timeout_seconds > 0,
        f"Invalid INVENTORY_TIMEOUT_SECONDS: expected > 0, got {timeout_seconds}",
    )

    max_connections = _read_int("INVENTORY_MAX_CONNECTIONS", "20")
    _validate(
        max_connections >= 1,
        f"Invalid INVENTORY_MAX_CONNECTIONS: expected >= 1, got {max_connections}",
    )

    leeway = _read_int("INVENTORY_TOKEN_EXPIRY_LEEWAY_SECONDS", "60")
    _validate(
        leeway >= 0,
        f"Invalid INVENTORY_TOKEN_EXPIRY_LEEWAY_SECONDS: expected >= 0, got {leeway}",
    )

    verify_ssl = _coerce_bool(os.getenv("INVENTORY_VERIFY_SSL"), True)

    return ClientConfig(
        env_name=env_name,
        api_base_url=api_base_url,
        timeout_seconds=timeout_seconds,
        verify_ssl=verify_ssl,
        max_connections=max_connections,
        token_expiry_leeway_seconds=leeway,
    )
