from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

_FORBIDDEN_KEYS = {
    "token",
    "access_token",
    "refresh_token",
    "accesstoken",
    "refreshtoken",
    "password",
    "authorization",
}


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def configure_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(level=level, format="%(message)s")


def _validate_payload(payload: dict[str, Any]) -> None:
    illegal = sorted(key for key in payload if key.lower() in _FORBIDDEN_KEYS)
    if illegal:
        raise ValueError(f"Credential-like keys are forbidden in log events: {illegal}")


def log_event(logger: logging.Logger, event: str, level: int = logging.INFO, **fields: Any) -> None:
    _validate_payload(fields)
    if not logger.isEnabledFor(level):
        return
    payload = {"ts": datetime.now(timezone.utc).isoformat(), "event": event, **fields}
    logger.log(level, json.dumps(payload, ensure_ascii=False, default=str))
