from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

from platformdirs import user_data_dir
from pydantic import ValidationError

from .models import StoredSession


@dataclass
class TokenStore:
    app_name: str = "inventory"
    filename: str = "session.json"

    def _path(self) -> Path:
        base = Path(user_data_dir(self.app_name, "Inventory"))
        base.mkdir(parents=True, exist_ok=True)
        return base / self.filename

    def save(self, session: StoredSession) -> None:
        path = self._path()
        path.write_text(json.dumps(session.model_dump(mode="json"), indent=2))
        try:
            path.chmod(0o600)
        except OSError:
            pass

    def save_tokens(self, access_token: str, refresh_token: str) -> None:
        current = self.load()
        user = current.user if current else None
        self.save(StoredSession(access_token=access_token, refresh_token=refresh_token, user=user))

    def load(self) -> StoredSession | None:
        path = self._path()
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text())
        except json.JSONDecodeError:
            self.clear()
            return None
        try:
            return StoredSession.model_validate(data)
        except ValidationError:
            self.clear()
            return None

    def clear(self) -> None:
        path = self._path()
        if path.exists():
            path.unlink()
