import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional, Union

from core.config import settings
from core.logger import app_logger

ACCESS_TOKEN_KEY = "accessToken"
REFRESH_TOKEN_KEY = "refreshToken"
USER_ID_KEY = "userId"
CURRENT_PLANT_KEY = "currentPlant"


class SessionCache:
    """
    Durable string map kept on disk across app restarts.

    Plain key/value storage with no expiry and no eviction; whoever reads a
    value decides whether it is still fresh.
    """

    def __init__(self, path: Union[str, Path] = None):
        self.path = Path(path or settings.SESSION_CACHE_PATH)
        self._data = self._load()

    def _load(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            app_logger.error(f"Session cache at {self.path} is unreadable, starting empty: {e}")
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _flush(self):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".session-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._data, f, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except Exception:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._data.get(key, default)

    def set(self, key: str, value: str):
        if not isinstance(value, str):
            raise TypeError(f"session values are strings, got {type(value).__name__}")
        self._data[key] = value
        self._flush()

    def remove(self, key: str):
        if self._data.pop(key, None) is not None:
            self._flush()

    def clear(self):
        self._data = {}
        self._flush()

    def get_json(self, key: str) -> Any:
        raw = self.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            app_logger.warning(f"Session value {key!r} is not valid JSON, ignoring it")
            return None

    def set_json(self, key: str, value: Any):
        self.set(key, json.dumps(value, ensure_ascii=False, default=str))

    @property
    def access_token(self) -> Optional[str]:
        return self.get(ACCESS_TOKEN_KEY)

    @property
    def user_id(self) -> Optional[str]:
        return self.get(USER_ID_KEY)
