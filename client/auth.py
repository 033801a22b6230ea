import requests

from client.session_cache import (
    ACCESS_TOKEN_KEY,
    CURRENT_PLANT_KEY,
    REFRESH_TOKEN_KEY,
    USER_ID_KEY,
    SessionCache,
)
from core.config import settings
from core.exceptions import AuthRequiredError, RecordSubmissionError
from core.logger import app_logger


class AuthClient:
    """Login / logout against the record service; tokens live in the session cache."""

    def __init__(self, cache: SessionCache, base_url: str = None, session=None, timeout: float = None):
        self.cache = cache
        self.base_url = (base_url or settings.STORE_BASE_URL).rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout or settings.STORE_TIMEOUT

    def _post(self, path: str, body: dict):
        try:
            return self.session.post(f"{self.base_url}{path}", json=body, timeout=self.timeout)
        except requests.RequestException as e:
            app_logger.error(f"POST {path} failed: {e}")
            raise RecordSubmissionError(f"auth service unreachable ({e})") from e

    def register(self, email: str, password: str) -> str:
        response = self._post("/api/auth/register", {"email": email, "password": password})
        if response.status_code != 201:
            raise RecordSubmissionError(
                f"registration failed: {response.text[:200]}", status_code=response.status_code
            )
        return response.json()["userId"]

    def login(self, email: str, password: str) -> str:
        response = self._post("/api/auth/login", {"email": email, "password": password})
        if response.status_code == 401:
            raise AuthRequiredError("invalid email or password")
        if response.status_code != 200:
            raise RecordSubmissionError("login failed", status_code=response.status_code)

        self._store_tokens(response.json())
        app_logger.info(f"Logged in as user={self.cache.user_id}")
        return self.cache.user_id

    def refresh(self) -> str:
        refresh_token = self.cache.get(REFRESH_TOKEN_KEY)
        if not refresh_token:
            raise AuthRequiredError("no refresh token in session, please log in")

        response = self._post("/api/auth/refresh", {"refreshToken": refresh_token})
        if response.status_code == 401:
            self.logout()
            raise AuthRequiredError("session expired, please log in again")
        if response.status_code != 200:
            raise RecordSubmissionError("token refresh failed", status_code=response.status_code)

        self._store_tokens(response.json())
        return self.cache.access_token

    def logout(self):
        for key in (ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY, USER_ID_KEY, CURRENT_PLANT_KEY):
            self.cache.remove(key)

    def _store_tokens(self, data: dict):
        self.cache.set(ACCESS_TOKEN_KEY, data["accessToken"])
        self.cache.set(USER_ID_KEY, str(data["userId"]))
        if data.get("refreshToken"):
            self.cache.set(REFRESH_TOKEN_KEY, data["refreshToken"])
