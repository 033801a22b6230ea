from typing import List, Optional

import pydantic
import requests

from client.session_cache import CURRENT_PLANT_KEY, SessionCache
from core.config import settings
from core.exceptions import (
    AuthRequiredError,
    NotFoundError,
    PlantNotRecognizedError,
    RecordSubmissionError,
    ValidationError,
)
from core.logger import app_logger
from schemas.plant import (
    Classification,
    Disease,
    PlantHealth,
    PlantRecord,
    PlantRecordCreate,
    PlantRecordUpdate,
)
from schemas.recognition import HealthResult, RecognitionResult


class RecordGateway:
    """
    App-side access to the plant record service.

    Composes records from recognition output and sends them, with the
    session's bearer token, to the ``/plants`` routes.
    """

    def __init__(
            self,
            cache: SessionCache,
            base_url: str = None,
            session=None,
            timeout: float = None,
    ):
        self.cache = cache
        self.base_url = (base_url or settings.STORE_BASE_URL).rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout or settings.STORE_TIMEOUT

    # ---------------------------------------------
    # composition
    # ---------------------------------------------
    @staticmethod
    def build_record(
            recognition: RecognitionResult,
            image_ref: str,
            health: Optional[HealthResult] = None,
    ) -> PlantRecordCreate:
        """
        Merge recognition (and optional health) output into a new record.

        Pure; raises PlantNotRecognizedError for anything that must never be
        stored: a photo that is not a plant, or one with no suggestion.
        """
        if not recognition.is_plant.binary:
            raise PlantNotRecognizedError("the photo does not look like a plant")
        if not recognition.suggestions:
            raise PlantNotRecognizedError("no plant suggestion for this photo")

        plant_health = None
        if health is not None:
            plant_health = PlantHealth(
                is_healthy=health.is_healthy.model_copy(),
                disease=Disease(
                    suggestions=[s.model_copy(deep=True) for s in health.disease_suggestions]
                ),
            )

        return PlantRecordCreate(
            name=recognition.suggestions[0].name,
            image=str(image_ref),
            is_plant=recognition.is_plant.model_copy(),
            classification=Classification(
                suggestions=[s.model_copy(deep=True) for s in recognition.suggestions]
            ),
            plant_health=plant_health,
            model_version=recognition.model_version,
            access_token=recognition.access_token,
            recognized_at=recognition.created_at,
            recognition_completed_at=recognition.completed_at,
        )

    # ---------------------------------------------
    # store calls
    # ---------------------------------------------
    def submit(self, record: PlantRecordCreate) -> PlantRecord:
        if record.is_plant is None or not record.is_plant.binary or not record.classification.suggestions:
            raise PlantNotRecognizedError("refusing to store a record without a recognized plant")

        user_id = self._require_user_id()
        body = record.model_copy(update={"user_id": user_id}).model_dump(
            by_alias=True, mode="json", exclude_none=True
        )

        response = self._request("POST", "/plants", "submit plant", json=body)
        created = self._parse(response, PlantRecord, "submit plant")

        app_logger.info(f"Plant {created.id} ({created.name}) stored for user={user_id}")
        self.remember_current(created)
        return created

    def list_records(self) -> List[PlantRecord]:
        user_id = self._require_user_id()
        response = self._request("GET", f"/plants/{user_id}", "list plants")
        data = self._json(response, "list plants")
        if not isinstance(data, list):
            raise RecordSubmissionError("list plants: unexpected response body", response.status_code)
        try:
            return [PlantRecord.model_validate(item) for item in data]
        except pydantic.ValidationError as e:
            raise RecordSubmissionError(f"list plants: {e}", response.status_code) from e

    def get_record(self, plant_id: str) -> PlantRecord:
        response = self._request("GET", f"/plants/record/{plant_id}", "get plant")
        return self._parse(response, PlantRecord, "get plant")

    def update_record(self, plant_id: str, **changes) -> PlantRecord:
        try:
            update = PlantRecordUpdate(**changes)
        except pydantic.ValidationError as e:
            raise ValidationError(f"update plant: {e}") from e
        body = update.model_dump(by_alias=True, mode="json", exclude_unset=True)
        response = self._request("PUT", f"/plants/{plant_id}", "update plant", json=body)
        updated = self._parse(response, PlantRecord, "update plant")

        if self._cached_plant_id() == updated.id:
            self.remember_current(updated)
        return updated

    def delete_record(self, plant_id: str):
        self._request("DELETE", f"/plants/{plant_id}", "delete plant")
        if self._cached_plant_id() == plant_id:
            self.cache.remove(CURRENT_PLANT_KEY)

    # ---------------------------------------------
    # "currently viewed" plant
    # ---------------------------------------------
    def remember_current(self, record: PlantRecord):
        self.cache.set_json(CURRENT_PLANT_KEY, record.model_dump(by_alias=True, mode="json"))

    def cached_current(self) -> Optional[PlantRecord]:
        data = self.cache.get_json(CURRENT_PLANT_KEY)
        if data is None:
            return None
        try:
            return PlantRecord.model_validate(data)
        except pydantic.ValidationError:
            app_logger.warning("Cached current plant is malformed, ignoring it")
            return None

    def current_plant(self, record: PlantRecord = None, plant_id: str = None) -> Optional[PlantRecord]:
        """
        Resolve the plant a view should show.

        An explicitly passed record wins, then a fresh fetch by id. The
        durable cache is only a fallback for hydrating after a restart, and
        what it returns is a snapshot that may be stale.
        """
        if record is not None:
            return record

        if plant_id is not None:
            try:
                fetched = self.get_record(plant_id)
            except NotFoundError:
                if self._cached_plant_id() == plant_id:
                    self.cache.remove(CURRENT_PLANT_KEY)
                return None
            except RecordSubmissionError as e:
                app_logger.warning(f"Could not fetch plant {plant_id}, falling back to cache: {e}")
                cached = self.cached_current()
                return cached if cached is not None and cached.id == plant_id else None
            self.remember_current(fetched)
            return fetched

        return self.cached_current()

    # ---------------------------------------------
    # transport
    # ---------------------------------------------
    def _cached_plant_id(self) -> Optional[str]:
        data = self.cache.get_json(CURRENT_PLANT_KEY)
        return data.get("id") if isinstance(data, dict) else None

    def _require_user_id(self) -> str:
        user_id = self.cache.user_id
        if not user_id:
            raise AuthRequiredError("no user id in session, please log in")
        return user_id

    def _headers(self) -> dict:
        token = self.cache.access_token
        if not token:
            raise AuthRequiredError("no access token in session, please log in")
        return {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }

    def _request(self, method: str, path: str, action: str, **kwargs):
        headers = self._headers()
        url = f"{self.base_url}{path}"

        try:
            response = self.session.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            app_logger.error(f"{action} failed: {e}")
            raise RecordSubmissionError(f"{action}: record service unreachable ({e})") from e

        if response.status_code == 401:
            raise AuthRequiredError(f"{action}: session expired, please log in again")
        if response.status_code == 404:
            raise NotFoundError(f"{action}: not found")
        if not 200 <= response.status_code < 300:
            app_logger.error(f"{action} failed with status {response.status_code}: {response.text[:200]}")
            raise RecordSubmissionError(
                f"{action}: record service answered {response.status_code}",
                status_code=response.status_code,
            )
        return response

    @staticmethod
    def _json(response, action: str):
        try:
            return response.json()
        except ValueError as e:
            raise RecordSubmissionError(f"{action}: response is not JSON", response.status_code) from e

    def _parse(self, response, model, action: str):
        try:
            return model.model_validate(self._json(response, action))
        except pydantic.ValidationError as e:
            raise RecordSubmissionError(f"{action}: unexpected response body", response.status_code) from e
