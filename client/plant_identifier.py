import json
import os
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from pathlib import Path
from typing import Tuple, Union

import requests

from client.image_preprocessor import encode_data_uri, optimize_image
from client.normalizer import normalize_answer, normalize_health, normalize_identification
from core.config import settings
from core.exceptions import (
    PlantNotRecognizedError,
    RecognitionProtocolError,
    RecognitionUnavailableError,
    ValidationError,
)
from core.logger import recognition_logger
from schemas.recognition import HealthResult, RecognitionResult

IDENTIFICATION_DETAILS = (
    "common_names,url,description,common_uses,best_light_condition,"
    "best_soil_type,best_watering,watering"
)
HEALTH_DETAILS = "local_name,description,url,treatment,classification,common_names,cause"
DATA_URI_PREFIX = "data:image/"
CHUNK_SIZE = 1024


class _DeadlineExceeded(Exception):
    pass


class PlantIdentifierService:
    """
    Talks to the Plant.id identification, health-assessment and
    conversation endpoints.

    ``image`` is either a photo path or a data URI from ``encode`` (to
    preprocess a photo once for several calls). Every call is bounded by
    ``timeout`` seconds in total, body included. The calls are independent
    of each other: a failed health assessment says nothing about the
    identification.
    """

    def __init__(
            self,
            api_key: str = None,
            identification_url: str = None,
            health_url: str = None,
            timeout: float = None,
            latitude: float = None,
            longitude: float = None,
            similar_images: bool = True,
            session: requests.Session = None,
    ):
        self.api_key = api_key if api_key is not None else settings.PLANT_ID_API_KEY
        self.identification_url = (identification_url or settings.PLANT_ID_IDENTIFICATION_URL).rstrip("/")
        self.health_url = health_url or settings.PLANT_ID_HEALTH_URL
        self.timeout = timeout or settings.RECOGNITION_TIMEOUT
        self.latitude = settings.DEFAULT_LATITUDE if latitude is None else latitude
        self.longitude = settings.DEFAULT_LONGITUDE if longitude is None else longitude
        self.similar_images = similar_images
        self.session = session or requests.Session()

    @staticmethod
    def encode(image: Union[str, Path]) -> str:
        """Preprocess a photo into the data URI both recognition calls send."""
        if isinstance(image, str) and image.startswith(DATA_URI_PREFIX):
            return image

        optimized = optimize_image(image)
        try:
            return encode_data_uri(optimized)
        finally:
            os.remove(optimized)

    def identify(self, image: Union[str, Path]) -> RecognitionResult:
        """
        Identify the plant on the photo.

        Raises PlantNotRecognizedError when the service answered but had no
        suggestion, which is an expected outcome ("try another photo").
        """
        payload = self._post(self.identification_url, self._request_body(image), IDENTIFICATION_DETAILS)
        recognition = normalize_identification(payload)

        if not recognition.suggestions:
            raise PlantNotRecognizedError("no plant suggestion for this photo")

        recognition_logger.logger.info(
            f"🌱 Plant identified: {recognition.top_suggestion.name} "
            f"({recognition.top_suggestion.probability:.2f})"
        )
        return recognition

    def assess_health(self, image: Union[str, Path]) -> HealthResult:
        payload = self._post(self.health_url, self._request_body(image), HEALTH_DETAILS)
        health = normalize_health(payload)

        recognition_logger.logger.info(f"🩺 Health assessed: {len(health.disease_suggestions)} disease suggestions")
        return health

    def ask(self, access_token: str, question: str, temperature: float = 0.5) -> str:
        """Follow-up question about an earlier identification; returns the answer text."""
        if not access_token:
            raise RecognitionProtocolError("identification has no access token to ask about")
        question = (question or "").strip()
        if not question:
            raise ValidationError("question must not be empty")

        url = f"{self.identification_url}/{access_token}/conversation"
        payload = self._post(url, {"question": question, "temperature": temperature})
        return normalize_answer(payload)

    # ---------------------------------------------
    # transport
    # ---------------------------------------------
    def _request_body(self, image: Union[str, Path]) -> dict:
        return {
            "images": [self.encode(image)],
            "latitude": self.latitude,
            "longitude": self.longitude,
            "similar_images": self.similar_images,
        }

    def _fetch(self, url: str, body: dict, params: dict, deadline: float) -> Tuple[int, bytes]:
        response = self.session.post(
            url,
            params=params,
            json=body,
            headers={
                "Api-Key": self.api_key,
                "Content-Type": "application/json",
            },
            timeout=self.timeout,
            stream=True,
        )
        chunks = []
        try:
            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                if time.monotonic() > deadline:
                    raise _DeadlineExceeded()
                chunks.append(chunk)
        finally:
            response.close()
        return response.status_code, b"".join(chunks)

    def _send(self, url: str, body: dict, params: dict = None) -> Tuple[int, bytes]:
        """POST with a total deadline; the read itself runs on a worker thread."""
        deadline = time.monotonic() + self.timeout
        executor = ThreadPoolExecutor(max_workers=1)
        future = executor.submit(self._fetch, url, body, params, deadline)
        try:
            return future.result(timeout=self.timeout)
        except (FutureTimeoutError, _DeadlineExceeded, requests.Timeout) as e:
            recognition_logger.log_error(url, e)
            raise RecognitionUnavailableError(
                f"recognition service did not answer within {self.timeout}s"
            ) from e
        except requests.RequestException as e:
            recognition_logger.log_error(url, e)
            raise RecognitionUnavailableError(f"recognition service unreachable: {e}") from e
        finally:
            # a late worker notices the deadline on its next chunk
            executor.shutdown(wait=False)

    def _post(self, url: str, body: dict, details: str = None) -> dict:
        params = {"details": details} if details else None
        recognition_logger.log_request(url, sum(len(i) for i in body.get("images", [])), params)

        status_code, content = self._send(url, body, params)

        if status_code in (401, 403):
            recognition_logger.logger.error(f"Plant.id rejected the API key (status={status_code})")
            raise RecognitionUnavailableError("recognition service rejected the API key")
        if status_code == 429 or status_code >= 500:
            raise RecognitionUnavailableError(
                f"recognition service unavailable (status={status_code})"
            )
        if status_code >= 400:
            raise RecognitionProtocolError(
                f"recognition service refused the request (status={status_code}): "
                f"{content[:200].decode('utf-8', errors='replace')}"
            )

        try:
            payload = json.loads(content)
        except ValueError as e:
            recognition_logger.log_error(url, e)
            raise RecognitionProtocolError("recognition response is not valid JSON") from e

        recognition_logger.log_response(url, status_code)
        return payload
