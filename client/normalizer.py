"""
Reshape Plant.id responses into the app's fixed schema.

The external payload is loose: whole blocks may be missing and several
detail fields come either as a plain string or as a structured object.
Everything optional is normalized to one canonical shape (or None);
only a body whose core structure is broken raises RecognitionProtocolError.
"""
from datetime import datetime, timezone
from numbers import Real
from typing import Any, List, Optional

import pydantic

from core.exceptions import RecognitionProtocolError
from schemas.plant import (
    DiseaseDetails,
    DiseaseSuggestion,
    HealthStatus,
    IsPlant,
    RichText,
    SimilarImage,
    Suggestion,
    SuggestionDetails,
    Treatment,
    WateringRange,
)
from schemas.recognition import HealthResult, RecognitionResult


# ---------------------------------------------
# scalar helpers
# ---------------------------------------------
def _optional_str(raw: Any) -> Optional[str]:
    if isinstance(raw, str):
        raw = raw.strip()
        return raw or None
    if isinstance(raw, Real) and not isinstance(raw, bool):
        return str(raw)
    return None


def _as_str_list(raw: Any) -> List[str]:
    if raw is None:
        return []
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, (list, tuple)):
        return []
    return [s for s in (_optional_str(item) for item in raw) if s]


def _optional_str_list(raw: Any) -> Optional[List[str]]:
    values = _as_str_list(raw)
    return values or None


def _is_number(raw: Any) -> bool:
    return isinstance(raw, Real) and not isinstance(raw, bool)


def _timestamp(raw: Any) -> Optional[datetime]:
    if not _is_number(raw) or raw <= 0:
        return None
    try:
        return datetime.fromtimestamp(raw, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


# ---------------------------------------------
# polymorphic detail fields
# ---------------------------------------------
def normalize_rich_text(raw: Any) -> Optional[RichText]:
    """``"text"`` or ``{"value": "text", "citation": ...}`` -> RichText."""
    if isinstance(raw, str):
        value = raw.strip()
        return RichText(value=value) if value else None
    if isinstance(raw, dict):
        value = _optional_str(raw.get("value"))
        if not value:
            return None
        return RichText(
            value=value,
            citation=_optional_str(raw.get("citation")),
            license_name=_optional_str(raw.get("license_name")),
            license_url=_optional_str(raw.get("license_url")),
        )
    return None


def normalize_treatment(raw: Any) -> Optional[Treatment]:
    """
    A treatment is either free text or a dict of categories, each category
    holding a string or a list of strings.
    """
    if isinstance(raw, (str, list)):
        general = _as_str_list(raw)
        return Treatment(general=general) if general else None
    if isinstance(raw, dict):
        treatment = Treatment(
            chemical=_as_str_list(raw.get("chemical")),
            biological=_as_str_list(raw.get("biological")),
            prevention=_as_str_list(raw.get("prevention")),
            general=_as_str_list(raw.get("general")),
        )
        if not any([treatment.chemical, treatment.biological, treatment.prevention, treatment.general]):
            return None
        return treatment
    return None


def normalize_watering(raw: Any) -> Optional[WateringRange]:
    if not isinstance(raw, dict):
        return None
    low, high = raw.get("min"), raw.get("max")
    low = int(low) if _is_number(low) else None
    high = int(high) if _is_number(high) else None
    if low is None and high is None:
        return None
    return WateringRange(min=low, max=high)


def normalize_similar_images(raw: Any) -> List[SimilarImage]:
    if not isinstance(raw, list):
        return []
    images = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        similarity = item.get("similarity")
        images.append(SimilarImage(
            id=_optional_str(item.get("id")),
            url=_optional_str(item.get("url")),
            url_small=_optional_str(item.get("url_small")),
            similarity=float(similarity) if _is_number(similarity) else None,
            license_name=_optional_str(item.get("license_name")),
            license_url=_optional_str(item.get("license_url")),
            citation=_optional_str(item.get("citation")),
        ))
    return images


# ---------------------------------------------
# suggestions
# ---------------------------------------------
def _suggestion_core(raw: Any, index: int, kind: str):
    if not isinstance(raw, dict):
        raise RecognitionProtocolError(f"{kind} #{index} is not an object")
    name = _optional_str(raw.get("name")) if isinstance(raw.get("name"), str) else None
    if not name:
        raise RecognitionProtocolError(f"{kind} #{index} has no name")
    probability = raw.get("probability")
    if not _is_number(probability):
        raise RecognitionProtocolError(f"{kind} #{index} has no numeric probability")
    details = raw.get("details")
    return name, float(probability), details if isinstance(details, dict) else {}


def normalize_suggestion(raw: Any, index: int = 0) -> Suggestion:
    name, probability, details = _suggestion_core(raw, index, "suggestion")
    return Suggestion(
        id=_optional_str(raw.get("id")),
        name=name,
        probability=probability,
        similar_images=normalize_similar_images(raw.get("similar_images")),
        details=SuggestionDetails(
            common_names=_optional_str_list(details.get("common_names")),
            description=normalize_rich_text(details.get("description")),
            url=_optional_str(details.get("url")),
            common_uses=_optional_str(details.get("common_uses")),
            best_light_condition=_optional_str(details.get("best_light_condition")),
            best_soil_type=_optional_str(details.get("best_soil_type")),
            best_watering=_optional_str(details.get("best_watering")),
            sunlight=_optional_str(details.get("sunlight")),
            temperature_range=_optional_str(details.get("temperature_range")),
            watering=normalize_watering(details.get("watering")),
            language=_optional_str(details.get("language")),
            entity_id=_optional_str(details.get("entity_id")),
        ),
    )


def normalize_disease_suggestion(raw: Any, index: int = 0) -> DiseaseSuggestion:
    name, probability, details = _suggestion_core(raw, index, "disease suggestion")
    return DiseaseSuggestion(
        id=_optional_str(raw.get("id")),
        name=name,
        probability=probability,
        similar_images=normalize_similar_images(raw.get("similar_images")),
        details=DiseaseDetails(
            local_name=_optional_str(details.get("local_name")),
            description=normalize_rich_text(details.get("description")),
            treatment=normalize_treatment(details.get("treatment")),
            cause=_optional_str(details.get("cause")),
            url=_optional_str(details.get("url")),
            common_names=_optional_str_list(details.get("common_names")),
            classification=_optional_str_list(details.get("classification")),
        ),
    )


def _suggestion_list(container: Any, field: str) -> list:
    """A missing block or list means "no suggestions", not a broken body."""
    if container is None:
        return []
    if not isinstance(container, dict):
        raise RecognitionProtocolError(f"'{field}' is not an object")
    suggestions = container.get("suggestions")
    if suggestions is None:
        return []
    if not isinstance(suggestions, list):
        raise RecognitionProtocolError(f"'{field}.suggestions' is not a list")
    return suggestions


def _result_block(payload: Any) -> dict:
    if not isinstance(payload, dict):
        raise RecognitionProtocolError("response body is not a JSON object")
    result = payload.get("result")
    if not isinstance(result, dict):
        raise RecognitionProtocolError("response has no 'result' object")
    return result


def _probability_block(raw: Any, field: str, model):
    if not isinstance(raw, dict):
        raise RecognitionProtocolError(f"response has no '{field}' object")
    try:
        return model(
            probability=raw.get("probability"),
            binary=raw.get("binary"),
            threshold=raw.get("threshold"),
        )
    except pydantic.ValidationError as e:
        raise RecognitionProtocolError(f"malformed '{field}': {e}") from e


# ---------------------------------------------
# whole responses
# ---------------------------------------------
def normalize_identification(payload: Any) -> RecognitionResult:
    result = _result_block(payload)
    is_plant = _probability_block(result.get("is_plant"), "is_plant", IsPlant)
    raw_suggestions = _suggestion_list(result.get("classification"), "classification")

    return RecognitionResult(
        is_plant=is_plant,
        # server ranking is kept as-is
        suggestions=[normalize_suggestion(s, i) for i, s in enumerate(raw_suggestions)],
        model_version=_optional_str(payload.get("model_version")),
        created_at=_timestamp(payload.get("created")),
        completed_at=_timestamp(payload.get("completed")),
        access_token=_optional_str(payload.get("access_token")),
    )


def normalize_health(payload: Any) -> HealthResult:
    result = _result_block(payload)
    is_healthy = _probability_block(result.get("is_healthy"), "is_healthy", HealthStatus)
    is_plant = None
    if result.get("is_plant") is not None:
        is_plant = _probability_block(result.get("is_plant"), "is_plant", IsPlant)
    raw_suggestions = _suggestion_list(result.get("disease"), "disease")

    return HealthResult(
        is_healthy=is_healthy,
        is_plant=is_plant,
        disease_suggestions=[normalize_disease_suggestion(s, i) for i, s in enumerate(raw_suggestions)],
        model_version=_optional_str(payload.get("model_version")),
        created_at=_timestamp(payload.get("created")),
        completed_at=_timestamp(payload.get("completed")),
        access_token=_optional_str(payload.get("access_token")),
    )


def normalize_answer(payload: Any) -> str:
    """
    Answer text of a conversation call: either a top-level ``answer`` or the
    last ``answer`` entry of ``messages``.
    """
    if not isinstance(payload, dict):
        raise RecognitionProtocolError("response body is not a JSON object")

    answer = _optional_str(payload.get("answer"))
    if answer:
        return answer

    messages = payload.get("messages")
    if isinstance(messages, list):
        for message in reversed(messages):
            if isinstance(message, dict) and message.get("type") == "answer":
                content = _optional_str(message.get("content"))
                if content:
                    return content

    raise RecognitionProtocolError("conversation response has no answer")
