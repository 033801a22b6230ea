from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Python names in code, camelCase on the wire."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True
        protected_namespaces = ()


# ---------------------------------------------
# canonical shapes of polymorphic detail fields
# ---------------------------------------------
class RichText(CamelModel):
    value: str
    citation: Optional[str] = None
    license_name: Optional[str] = None
    license_url: Optional[str] = None


class Treatment(CamelModel):
    chemical: List[str] = []
    biological: List[str] = []
    prevention: List[str] = []
    # plain-text treatment with no category
    general: List[str] = []


class WateringRange(CamelModel):
    min: Optional[int] = None
    max: Optional[int] = None


# ---------------------------------------------
# classification
# ---------------------------------------------
class IsPlant(CamelModel):
    probability: float = Field(ge=0, le=1)
    binary: bool
    threshold: Optional[float] = None


class SimilarImage(CamelModel):
    id: Optional[str] = None
    url: Optional[str] = None
    url_small: Optional[str] = None
    similarity: Optional[float] = None
    license_name: Optional[str] = None
    license_url: Optional[str] = None
    citation: Optional[str] = None


class SuggestionDetails(CamelModel):
    common_names: Optional[List[str]] = None
    description: Optional[RichText] = None
    url: Optional[str] = None
    common_uses: Optional[str] = None
    best_light_condition: Optional[str] = None
    best_soil_type: Optional[str] = None
    best_watering: Optional[str] = None
    sunlight: Optional[str] = None
    temperature_range: Optional[str] = None
    watering: Optional[WateringRange] = None
    language: Optional[str] = None
    entity_id: Optional[str] = None


class Suggestion(CamelModel):
    id: Optional[str] = None
    name: str
    probability: float
    similar_images: List[SimilarImage] = []
    details: SuggestionDetails = Field(default_factory=SuggestionDetails)


class Classification(CamelModel):
    suggestions: List[Suggestion] = []


# ---------------------------------------------
# health
# ---------------------------------------------
class HealthStatus(CamelModel):
    probability: float = Field(ge=0, le=1)
    binary: bool
    threshold: Optional[float] = None


class DiseaseDetails(CamelModel):
    local_name: Optional[str] = None
    description: Optional[RichText] = None
    treatment: Optional[Treatment] = None
    cause: Optional[str] = None
    url: Optional[str] = None
    common_names: Optional[List[str]] = None
    classification: Optional[List[str]] = None


class DiseaseSuggestion(CamelModel):
    id: Optional[str] = None
    name: str
    probability: float
    similar_images: List[SimilarImage] = []
    details: DiseaseDetails = Field(default_factory=DiseaseDetails)


class Disease(CamelModel):
    suggestions: List[DiseaseSuggestion] = []


class PlantHealth(CamelModel):
    is_healthy: HealthStatus
    disease: Optional[Disease] = None


# ---------------------------------------------
# PlantRecord
# ---------------------------------------------
class CareFields(CamelModel):
    watering_frequency_days: Optional[int] = Field(default=None, ge=1)
    last_watered: Optional[datetime] = None
    fertilizing_frequency_days: Optional[int] = Field(default=None, ge=1)
    last_fertilized: Optional[datetime] = None


class PlantRecordCreate(CareFields):
    # name and suggestions are checked by the store so that a missing
    # value surfaces as a ValidationError rather than a schema error
    user_id: Optional[str] = None
    name: Optional[str] = None
    type: Optional[str] = None
    image: Optional[str] = None
    is_plant: Optional[IsPlant] = None
    classification: Classification = Field(default_factory=Classification)
    plant_health: Optional[PlantHealth] = None
    model_version: Optional[str] = None
    # Plant.id identification handle, used by follow-up questions
    access_token: Optional[str] = None
    recognized_at: Optional[datetime] = None
    recognition_completed_at: Optional[datetime] = None


class PlantRecordUpdate(CareFields):
    name: Optional[str] = Field(default=None, min_length=1)
    type: Optional[str] = None


class PlantRecord(PlantRecordCreate):
    id: str
    user_id: str
    name: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def top_suggestion(self) -> Optional[Suggestion]:
        suggestions = self.classification.suggestions
        return suggestions[0] if suggestions else None
