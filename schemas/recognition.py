from datetime import datetime
from typing import List, Optional

from schemas.plant import CamelModel, DiseaseSuggestion, HealthStatus, IsPlant, Suggestion


class RecognitionResult(CamelModel):
    is_plant: IsPlant
    suggestions: List[Suggestion] = []
    model_version: Optional[str] = None
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    # Plant.id identification handle, kept for follow-up questions
    access_token: Optional[str] = None

    @property
    def top_suggestion(self) -> Optional[Suggestion]:
        return self.suggestions[0] if self.suggestions else None


class HealthResult(CamelModel):
    is_healthy: HealthStatus
    is_plant: Optional[IsPlant] = None
    disease_suggestions: List[DiseaseSuggestion] = []
    model_version: Optional[str] = None
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    access_token: Optional[str] = None
