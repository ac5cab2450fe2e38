from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_validator

from backend.triage.classifier import TriageClassifier, TriageRequest

router = APIRouter(tags=['triage'])


class TriageRequestBody(BaseModel):
    description: str
    vehicle_identifier: str | None = None
    urgency: str | None = None
    preferred_language: str = 'en'

    @field_validator('preferred_language')
    @classmethod
    def validate_language(cls, value: str) -> str:
        normalized = value.strip().lower()
        return normalized if normalized in {'en', 'es'} else 'en'


class TriageResponse(BaseModel):
    category: str
    service_type: str
    summary: str
    confidence: float
    tags: list[str]
    source: str


_classifier: TriageClassifier | None = None


def get_classifier() -> TriageClassifier:
    global _classifier
    if _classifier is None:
        _classifier = TriageClassifier.from_config()
    return _classifier


@router.post('', response_model=TriageResponse)
def triage_repair_request(
    data: TriageRequestBody,
    classifier: TriageClassifier = Depends(get_classifier),
):
    result = classifier.classify(TriageRequest(**data.model_dump()))
    return TriageResponse(**vars(result))
