"""Repair request triage.

Descriptions are matched against a fixed category table. When an OpenAI key
is configured the model is asked to pick the category instead; any problem
with that call falls back to keyword matching.
"""

import json
import logging
import re
from dataclasses import dataclass, field

from openai import OpenAI, OpenAIError

from backend.core import config

logger = logging.getLogger(__name__)

MIN_DESCRIPTION_LENGTH = 3
HIGH_URGENCY_LEVELS = {'high', 'critical'}


@dataclass(frozen=True)
class TriageCategory:
    key: str
    label: str
    service_type: str
    cues: tuple[str, ...] = ()


CATEGORIES = (
    TriageCategory('engine', 'Engine / Powertrain', 'Engine diagnostic', ('engine', 'stall', 'power', 'smoke', 'misfire')),
    TriageCategory('electrical', 'Electrical / Battery', 'Electrical diagnostic', ('battery', 'electrical', 'light', 'sensor', 'dash', 'radio')),
    TriageCategory('tires_brakes', 'Tires / Brakes', 'Brake or tire service', ('tire', 'brake', 'wheel', 'abs', 'traction', 'alignment')),
    TriageCategory('fluids', 'Fluids / Leaks', 'Leak inspection', ('leak', 'oil', 'coolant', 'fluid', 'drip', 'spill')),
    TriageCategory('warning_lights', 'Warning lights', 'Dashboard warning diagnosis', ('check engine', 'warning', 'indicator', 'light')),
    TriageCategory('body_glass', 'Body / Glass', 'Body or glass repair', ('mirror', 'door', 'window', 'glass', 'windshield', 'dent')),
    TriageCategory('safety', 'Safety equipment', 'Safety system check', ('seatbelt', 'airbag', 'safety')),
    TriageCategory('other', 'Other / Misc', 'General inspection'),
)
CATEGORIES_BY_KEY = {category.key: category for category in CATEGORIES}
CATEGORIES_BY_LABEL = {category.label: category for category in CATEGORIES}
FALLBACK_CATEGORY = CATEGORIES_BY_KEY['other']


@dataclass
class TriageRequest:
    description: str
    vehicle_identifier: str | None = None
    urgency: str | None = None
    preferred_language: str = 'en'


@dataclass
class TriageResult:
    category: str
    service_type: str
    summary: str
    confidence: float
    tags: list[str] = field(default_factory=list)
    source: str = 'keywords'


def _fallback_summary(category: TriageCategory, language: str) -> str:
    if language == 'es':
        return f'Clasificación rápida: {category.label}. Se recomienda revisión prioritaria si la urgencia es alta.'
    return f'Quick triage: {category.label}. If urgency is high, prioritize scheduling.'


def classify_by_keywords(request: TriageRequest) -> TriageResult:
    normalized = request.description.lower()
    match = next(
        (category for category in CATEGORIES if any(cue in normalized for cue in category.cues)),
        FALLBACK_CATEGORY,
    )

    confidence = 0.76 if (request.urgency or '').lower() in HIGH_URGENCY_LEVELS else 0.62

    return TriageResult(
        category=match.label,
        service_type=match.service_type,
        summary=_fallback_summary(match, request.preferred_language),
        confidence=confidence,
        tags=[match.key, match.service_type],
    )


def build_prompt(request: TriageRequest) -> str:
    categories = '\n'.join(f'{category.key}: {category.label}' for category in CATEGORIES)
    language = 'Spanish' if request.preferred_language == 'es' else 'English'
    return (
        'You are a fleet repair triage agent.\n\n'
        f'Issue Description: {request.description}\n'
        f'Vehicle: {request.vehicle_identifier or "unspecified"}\n'
        f'Urgency: {request.urgency or "unspecified"}\n\n'
        f'Available Categories (you MUST pick exactly one):\n{categories}\n\n'
        'Return a JSON object with these exact keys: categoryLabel, categoryKey, '
        'tags (array), summary (1-2 sentences in '
        f'{language}), confidence (0 to 1), serviceType.'
    )


def _clamp_confidence(value) -> float:
    if value is None:
        return 0.7
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return 0.5
    if confidence != confidence or confidence < 0:
        return 0.5
    return min(confidence, 1.0)


def _text_field(payload: dict, name: str) -> str | None:
    value = payload.get(name)
    if not isinstance(value, str):
        return None
    return value.strip() or None


def parse_model_reply(raw: str, request: TriageRequest) -> TriageResult:
    match = re.search(r'\{.*\}', raw, re.DOTALL)
    payload = json.loads(match.group(0) if match else raw)
    if not isinstance(payload, dict):
        raise ValueError('Model reply is not a JSON object.')

    category_key = _text_field(payload, 'categoryKey')
    category_label = _text_field(payload, 'categoryLabel')
    found = CATEGORIES_BY_KEY.get(category_key) or CATEGORIES_BY_LABEL.get(category_label)

    tags = payload.get('tags')
    if not isinstance(tags, list):
        tags = [found.key, found.service_type] if found else []

    fallback_category = found or FALLBACK_CATEGORY
    return TriageResult(
        category=category_label or fallback_category.label,
        service_type=_text_field(payload, 'serviceType') or fallback_category.service_type,
        summary=_text_field(payload, 'summary') or _fallback_summary(fallback_category, request.preferred_language),
        confidence=_clamp_confidence(payload.get('confidence')),
        tags=[str(tag) for tag in tags],
        source='model',
    )


class TriageClassifier:
    def __init__(self, client: OpenAI | None = None, model: str = config.TRIAGE_MODEL):
        self.client = client
        self.model = model

    @classmethod
    def from_config(cls) -> 'TriageClassifier':
        if not config.OPENAI_API_KEY:
            return cls(client=None)
        return cls(client=OpenAI(api_key=config.OPENAI_API_KEY, timeout=config.TRIAGE_TIMEOUT_SECONDS))

    def classify(self, request: TriageRequest) -> TriageResult:
        if len(request.description.strip()) < MIN_DESCRIPTION_LENGTH:
            logger.warning('Description too short, using keyword classification.')
            return classify_by_keywords(request)

        if self.client is None:
            logger.warning('OPENAI_API_KEY not set, using keyword classification.')
            return classify_by_keywords(request)

        try:
            completion = self.client.chat.completions.create(
                model=self.model,
                temperature=0.4,
                max_tokens=1024,
                messages=[{'role': 'user', 'content': build_prompt(request)}],
            )
            raw = completion.choices[0].message.content or '{}'
            return parse_model_reply(raw, request)
        except (OpenAIError, ValueError, TypeError, IndexError) as exc:
            logger.warning('Model triage failed, using keyword classification: %s', exc)
            return classify_by_keywords(request)
