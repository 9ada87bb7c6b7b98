# safety.py
from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, List, Tuple

from .resources_loader import keyword_hits, load_crisis_keywords
from .schemas import StructuredResponse, Suggestion

logger = logging.getLogger(__name__)


class CrisisType(str, Enum):
    SUICIDE = "suicide"
    SELF_HARM = "self_harm"
    DOMESTIC_VIOLENCE = "domestic_violence"
    SUBSTANCE = "substance"
    GENERAL = "general"


def _crisis_table() -> List[Tuple[CrisisType, List[str]]]:
    """Ordered (type, keywords) pairs from crisis_keywords.json."""
    table = load_crisis_keywords()
    return [
        (CrisisType(entry["type"]), list(entry["keywords"]))
        for entry in table["types"]
    ]


def _hits(text: str) -> Dict[CrisisType, List[str]]:
    out: Dict[CrisisType, List[str]] = {}
    for crisis_type, keywords in _crisis_table():
        matched = keyword_hits(text, keywords)
        if matched:
            out[crisis_type] = matched
    return out


def detect_crisis(message: str) -> bool:
    return bool(_hits(message))


def classify_crisis(message: str) -> CrisisType:
    """First matching type in table order; GENERAL when nothing matches."""
    hits = _hits(message)
    for crisis_type, _ in _crisis_table():
        if crisis_type in hits:
            return crisis_type
    return CrisisType.GENERAL


def build_crisis_response(crisis_type: CrisisType) -> StructuredResponse:
    templates = load_crisis_keywords()["responses"]
    tpl = templates.get(crisis_type.value) or templates[CrisisType.GENERAL.value]

    follow_ups = [tpl["follow_up"]] if tpl.get("follow_up") else []
    return StructuredResponse(
        response=tpl["message"],
        sentiment="supportive",
        suggestions=[
            Suggestion(
                text="Would you like me to take you to the Emergency Contacts section?",
                path="/emergency/contacts",
            )
        ],
        follow_up_questions=follow_ups,
        is_emergency_response=True,
        resources=list(tpl["resources"]),
        priority=tpl.get("priority"),
        follow_up=tpl.get("follow_up"),
    )


def crisis_response_for(message: str) -> StructuredResponse:
    crisis_type = classify_crisis(message)
    logger.warning("Crisis short-circuit: type=%s", crisis_type.value)
    return build_crisis_response(crisis_type)
