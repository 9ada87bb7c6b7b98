# resources_loader.py
import json
import os
import re
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Sequence


RESOURCES_DIR = Path(
    os.getenv("RESOURCES_DIR", Path(__file__).parent / "resources")
)


def _load_json(filename: str) -> Any:
    path = RESOURCES_DIR / filename
    if not path.exists():
        raise FileNotFoundError(
            f"Expected resource file not found: {path}. "
            "Create it under `resources/` (or set RESOURCES_DIR)."
        )
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


@lru_cache
def load_crisis_keywords() -> Dict[str, Any]:
    """
    Expects JSON with an ordered list of crisis types and a response
    template per type:

    {
      "types": [{"type": "suicide", "keywords": [...]}, ...],
      "responses": {"suicide": {"message": "...", "resources": [...],
                    "priority": "...", "follow_up": "..."}, ...}
    }
    """
    return _load_json("crisis_keywords.json")


@lru_cache
def load_category_keywords() -> Dict[str, Any]:
    """
    Keyword groups for the category classifier, e.g.:

    {
      "finance_terms": [...], "education_terms": [...],
      "finance_education_phrases": [...], "mental_health": [...],
      "career": [...], "home_maintenance": [...], ...
    }
    """
    return _load_json("category_keywords.json")


@lru_cache
def load_disclaimer_topics() -> List[Dict[str, Any]]:
    """Ordered list of {"topic", "keywords", "disclaimer"}."""
    return _load_json("disclaimer_topics.json")


@lru_cache
def load_app_routes() -> Dict[str, Dict[str, Any]]:
    """
    Mapping path -> {"name", "description", "categories", "keywords"}.
    Insertion order is the display order.
    """
    return _load_json("app_routes.json")


@lru_cache
def load_personas() -> Dict[str, Dict[str, Any]]:
    """Mapping category -> {"role", "capabilities", "limitations", "guidelines"}."""
    return _load_json("personas.json")


@lru_cache
def load_personality() -> Dict[str, Any]:
    return _load_json("personality.json")


@lru_cache
def load_topic_fallbacks() -> List[Dict[str, Any]]:
    """Ordered list of {"topic", "keywords", "response", "suggestions", "follow_up_questions"}."""
    return _load_json("topic_fallbacks.json")


@lru_cache
def load_advisory_tables() -> Dict[str, Any]:
    """
    {
      "keywords": {category: [...]},
      "minor_levels": {category: level},
      "adult_levels": {category: level},
      "messages": {category: {level: {"title", "description"}}}
    }
    """
    return _load_json("advisory.json")


@lru_cache(maxsize=None)
def _keyword_pattern(keyword: str) -> "re.Pattern[str]":
    # whole words only; a trailing plural "s"/"es" still counts
    return re.compile(rf"\b{re.escape(keyword.lower())}(?:e?s)?\b")


def keyword_hits(text: str, keywords: Sequence[str]) -> List[str]:
    """Keywords that occur in `text` as whole words or phrases, in table order."""
    t = (text or "").lower()
    return [k for k in keywords if _keyword_pattern(k).search(t)]
