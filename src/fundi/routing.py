# routing.py
from __future__ import annotations

import logging
from typing import Awaitable, Callable, Dict, List, Optional, Sequence

from .resources_loader import load_category_keywords
from .schemas import CategoryResult

logger = logging.getLogger(__name__)

CATEGORIES = (
    "finance",
    "career",
    "wellness",
    "learning",
    "emergency",
    "cooking",
    "fitness",
    "homeMaintenance",
    "general",
)

LOW_CONFIDENCE = 0.6
COLLAPSE_THRESHOLD = 0.3

# (message, candidate labels) -> {label: score}
ZeroShot = Callable[[str, Sequence[str]], Awaitable[Dict[str, float]]]


def _any(text: str, words: Sequence[str]) -> bool:
    return any(w in text for w in words)


def _is_finance_education(text: str, kw: Dict) -> bool:
    if _any(text, kw["finance_terms"]) and _any(text, kw["education_terms"]):
        return True
    return any(a in text and b in text for a, b in kw.get("finance_education_pairs", []))


def _is_home_maintenance(text: str, kw: Dict) -> bool:
    if _any(text, kw["home_maintenance_exclusions"]):
        return False
    if _any(text, kw["home_maintenance"]):
        return True
    return any(
        _any(text, combo["any"]) and _any(text, combo["with"])
        for combo in kw.get("home_maintenance_combos", [])
    )


def keyword_category(
    message: str, preferred_category: Optional[str] = None
) -> Optional[CategoryResult]:
    """
    Deterministic short-circuits, first match wins:
      1) finance + education wording  -> finance 0.95
      2) mental-health wording        -> wellness 0.9
      3) career wording               -> career 0.9
         home-maintenance wording     -> homeMaintenance 0.9 (never for resume/job/cv text)
      4) caller's preferred category  -> preferred 0.8
    Returns None when the remote classifier should decide.
    """
    text = (message or "").lower()
    kw = load_category_keywords()

    if _is_finance_education(text, kw):
        return CategoryResult(category="finance", confidence=0.95)
    if _any(text, kw["mental_health"]):
        return CategoryResult(category="wellness", confidence=0.9)
    if _any(text, kw["career"]):
        return CategoryResult(category="career", confidence=0.9)
    if _is_home_maintenance(text, kw):
        return CategoryResult(category="homeMaintenance", confidence=0.9)
    if preferred_category:
        return CategoryResult(category=preferred_category, confidence=0.8)
    return None


def _best(scores: Dict[str, float]) -> tuple[str, float]:
    if not scores:
        raise ValueError("zero-shot classifier returned no scores")
    label = max(scores, key=lambda k: scores[k])
    return label, float(scores[label])


async def zero_shot_category(message: str, zero_shot: ZeroShot) -> CategoryResult:
    """
    Remote classification over the fixed label set, with a narrower
    second pass for finance/career when the first pass is unsure.
    """
    kw = load_category_keywords()
    label_map: Dict[str, str] = kw["zero_shot_labels"]

    label, score = _best(await zero_shot(message, list(label_map)))
    category = label_map.get(label, "general")

    narrow: List[str] = kw["narrow_labels"].get(category, [])
    if score < LOW_CONFIDENCE and narrow:
        _, narrow_score = _best(await zero_shot(message, narrow))
        logger.debug("Narrow pass for %s: %.2f (first pass %.2f)", category, narrow_score, score)
        score = max(score, narrow_score)

    if score < COLLAPSE_THRESHOLD:
        return CategoryResult(category="general", confidence=round(max(score, 0.0), 4))
    return CategoryResult(category=category, confidence=round(min(score, 1.0), 4))


async def classify(
    message: str,
    preferred_category: Optional[str] = None,
    zero_shot: Optional[ZeroShot] = None,
    raise_errors: bool = False,
) -> CategoryResult:
    """
    Keyword rules first, then the remote classifier. Remote failures give
    general/0.5 unless raise_errors is set (providers racing each other
    need to see the failure).
    """
    hit = keyword_category(message, preferred_category)
    if hit is not None:
        return hit
    if zero_shot is None:
        return CategoryResult(category="general", confidence=0.5)

    try:
        return await zero_shot_category(message, zero_shot)
    except Exception as e:
        if raise_errors:
            raise
        logger.warning("Remote category classification failed: %s: %s", type(e).__name__, e)
        return CategoryResult(category="general", confidence=0.5)
