from __future__ import annotations

from enum import Enum
from typing import List, Optional, Tuple

from .resources_loader import load_advisory_tables
from .schemas import Advisory


class AdvisoryLevel(str, Enum):
    NONE = "none"
    INFORMATIVE = "info"
    CAUTIONARY = "caution"
    RESTRICTED = "restrict"


GENERAL = "general"


def detect_content_categories(text: str) -> List[Tuple[str, float]]:
    """
    (category, confidence) pairs, most confident first.
    Confidence grows with the share of a category's keywords present.
    """
    t = (text or "").lower()
    results: List[Tuple[str, float]] = []
    for category, keywords in load_advisory_tables()["keywords"].items():
        if not keywords:
            continue
        matched = [k for k in keywords if k in t]
        if matched:
            results.append((category, min(1.0, len(matched) / (len(keywords) * 0.3))))

    if not results:
        return [(GENERAL, 1.0)]
    # stable sort keeps table order for ties
    return sorted(results, key=lambda r: r[1], reverse=True)


def advisory_level(category: str, is_minor: bool) -> AdvisoryLevel:
    tables = load_advisory_tables()
    levels = tables["minor_levels"] if is_minor else tables["adult_levels"]
    return AdvisoryLevel(levels.get(category, AdvisoryLevel.NONE.value))


def get_content_advisory(text: str, is_minor: bool = False) -> Optional[Advisory]:
    detected = detect_content_categories(text)
    category = next((c for c, _ in detected if c != GENERAL), None)
    if category is None:
        return None

    level = advisory_level(category, is_minor)
    if level is AdvisoryLevel.NONE:
        return None
    msg = load_advisory_tables()["messages"].get(category, {}).get(level.value)
    if not msg:
        return None
    return Advisory(
        title=msg["title"],
        description=msg["description"],
        category=category,
        level=level.value,
    )
