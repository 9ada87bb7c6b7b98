from __future__ import annotations

from typing import List

from .resources_loader import keyword_hits, load_disclaimer_topics


def detect_topics(message: str) -> List[str]:
    """Topics whose keywords appear in the message, in table order."""
    return [
        entry["topic"]
        for entry in load_disclaimer_topics()
        if keyword_hits(message, entry["keywords"])
    ]


def inject_disclaimers(system_prompt: str, message: str) -> str:
    topics = set(detect_topics(message))
    blocks = [
        entry["disclaimer"]
        for entry in load_disclaimer_topics()
        if entry["topic"] in topics
    ]
    if not blocks:
        return system_prompt
    return "\n\n".join([system_prompt, *blocks])
