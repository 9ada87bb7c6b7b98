from __future__ import annotations

import random
import re
from typing import List, Optional

from .resources_loader import load_personality

_TRAILING_PUNCT = re.compile(r"[\s!?.,~]+$")


def personality_prompt() -> str:
    p = load_personality()
    inner = p.get("inner_world", {})
    ctx = p.get("context_behavior", {})

    lines = [
        "Fundi's Personality Guidelines:",
        f"Tone & Voice: {p['tone']}",
        "Style Traits:",
        *[f"- {t}" for t in p.get("style_traits", [])],
    ]
    if inner:
        lines += [
            "Inner World:",
            f"- Favorite quote: \"{inner.get('favorite_quote', '')}\"",
            f"- Favorite activity: \"{inner.get('favorite_activity', '')}\"",
            f"- Least favorite thing: \"{inner.get('least_favorite_thing', '')}\"",
            f"- Loves: {', '.join(inner.get('loves', []))}",
        ]
    if ctx:
        lines += [
            "Contextual Behavior Adaptation:",
            f"- When user appears stressed: {ctx.get('when_user_is_stressed', '')}",
            f"- When user is successful: {ctx.get('when_user_is_successful', '')}",
            f"- When user appears confused: {ctx.get('when_user_is_confused', '')}",
        ]
    return "\n".join(lines)


# ---------- Greetings ----------
def _phrase_match(text: str, phrases: List[str]) -> bool:
    """
    Whole message, prefix, suffix, or a phrase followed by "!" / "?".
    Prefix/suffix need a word boundary so "hi" does not match "history".
    """
    for phrase in phrases:
        if text == phrase:
            return True
        if text.startswith(phrase + " ") or text.startswith(phrase + ","):
            return True
        if text.endswith(" " + phrase):
            return True
        if f"{phrase}!" in text or f"{phrase}?" in text:
            if re.search(rf"(^|\W){re.escape(phrase)}[!?]", text):
                return True
    return False


def greeting_kind(message: str) -> Optional[str]:
    """'whats_up', 'greeting', or None for anything that is not small talk."""
    raw = (message or "").strip().lower()
    if not raw or len(raw.split()) > 6:
        return None
    text = _TRAILING_PUNCT.sub("", raw)
    p = load_personality()
    if _phrase_match(text, p.get("whats_up_phrases", [])) or _phrase_match(raw, p.get("whats_up_phrases", [])):
        return "whats_up"
    if _phrase_match(text, p.get("greeting_phrases", [])) or _phrase_match(raw, p.get("greeting_phrases", [])):
        return "greeting"
    return None


def pick_greeting(kind: str, rng: Optional[random.Random] = None) -> str:
    p = load_personality()
    pool = p["whats_up_responses"] if kind == "whats_up" else p["greeting_responses"]
    return (rng or random).choice(pool)
