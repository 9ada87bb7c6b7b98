from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional

from .app_routes import HOME, best_route_for, closest_valid_route, diagnostic_route, require_route
from .errors import RouteValidationError
from .fallbacks import home_suggestion
from .prompt_builder import PageContext
from .schemas import NavigateAction, NavigatePayload, StructuredResponse, Suggestion

logger = logging.getLogger(__name__)

PERMISSION_MARKERS = ("would you like", "should i", "do you want")
_EMPHASIS = re.compile(r"\*\*|__")


@dataclass
class PostProcessResult:
    response: StructuredResponse
    actions: List[NavigateAction] = field(default_factory=list)


def is_permission_question(text: str) -> bool:
    t = (text or "").lower()
    return "?" in t or any(m in t for m in PERMISSION_MARKERS)


def permission_text(route_name: str) -> str:
    return f"Would you like me to take you to the {route_name} section?"


def _validate(s: Suggestion) -> Optional[Suggestion]:
    """Suggestion with a whitelisted path, or None if it has to be dropped."""
    try:
        info = require_route(s.path)
        return s.model_copy(update={"path": info.path})
    except RouteValidationError as e:
        rewritten = closest_valid_route(e.path)
        if rewritten is None:
            logger.info("Dropping suggestion with unknown route %r", e.path)
            return None
        logger.info("Rewrote route %r -> %r", e.path, rewritten)
        return s.model_copy(update={"path": rewritten})


def _phrase(s: Suggestion) -> Suggestion:
    if s.path is None or is_permission_question(s.text):
        return s
    return s.model_copy(update={"text": permission_text(require_route(s.path).name)})


def post_process(
    response: StructuredResponse,
    category: str,
    context: Optional[PageContext] = None,
    message: str = "",
) -> PostProcessResult:
    kept: List[Suggestion] = []
    dropped_any = False

    for s in response.suggestions:
        if not s.path:
            kept.append(s)
            continue
        valid = _validate(s)
        if valid is None:
            dropped_any = True
        else:
            kept.append(valid)

    has_nav = any(s.path for s in kept)
    if not has_nav and category == "emergency":
        route = best_route_for("emergency", message)
        if route is not None:
            kept.insert(0, Suggestion(text=permission_text(route.name), path=route.path, description=route.description))
    elif not has_nav and category == "homeMaintenance":
        route = diagnostic_route()
        if route is not None:
            kept.insert(0, Suggestion(text=permission_text(route.name), path=route.path, description=route.description))

    if dropped_any and not any(s.path == HOME for s in kept):
        kept.append(home_suggestion())

    seen = set()
    suggestions: List[Suggestion] = []
    for s in kept:
        if s.path:
            if s.path in seen:
                continue
            seen.add(s.path)
        suggestions.append(_phrase(s))

    actions = [
        NavigateAction(payload=NavigatePayload(route=s.path, reason=s.text))
        for s in suggestions
        if s.path
    ]
    text = _EMPHASIS.sub("", response.response).strip() or response.response
    cleaned = response.model_copy(update={"response": text, "suggestions": suggestions})
    return PostProcessResult(response=cleaned, actions=actions)
