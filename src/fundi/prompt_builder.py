from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from .app_routes import routes_for_category
from .personas import get_persona, render_general_persona, render_persona
from .personality import personality_prompt
from .prompt_loader import load_prompt


@dataclass(frozen=True)
class PageContext:
    current_page: str = "/"
    current_section: Optional[str] = None
    available_actions: List[str] = field(default_factory=list)


def compose_system_prompt(parts: Iterable[str]) -> str:
    """Join non-empty prompt parts with blank lines between them."""
    cleaned = [p.strip() for p in parts if p and p.strip()]
    return "\n\n".join(cleaned)


def _context_block(category: str, context: PageContext) -> str:
    actions = ", ".join(context.available_actions) if context.available_actions else "none"
    routes = "\n".join(
        f"- {r.name}: {r.path} - {r.description}" for r in routes_for_category(category)
    )
    return (
        "Current application context:\n"
        f"- Page: {context.current_page}\n"
        f"- Section: {context.current_section or 'N/A'}\n"
        f"- Available Actions: {actions}\n\n"
        "Application routes you can suggest:\n"
        f"{routes}"
    )


def build_system_prompt(category: str, context: Optional[PageContext] = None) -> str:
    context = context or PageContext()

    if category == "general":
        persona = render_general_persona()
    else:
        persona = render_persona(get_persona(category))

    return compose_system_prompt(
        [
            persona,
            _context_block(category, context),
            personality_prompt(),
            load_prompt("app_features_knowledge"),
            load_prompt("user_guide_style"),
            load_prompt("formatting_rules"),
        ]
    )
