from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
from typing import Dict, List, Tuple

from .resources_loader import load_personas

# order in which the general persona borrows specialist capabilities
SPECIALIST_ORDER: Tuple[str, ...] = (
    "finance",
    "career",
    "wellness",
    "learning",
    "emergency",
    "cooking",
    "fitness",
)

LABELS: Dict[str, str] = {
    "finance": "Finance",
    "career": "Career",
    "wellness": "Wellness",
    "learning": "Learning",
    "emergency": "Emergency",
    "cooking": "Cooking",
    "fitness": "Fitness",
    "homeMaintenance": "Home Maintenance",
}


@dataclass(frozen=True)
class Persona:
    category: str
    role: str
    capabilities: List[str] = field(default_factory=list)
    limitations: List[str] = field(default_factory=list)
    guidelines: List[str] = field(default_factory=list)


@lru_cache
def personas() -> Dict[str, Persona]:
    return {
        category: Persona(
            category=category,
            role=raw["role"],
            capabilities=list(raw.get("capabilities", [])),
            limitations=list(raw.get("limitations", [])),
            guidelines=list(raw.get("guidelines", [])),
        )
        for category, raw in load_personas().items()
    }


def get_persona(category: str) -> Persona:
    table = personas()
    return table.get(category) or table["general"]


def _bullets(items: List[str]) -> str:
    return "\n".join(f"- {i}" for i in items)


def render_persona(p: Persona) -> str:
    parts = [p.role]
    if p.capabilities:
        parts.append("Capabilities:\n" + _bullets(p.capabilities))
    if p.limitations:
        parts.append("Limitations:\n" + _bullets(p.limitations))
    if p.guidelines:
        parts.append("When responding:\n" + _bullets(p.guidelines))
    return "\n\n".join(parts)


def render_general_persona() -> str:
    """General persona followed by every specialist's capabilities."""
    sections = [render_persona(get_persona("general"))]
    sections.append("You can also help with everything the specialist coaches cover:")
    for category in SPECIALIST_ORDER:
        p = personas().get(category)
        if p is None:
            continue
        sections.append(f"{LABELS[category]} Capabilities:\n" + _bullets(p.capabilities))
    return "\n\n".join(sections)
