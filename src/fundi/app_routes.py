from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, FrozenSet, List, Optional

from .errors import RouteValidationError
from .resources_loader import load_app_routes

HOME = "/"


@dataclass(frozen=True)
class RouteInfo:
    path: str
    name: str
    description: str
    categories: FrozenSet[str]
    keywords: FrozenSet[str]
    diagnostic_tool: bool = False

    def serves(self, category: str) -> bool:
        return category in self.categories or "all" in self.categories


@lru_cache
def route_table() -> Dict[str, RouteInfo]:
    return {
        path: RouteInfo(
            path=path,
            name=info["name"],
            description=info["description"],
            categories=frozenset(info.get("categories", [])),
            keywords=frozenset(k.lower() for k in info.get("keywords", [])),
            diagnostic_tool=bool(info.get("diagnostic_tool", False)),
        )
        for path, info in load_app_routes().items()
    }


def normalize_path(path: str) -> str:
    p = (path or "").strip().split("?", 1)[0].split("#", 1)[0]
    if not p.startswith("/"):
        p = "/" + p
    if len(p) > 1:
        p = p.rstrip("/") or HOME
    return p.lower()


def is_valid_route(path: str) -> bool:
    return normalize_path(path) in route_table()


def require_route(path: str) -> RouteInfo:
    info = route_table().get(normalize_path(path))
    if info is None:
        raise RouteValidationError(path)
    return info


def closest_valid_route(path: str) -> Optional[str]:
    """Shortest whitelisted ancestor or prefix of `path` (never Home)."""
    p = normalize_path(path)
    candidates = [
        valid
        for valid in route_table()
        if valid != HOME and (p.startswith(valid) or valid.startswith(p))
    ]
    if not candidates:
        return None
    return min(candidates, key=lambda v: (len(v), v))


def routes_for_category(category: str) -> List[RouteInfo]:
    """Routes relevant to a category, sorted by path. `general` gets everything."""
    table = route_table()
    if category == "general":
        return [table[p] for p in sorted(table)]
    return [table[p] for p in sorted(table) if table[p].serves(category)]


def best_route_for(category: str, message: str = "") -> Optional[RouteInfo]:
    """Category route with the most keyword hits in `message`; ties keep table order."""
    text = (message or "").lower()
    best: Optional[RouteInfo] = None
    best_hits = -1
    for info in route_table().values():
        if category not in info.categories:
            continue
        hits = sum(1 for k in info.keywords if k in text)
        if hits > best_hits:
            best, best_hits = info, hits
    return best


def diagnostic_route() -> Optional[RouteInfo]:
    for info in route_table().values():
        if info.diagnostic_tool:
            return info
    return None
