from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Dict, List, Literal, Optional, Sequence, TypedDict, Union

from langgraph.graph import END, START, StateGraph

from .advisory import get_content_advisory
from .config import OrchestratorSettings
from .disclaimers import inject_disclaimers
from .fallbacks import emergency_reply
from .orchestrator import ResilientOrchestrator
from .postprocess import post_process
from .prompt_builder import PageContext, build_system_prompt
from .providers import BedrockProvider, HuggingFaceProvider
from .safety import crisis_response_for, detect_crisis
from .schemas import Advisory, FundiReply, Message, NavigateAction, StructuredResponse

logger = logging.getLogger(__name__)


# -------------------------
# State
# -------------------------
class State(TypedDict, total=False):
    message: str
    conversation_id: Optional[int]
    history: List[Message]
    context: PageContext
    preferred_category: Optional[str]
    is_minor: bool

    is_crisis: bool
    category: str
    confidence: float
    system_prompt: str
    response: StructuredResponse
    actions: List[NavigateAction]
    advisory: Optional[Advisory]
    reply: FundiReply


# -------------------------
# Build graph
# -------------------------
def build_graph(orchestrator: ResilientOrchestrator):
    """
    crisis_gate -> (crisis | classify -> respond) -> post_process -> advise -> END

    No checkpointer: the caller owns the conversation history.
    """

    def crisis_gate(state: State) -> Dict[str, Any]:
        return {"is_crisis": detect_crisis(state.get("message", ""))}

    def branch_after_gate(state: State) -> Literal["crisis", "classify"]:
        return "crisis" if state.get("is_crisis") else "classify"

    def crisis_node(state: State) -> Dict[str, Any]:
        # fixed template; no provider calls
        return {
            "response": crisis_response_for(state["message"]),
            "category": "emergency",
            "confidence": 1.0,
        }

    async def classify_node(state: State) -> Dict[str, Any]:
        result = await orchestrator.classify_category(
            state["message"], state.get("preferred_category")
        )
        logger.info("Category %s (%.2f)", result.category, result.confidence)
        return {"category": result.category, "confidence": result.confidence}

    async def respond_node(state: State) -> Dict[str, Any]:
        prompt = build_system_prompt(state["category"], state.get("context"))
        prompt = inject_disclaimers(prompt, state["message"])
        response = await orchestrator.generate_response(
            state["message"], prompt, state.get("history", [])
        )
        return {"system_prompt": prompt, "response": response}

    def post_process_node(state: State) -> Dict[str, Any]:
        result = post_process(
            state["response"], state["category"], state.get("context"), state["message"]
        )
        return {"response": result.response, "actions": result.actions}

    def advise_node(state: State) -> Dict[str, Any]:
        advisory = get_content_advisory(state["message"], state.get("is_minor", False))
        reply = FundiReply(
            **state["response"].model_dump(),
            category=state["category"],
            confidence=state.get("confidence", 0.5),
            actions=state.get("actions", []),
            advisory=advisory,
            conversation_id=state.get("conversation_id"),
        )
        return {"advisory": advisory, "reply": reply}

    g = StateGraph(State)
    g.add_node("crisis_gate", crisis_gate)
    g.add_node("crisis", crisis_node)
    g.add_node("classify", classify_node)
    g.add_node("respond", respond_node)
    g.add_node("post_process", post_process_node)
    g.add_node("advise", advise_node)

    g.add_edge(START, "crisis_gate")
    g.add_conditional_edges(
        "crisis_gate",
        branch_after_gate,
        {"crisis": "crisis", "classify": "classify"},
    )
    g.add_edge("crisis", "post_process")
    g.add_edge("classify", "respond")
    g.add_edge("respond", "post_process")
    g.add_edge("post_process", "advise")
    g.add_edge("advise", END)

    return g.compile()


# -------------------------
# Default wiring
# -------------------------
@lru_cache(maxsize=1)
def get_orchestrator() -> ResilientOrchestrator:
    return ResilientOrchestrator(
        primary=BedrockProvider(),
        secondary=HuggingFaceProvider(),
        settings=OrchestratorSettings.from_env(),
    )


@lru_cache(maxsize=1)
def default_graph():
    return build_graph(get_orchestrator())


async def close_default_orchestrator() -> None:
    """Close the cached orchestrator's HTTP clients, if one was ever built."""
    if get_orchestrator.cache_info().currsize == 0:
        return
    orchestrator = get_orchestrator()
    default_graph.cache_clear()
    get_orchestrator.cache_clear()
    await orchestrator.aclose()


def _coerce_history(previous: Optional[Sequence[Union[Message, Dict[str, Any]]]]) -> List[Message]:
    out: List[Message] = []
    for m in previous or []:
        out.append(m if isinstance(m, Message) else Message.model_validate(m))
    return out


async def generate_fundi_response(
    message: str,
    conversation_id: Optional[int],
    previous_messages: Optional[Sequence[Union[Message, Dict[str, Any]]]] = None,
    context: Optional[PageContext] = None,
    preferred_category: Optional[str] = None,
    is_minor: bool = False,
    graph=None,
) -> FundiReply:
    """
    Single entry point for the rest of the app. Never raises: an
    unexpected internal error still yields a complete, in-voice reply.
    """
    try:
        state: State = {
            "message": message or "",
            "conversation_id": conversation_id,
            "history": _coerce_history(previous_messages),
            "context": context or PageContext(),
            "preferred_category": preferred_category,
            "is_minor": is_minor,
        }
        final = await (graph or default_graph()).ainvoke(state)
        return final["reply"]
    except Exception:
        logger.exception("Fundi pipeline failed for conversation %s", conversation_id)
        return FundiReply(**emergency_reply().model_dump(), conversation_id=conversation_id)
