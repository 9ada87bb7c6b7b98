"""
Fundi assistant core.

Modules:
- config:          env settings, logging setup, Bedrock client
- resources_loader: cached JSON tables (keywords, routes, personas, ...)
- safety:          crisis detection + fixed crisis responses
- routing:         keyword-first category classifier
- disclaimers:     topic disclaimers appended to system prompts
- prompt_builder:  system prompt assembly
- providers:       primary (Bedrock) and secondary (HuggingFace) backends
- failure_state:   primary-provider failure bookkeeping
- orchestrator:    staggered race between providers
- postprocess:     navigation suggestion validation + actions
- advisory:        sensitive content advisories
- graph:           LangGraph pipeline + generate_fundi_response entry point
"""

from .graph import generate_fundi_response

__all__ = ["generate_fundi_response"]
