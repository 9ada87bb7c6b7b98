from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, List, Sequence

import boto3
from dotenv import load_dotenv
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

load_dotenv()

AWS_REGION = os.getenv("AWS_REGION", "us-west-2")
MODEL_ID = os.getenv("BEDROCK_MODEL_ID", "anthropic.claude-3-5-sonnet-20240620-v1:0")
AWS_PROFILE = os.getenv("AWS_PROFILE")  # optional named profile

HUGGINGFACE_API_KEY = os.getenv("HUGGINGFACE_API_KEY", "")
HUGGINGFACE_BASE_URL = os.getenv(
    "HUGGINGFACE_BASE_URL", "https://api-inference.huggingface.co/models"
)
HUGGINGFACE_TIMEOUT_S = float(os.getenv("HUGGINGFACE_TIMEOUT_S", "30"))

LOG_LEVEL = os.getenv("FUNDI_LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class OrchestratorSettings:
    """Timing and threshold knobs for the provider race. All durations in ms."""

    max_failures: int = 3
    cooldown_period_ms: int = 60_000
    fallback_start_delay_ms: int = 8_000
    primary_timeout_ms: int = 15_000
    category_race_delay_ms: int = 3_000
    emotion_race_delay_ms: int = 2_000
    proactive_reset: bool = True

    @classmethod
    def from_env(cls) -> "OrchestratorSettings":
        return cls(
            max_failures=_env_int("FUNDI_MAX_FAILURES", 3),
            cooldown_period_ms=_env_int("FUNDI_COOLDOWN_PERIOD_MS", 60_000),
            fallback_start_delay_ms=_env_int("FUNDI_FALLBACK_START_DELAY_MS", 8_000),
            primary_timeout_ms=_env_int("FUNDI_PRIMARY_TIMEOUT_MS", 15_000),
            category_race_delay_ms=_env_int("FUNDI_CATEGORY_RACE_DELAY_MS", 3_000),
            emotion_race_delay_ms=_env_int("FUNDI_EMOTION_RACE_DELAY_MS", 2_000),
            proactive_reset=_env_bool("FUNDI_PROACTIVE_RESET", True),
        )


def configure_logging(level: str = LOG_LEVEL) -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


# -------------------------
# Bedrock
# -------------------------
@lru_cache(maxsize=1)
def _bedrock_client():
    if AWS_PROFILE:
        session = boto3.Session(profile_name=AWS_PROFILE, region_name=AWS_REGION)
        return session.client("bedrock-runtime", region_name=AWS_REGION)
    return boto3.client("bedrock-runtime", region_name=AWS_REGION)


def _to_anthropic_messages(messages: Sequence[BaseMessage]) -> tuple[str, List[Dict[str, str]]]:
    system_parts: List[str] = []
    convo: List[Dict[str, str]] = []

    for m in messages:
        if isinstance(m, SystemMessage):
            system_parts.append(m.content or "")
        elif isinstance(m, HumanMessage):
            convo.append({"role": "user", "content": m.content or ""})
        elif isinstance(m, AIMessage):
            convo.append({"role": "assistant", "content": m.content or ""})
        else:
            convo.append({"role": "assistant", "content": getattr(m, "content", str(m))})

    system_text = "\n".join([s for s in system_parts if s.strip()]).strip()
    return system_text, convo


def bedrock_chat(
    messages: Sequence[BaseMessage],
    max_tokens: int = 700,
    temperature: float = 0.7,
) -> str:
    """
    Bedrock Anthropic Messages API call using LangChain BaseMessage objects.

    The system prompt goes top-level; the message list carries only
    "user" and "assistant" turns.
    """
    system_text, convo = _to_anthropic_messages(messages)

    body: Dict[str, Any] = {
        "anthropic_version": "bedrock-2023-05-31",
        "max_tokens": max_tokens,
        "temperature": temperature,
        "messages": convo,
    }
    if system_text:
        body["system"] = system_text

    resp = _bedrock_client().invoke_model(
        modelId=MODEL_ID,
        accept="application/json",
        contentType="application/json",
        body=json.dumps(body),
    )
    data = json.loads(resp["body"].read())

    out = []
    for block in data.get("content", []):
        if block.get("type") == "text":
            out.append(block.get("text", ""))
    return "".join(out).strip()
