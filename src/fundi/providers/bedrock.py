from __future__ import annotations

import asyncio
import json
import logging
from typing import Dict, List, Sequence

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from pydantic import ValidationError

from ..config import bedrock_chat
from ..errors import ProviderError
from ..prompt_loader import load_prompt
from ..schemas import EmotionResult, Message, StructuredResponse, parse_provider_payload
from .base import Provider

logger = logging.getLogger(__name__)


def _fill(template: str, **values: str) -> str:
    # Avoid .format() because templates contain JSON braces
    for key, val in values.items():
        template = template.replace("{" + key + "}", val)
    return template


def to_langchain(history: Sequence[Message]) -> List[BaseMessage]:
    """
    Convert caller-owned history to LangChain messages. Leading assistant
    turns are dropped since the Messages API wants the user to speak first.
    """
    out: List[BaseMessage] = []
    for m in history:
        if m.role == "system":
            out.append(SystemMessage(content=m.content))
        elif m.role == "user":
            out.append(HumanMessage(content=m.content))
        elif any(isinstance(x, HumanMessage) for x in out):
            out.append(AIMessage(content=m.content))
    return out


def _json_object(raw: str, what: str) -> dict:
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ProviderError(BedrockProvider.name, f"{what}: not JSON") from e
    if not isinstance(data, dict):
        raise ProviderError(BedrockProvider.name, f"{what}: expected a JSON object")
    return data


class BedrockProvider(Provider):
    """Primary provider: Anthropic on AWS Bedrock."""

    name = "bedrock"

    def __init__(self, max_tokens: int = 700, temperature: float = 0.7):
        self.max_tokens = max_tokens
        self.temperature = temperature

    async def _chat(self, messages: List[BaseMessage], max_tokens: int, temperature: float) -> str:
        # boto3 is blocking
        return await asyncio.to_thread(
            bedrock_chat, messages, max_tokens=max_tokens, temperature=temperature
        )

    async def _remote_generate(
        self, message: str, system_prompt: str, history: Sequence[Message]
    ) -> StructuredResponse:
        msgs: List[BaseMessage] = [
            SystemMessage(content=system_prompt),
            *to_langchain(history),
            HumanMessage(content=message),
        ]
        raw = await self._chat(msgs, self.max_tokens, self.temperature)
        return parse_provider_payload(raw, self.name)

    async def _zero_shot(self, message: str, labels: Sequence[str]) -> Dict[str, float]:
        prompt = _fill(
            load_prompt("classify_category"),
            labels="\n".join(f"- {label}" for label in labels),
            message=message,
        )
        raw = await self._chat([HumanMessage(content=prompt)], max_tokens=300, temperature=0.0)
        data = _json_object(raw, "category scores")

        scores: Dict[str, float] = {}
        for label in labels:
            val = data.get(label)
            if isinstance(val, (int, float)):
                scores[label] = max(0.0, min(1.0, float(val)))
        if not scores:
            raise ProviderError(self.name, "category scores: no known labels")
        return scores

    async def _remote_emotion(self, message: str) -> EmotionResult:
        prompt = _fill(load_prompt("analyze_emotion"), message=message)
        raw = await self._chat([HumanMessage(content=prompt)], max_tokens=200, temperature=0.0)
        try:
            return EmotionResult.model_validate(_json_object(raw, "emotion"))
        except ValidationError as e:
            raise ProviderError(self.name, f"emotion: {e}") from e
