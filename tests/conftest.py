import asyncio
import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import pytest
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage

from fundi.config import OrchestratorSettings
from fundi.errors import ProviderError
from fundi.providers.base import Provider
from fundi.schemas import EmotionResult, StructuredResponse


class FakeProvider(Provider):
    """
    Deterministic in-process provider.

    - `delay` seconds before answering (applies to every operation)
    - `fail` makes every remote hook raise ProviderError
    - `scores` is what the zero-shot hook returns
    Every remote call is logged in `calls`; `cancelled` counts branches
    the orchestrator cancelled mid-flight.
    """

    def __init__(
        self,
        name: str,
        reply: str = "REMOTE_REPLY",
        delay: float = 0.0,
        fail: bool = False,
        scores: Optional[Dict[str, float]] = None,
    ) -> None:
        self.name = name
        self.reply = reply
        self.delay = delay
        self.fail = fail
        self.scores = scores or {"general information": 0.9}
        self.calls: List[str] = []
        self.cancelled = 0

    async def _work(self, op: str) -> None:
        self.calls.append(op)
        try:
            await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled += 1
            raise
        if self.fail:
            raise ProviderError(self.name, f"{op} failed")

    async def _remote_generate(self, message, system_prompt, history) -> StructuredResponse:
        await self._work("generate")
        return StructuredResponse(response=self.reply, sentiment="neutral")

    async def _zero_shot(self, message: str, labels: Sequence[str]) -> Dict[str, float]:
        await self._work("zero_shot")
        return {k: v for k, v in self.scores.items() if k in labels} or {labels[0]: 0.1}

    async def _remote_emotion(self, message: str) -> EmotionResult:
        await self._work("emotion")
        return EmotionResult(primary_emotion="joy", emotion_score=0.8)

    def count(self, op: str) -> int:
        return sum(1 for c in self.calls if c == op)


@pytest.fixture()
def fast_settings() -> OrchestratorSettings:
    """Millisecond-scale timings so race tests finish quickly."""
    return OrchestratorSettings(
        max_failures=3,
        cooldown_period_ms=60_000,
        fallback_start_delay_ms=50,
        primary_timeout_ms=150,
        category_race_delay_ms=30,
        emotion_race_delay_ms=20,
        proactive_reset=False,
    )


@dataclass
class BedrockCall:
    messages: List[BaseMessage]
    max_tokens: int
    temperature: float


class FakeBedrock:
    """
    Stub for fundi.config.bedrock_chat.

    Routes on the shape of the call:
      - a leading SystemMessage   -> chat reply (`chat_raw`)
      - "candidate label" prompt  -> category scores (`scores`)
      - "emotional tone" prompt   -> emotion JSON
    """

    def __init__(self) -> None:
        self.calls: List[BedrockCall] = []
        self.chat_raw: str = json.dumps(
            {
                "response": "BEDROCK_ANSWER",
                "sentiment": "encouraging",
                "suggestions": [{"text": "Open the budget tool", "path": "/finance/budget"}],
                "followUpQuestions": ["Want to set a savings goal?"],
            }
        )
        self.scores: Dict[str, float] = {"general information": 0.8}
        self.emotion: Dict[str, Any] = {"primaryEmotion": "joy", "emotionScore": 0.7}
        self.error: Optional[Exception] = None

    def __call__(self, messages: List[BaseMessage], max_tokens: int = 700, temperature: float = 0.7) -> str:
        self.calls.append(BedrockCall(messages=list(messages), max_tokens=max_tokens, temperature=temperature))
        if self.error is not None:
            raise self.error

        if messages and isinstance(messages[0], SystemMessage):
            return self.chat_raw

        text = messages[-1].content if messages and isinstance(messages[-1], HumanMessage) else ""
        if "candidate label" in text:
            return json.dumps(self.scores)
        if "emotional tone" in text:
            return json.dumps(self.emotion)

        raise AssertionError(f"FakeBedrock got an unexpected call: {text[:80]!r}")


@pytest.fixture()
def fake_bedrock(monkeypatch) -> FakeBedrock:
    """Patch the Bedrock provider module so no AWS call happens."""
    from fundi.providers import bedrock as b

    fb = FakeBedrock()
    monkeypatch.setattr(b, "bedrock_chat", fb)
    return fb


@pytest.fixture()
def make_provider():
    """Factory for FakeProvider instances."""
    return FakeProvider
