from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional, Sequence

from ..errors import ProviderError
from ..fallbacks import home_suggestion, topic_fallback
from ..personality import greeting_kind, pick_greeting
from ..routing import classify
from ..schemas import CategoryResult, EmotionResult, Message, StructuredResponse

logger = logging.getLogger(__name__)


def greeting_response(kind: str) -> StructuredResponse:
    return StructuredResponse(
        response=pick_greeting(kind),
        sentiment="friendly",
        suggestions=[home_suggestion()],
        follow_up_questions=[
            "Would you like to explore your finances, career, or wellness today?",
        ],
    )


class Provider(ABC):
    """
    One remote backend. Subclasses implement the `_remote_*` hooks and may
    raise anything from them; the public methods turn failures into
    ProviderError so the orchestrator can tell "failed" from "pending".
    """

    name: str = "provider"

    # ---------- hooks ----------
    @abstractmethod
    async def _remote_generate(
        self, message: str, system_prompt: str, history: Sequence[Message]
    ) -> StructuredResponse: ...

    @abstractmethod
    async def _zero_shot(self, message: str, labels: Sequence[str]) -> Dict[str, float]: ...

    @abstractmethod
    async def _remote_emotion(self, message: str) -> EmotionResult: ...

    # ---------- public surface ----------
    async def generate_response(
        self,
        message: str,
        system_prompt: str,
        history: Sequence[Message] = (),
    ) -> StructuredResponse:
        if not history:
            kind = greeting_kind(message)
            if kind:
                logger.info("%s: greeting short-circuit (%s)", self.name, kind)
                return greeting_response(kind)

        try:
            return await self._remote_generate(message, system_prompt, history)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            canned = topic_fallback(message)
            if canned is not None:
                logger.warning("%s failed (%s); using canned topic response", self.name, e)
                return canned
            if isinstance(e, ProviderError):
                raise
            raise ProviderError(self.name, f"{type(e).__name__}: {e}") from e

    async def classify_category(
        self, message: str, preferred_category: Optional[str] = None
    ) -> CategoryResult:
        try:
            return await classify(
                message, preferred_category, zero_shot=self._zero_shot, raise_errors=True
            )
        except asyncio.CancelledError:
            raise
        except ProviderError:
            raise
        except Exception as e:
            raise ProviderError(self.name, f"classification failed: {type(e).__name__}: {e}") from e

    async def analyze_emotion(self, message: str) -> EmotionResult:
        try:
            return await self._remote_emotion(message)
        except asyncio.CancelledError:
            raise
        except ProviderError:
            raise
        except Exception as e:
            raise ProviderError(self.name, f"emotion analysis failed: {type(e).__name__}: {e}") from e

    async def aclose(self) -> None:
        return None
