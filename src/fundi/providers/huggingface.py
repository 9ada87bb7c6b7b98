from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from .. import config
from ..app_routes import best_route_for
from ..errors import ProviderError
from ..schemas import EmotionResult, EmotionScore, Message, StructuredResponse, Suggestion
from .base import Provider

logger = logging.getLogger(__name__)

ZERO_SHOT_MODELS = [
    "facebook/bart-large-mnli",
    "MoritzLaurer/mDeBERTa-v3-base-xnli-multilingual-nli-2mil7",
    "valhalla/distilbart-mnli-12-1",
]
EMOTION_MODELS = [
    "j-hartmann/emotion-english-distilroberta-base",
    "SamLowe/roberta-base-go_emotions",
    "bhadresh-savani/distilbert-base-uncased-emotion",
    "arpanghoshal/EmoRoBERTa",
]

CATEGORY_REPLIES: Dict[str, str] = {
    "finance": "I understand you're asking about finances. Your message: \"{m}\" seems to be related to financial matters. I can help with budgeting, investing, and financial planning.",
    "career": "I see you're interested in career development. Your message: \"{m}\" appears to be about professional growth. I can help with job searches, resume building, and interview preparation.",
    "wellness": "I understand you're focused on wellness. Your message: \"{m}\" seems to be about well-being. I can help with stress management, mental health tips, and self-care routines.",
    "learning": "I see you're interested in learning. Your message: \"{m}\" appears to be about education or skill development. I can help with study techniques, learning resources, and knowledge acquisition.",
    "emergency": "I notice this might be an emergency situation. Your message: \"{m}\" seems urgent. For immediate help, please contact emergency services or visit our emergency section.",
    "cooking": "I see you're interested in cooking. Your message: \"{m}\" seems to be about food or meal preparation. I can help with recipes, meal planning, and kitchen techniques.",
    "fitness": "I see you're focused on fitness. Your message: \"{m}\" seems to be about exercise or physical health. I can help with workouts, nutrition basics, and tracking progress.",
    "homeMaintenance": "I see you're asking about home repairs. Your message: \"{m}\" seems to be about fixing or diagnosing a household issue. I can help with maintenance tips, repair guidance, or the PicFix Smart Repair Assistant, which diagnoses problems from a photo.",
}
DEFAULT_REPLY = "I've received your message: \"{m}\". I'll do my best to assist you with that."


class _Retryable(Exception):
    """5xx or transport failure; worth another attempt or another model."""


class HuggingFaceProvider(Provider):
    """Secondary provider: hosted HuggingFace Inference API."""

    name = "huggingface"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        zero_shot_models: Optional[List[str]] = None,
        emotion_models: Optional[List[str]] = None,
    ):
        self.api_key = api_key if api_key is not None else config.HUGGINGFACE_API_KEY
        self.base_url = (base_url or config.HUGGINGFACE_BASE_URL).rstrip("/")
        self.zero_shot_models = zero_shot_models or list(ZERO_SHOT_MODELS)
        self.emotion_models = emotion_models or list(EMOTION_MODELS)
        self._client = client or httpx.AsyncClient(timeout=config.HUGGINGFACE_TIMEOUT_S)

    async def aclose(self) -> None:
        await self._client.aclose()

    # ---------- HTTP ----------
    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, max=3),
        retry=retry_if_exception_type(_Retryable),
        reraise=True,
    )
    async def _post_model(self, model: str, payload: Dict[str, Any]) -> Any:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        try:
            resp = await self._client.post(f"{self.base_url}/{model}", json=payload, headers=headers)
        except httpx.TransportError as e:
            raise _Retryable(f"{model}: {type(e).__name__}: {e}") from e

        if resp.status_code >= 500:
            raise _Retryable(f"{model}: HTTP {resp.status_code}")
        if resp.status_code >= 400:
            raise ProviderError(self.name, f"{model}: HTTP {resp.status_code} {resp.text[:200]}")
        try:
            return resp.json()
        except ValueError as e:
            raise ProviderError(self.name, f"{model}: response was not JSON") from e

    async def _query(self, models: Sequence[str], payload: Dict[str, Any]) -> Any:
        """Try each model in turn; a model that keeps failing with 5xx hands over to the next."""
        last: Optional[Exception] = None
        for model in models:
            try:
                return await self._post_model(model, payload)
            except _Retryable as e:
                logger.warning("HuggingFace model %s unavailable, trying next: %s", model, e)
                last = e
        raise ProviderError(self.name, f"all models failed: {last}")

    # ---------- Provider hooks ----------
    async def _zero_shot(self, message: str, labels: Sequence[str]) -> Dict[str, float]:
        data = await self._query(
            self.zero_shot_models,
            {"inputs": message, "parameters": {"candidate_labels": list(labels)}},
        )
        if isinstance(data, list) and data:
            data = data[0]
        if not isinstance(data, dict) or "labels" not in data or "scores" not in data:
            raise ProviderError(self.name, "unexpected zero-shot payload")
        return {str(l): float(s) for l, s in zip(data["labels"], data["scores"])}

    async def _remote_emotion(self, message: str) -> EmotionResult:
        data = await self._query(self.emotion_models, {"inputs": message})
        # [[{label, score}, ...]] or [{label, score}, ...]
        if isinstance(data, list) and data and isinstance(data[0], list):
            data = data[0]
        if not isinstance(data, list) or not data:
            raise ProviderError(self.name, "unexpected emotion payload")

        scored = sorted(
            (
                EmotionScore(emotion=str(item["label"]).lower(), score=float(item["score"]))
                for item in data
                if isinstance(item, dict) and "label" in item and "score" in item
            ),
            key=lambda e: e.score,
            reverse=True,
        )
        if not scored:
            raise ProviderError(self.name, "emotion payload had no labels")
        return EmotionResult(
            primary_emotion=scored[0].emotion,
            emotion_score=scored[0].score,
            emotions=scored,
        )

    async def _remote_generate(
        self, message: str, system_prompt: str, history: Sequence[Message]
    ) -> StructuredResponse:
        # no chat model here: classify, then answer from a category template
        result = await self.classify_category(message)
        text = message.strip()
        reply = CATEGORY_REPLIES.get(result.category, DEFAULT_REPLY).format(m=text)

        suggestions: List[Suggestion] = []
        route = best_route_for(result.category, text)
        if route is not None:
            suggestions.append(
                Suggestion(text="Visit related section", path=route.path, description=route.description)
            )
        return StructuredResponse(
            response=reply,
            sentiment="helpful",
            suggestions=suggestions,
            follow_up_questions=[
                "Would you like to try a different question?",
                "Can I help you with something more specific?",
            ],
        )
