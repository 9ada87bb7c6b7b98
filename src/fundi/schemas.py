from __future__ import annotations

import json
import re
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ResponseParseError

Role = Literal["user", "assistant", "system"]


class _Model(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class Message(_Model):
    model_config = ConfigDict(frozen=True)

    role: Role
    content: str


class Suggestion(_Model):
    text: str
    path: Optional[str] = None
    description: Optional[str] = None
    action: Optional[Any] = None


class StructuredResponse(_Model):
    response: str
    sentiment: str = "neutral"
    suggestions: List[Suggestion] = Field(default_factory=list)
    follow_up_questions: List[str] = Field(default_factory=list, alias="followUpQuestions")
    personality: Optional[str] = None
    is_emergency_response: Optional[bool] = Field(default=None, alias="isEmergencyResponse")

    # crisis template extras
    resources: List[str] = Field(default_factory=list)
    priority: Optional[str] = None
    follow_up: Optional[str] = Field(default=None, alias="followUp")

    @field_validator("response")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("response must not be empty")
        return v


class CategoryResult(_Model):
    category: str
    confidence: float = Field(ge=0.0, le=1.0)


class EmotionScore(_Model):
    emotion: str
    score: float = Field(ge=0.0, le=1.0)


class EmotionResult(_Model):
    primary_emotion: str = Field(alias="primaryEmotion")
    emotion_score: float = Field(ge=0.0, le=1.0, alias="emotionScore")
    emotions: List[EmotionScore] = Field(default_factory=list)


class NavigatePayload(_Model):
    route: str
    reason: str


class NavigateAction(_Model):
    type: Literal["navigate"] = "navigate"
    payload: NavigatePayload
    # the assistant never navigates on its own
    requires_confirmation: Literal[True] = Field(default=True, alias="requiresConfirmation")


class Advisory(_Model):
    title: str
    description: str
    category: str
    level: str


class FundiReply(StructuredResponse):
    category: str = "general"
    confidence: float = 0.5
    actions: List[NavigateAction] = Field(default_factory=list)
    advisory: Optional[Advisory] = None
    conversation_id: Optional[int] = Field(default=None, alias="conversationId")


def neutral_emotion() -> EmotionResult:
    return EmotionResult(
        primary_emotion="neutral",
        emotion_score=0.5,
        emotions=[
            EmotionScore(emotion="neutral", score=0.5),
            EmotionScore(emotion="calm", score=0.3),
            EmotionScore(emotion="interest", score=0.2),
        ],
    )


# -------------------------
# Provider payload parsing
# -------------------------
_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL | re.IGNORECASE)
_TEXT_KEYS = ("content", "message", "text")


def _text_from(obj: Dict[str, Any]) -> Optional[str]:
    for key in _TEXT_KEYS:
        val = obj.get(key)
        if isinstance(val, str) and val.strip():
            return val
    return None


def _coerce_suggestions(raw: Any) -> List[Dict[str, Any]]:
    if not isinstance(raw, list):
        return []
    out: List[Dict[str, Any]] = []
    for item in raw:
        if isinstance(item, str) and item.strip():
            out.append({"text": item})
        elif isinstance(item, dict) and isinstance(item.get("text"), str):
            out.append(
                {
                    "text": item["text"],
                    "path": item.get("path") if isinstance(item.get("path"), str) else None,
                    "description": item.get("description") if isinstance(item.get("description"), str) else None,
                    "action": item.get("action"),
                }
            )
    return out


def _coerce_questions(data: Dict[str, Any]) -> List[str]:
    raw = data.get("followUpQuestions", data.get("follow_up_questions", []))
    if not isinstance(raw, list):
        return []
    return [q for q in raw if isinstance(q, str) and q.strip()]


def parse_provider_payload(raw: Any, provider: str = "provider") -> StructuredResponse:
    """
    Coerce whatever a provider returned into a StructuredResponse.

    Rules, applied in order:
      - JSON object with a string "response"        -> validated as-is
      - "response" is itself an object               -> its text/content/message is used
      - JSON object without "response"               -> "content" / "message" / "text" promoted
      - anything that is not JSON                    -> wrapped verbatim as "response"

    Raises ResponseParseError when none of those yield non-empty text.
    """
    data: Any = raw
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", errors="replace")

    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            raise ResponseParseError(provider, "empty payload")
        fenced = _FENCE_RE.match(text)
        if fenced:
            text = fenced.group(1).strip()
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            return StructuredResponse(response=raw.strip())
        if isinstance(data, str):
            if not data.strip():
                raise ResponseParseError(provider, "empty JSON string")
            return StructuredResponse(response=data)

    if not isinstance(data, dict):
        raise ResponseParseError(provider, f"unexpected payload type {type(data).__name__}")

    response = data.get("response")
    if isinstance(response, dict):
        response = _text_from(response)
    if not isinstance(response, str) or not response.strip():
        response = _text_from(data)
    if response is None:
        raise ResponseParseError(provider, "payload has no response text")

    sentiment = data.get("sentiment")
    personality = data.get("personality")
    try:
        return StructuredResponse(
            response=response,
            sentiment=sentiment if isinstance(sentiment, str) and sentiment else "neutral",
            suggestions=_coerce_suggestions(data.get("suggestions")),
            follow_up_questions=_coerce_questions(data),
            personality=personality if isinstance(personality, str) else None,
        )
    except ValidationError as e:
        raise ResponseParseError(provider, str(e)) from e
