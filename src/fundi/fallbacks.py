from __future__ import annotations

import random
from typing import Optional

from .resources_loader import load_topic_fallbacks
from .schemas import StructuredResponse, Suggestion

HOME_SUGGESTION_TEXT = "Would you like me to take you back to the Home page?"

BOTH_PROVIDERS_DOWN = (
    "I'm experiencing technical difficulties with both AI systems. "
    "Please try again with a simpler question or check back later."
)
SECONDARY_DOWN = (
    "I'm experiencing technical difficulties with the AI system. "
    "Please try again with a simpler question or check back later."
)
GENERIC_SORRY = "I'm sorry, I couldn't process your request right now. Could you please try again?"


def home_suggestion() -> Suggestion:
    return Suggestion(text=HOME_SUGGESTION_TEXT, path="/", description="Return to home")


def apology(message: str = GENERIC_SORRY) -> StructuredResponse:
    return StructuredResponse(
        response=message,
        sentiment="apologetic",
        suggestions=[home_suggestion()],
        follow_up_questions=["Would you like to try a different question?"],
    )


def topic_fallback(message: str) -> Optional[StructuredResponse]:
    """Canned informative answer for well-known topics, or None."""
    text = (message or "").lower()
    for entry in load_topic_fallbacks():
        if any(k in text for k in entry["keywords"]):
            return StructuredResponse(
                response=entry["response"],
                sentiment="helpful",
                suggestions=[Suggestion(**s) for s in entry.get("suggestions", [])]
                + [home_suggestion()],
                follow_up_questions=list(entry.get("follow_up_questions", [])),
            )
    return None


def local_fallback(message: str) -> StructuredResponse:
    return topic_fallback(message) or apology()


# ---------- Last-resort replies when the pipeline itself breaks ----------
_EMERGENCY_REPLIES = [
    StructuredResponse(
        response=(
            "I'm here to help with your questions about personal development, finances, "
            "wellness, and more. What would you like to explore today?"
        ),
        sentiment="helpful",
        suggestions=[
            Suggestion(text="Would you like me to take you to the Finance Coach section?", path="/finance"),
            Suggestion(text="Would you like me to take you to the Fitness Coach section?", path="/fitness"),
        ],
        follow_up_questions=[
            "What skills are you most interested in developing?",
            "Is there a specific life challenge you're facing right now?",
        ],
    ),
    StructuredResponse(
        response=(
            "I'm experiencing a temporary issue connecting to my knowledge services. I can still "
            "help with basic questions and guide you to different sections of the app."
        ),
        sentiment="apologetic",
        suggestions=[
            Suggestion(text="Would you like me to take you to the Wellness Coach section?", path="/wellness"),
            Suggestion(text="Would you like me to take you to the Learning Coach section?", path="/learning"),
        ],
        follow_up_questions=[
            "Would you like to try asking a different question?",
            "Is there a specific feature of the app you'd like to explore?",
        ],
    ),
    StructuredResponse(
        response=(
            "I'm having trouble accessing my advanced reasoning capabilities at the moment. "
            "Let me help guide you to some useful resources instead."
        ),
        sentiment="helpful",
        suggestions=[
            Suggestion(text="Would you like me to take you to the Learning Coach section?", path="/learning"),
        ],
        follow_up_questions=[
            "What topic are you most interested in exploring today?",
            "Would you like me to show you some of our popular tools?",
        ],
    ),
]


def emergency_reply() -> StructuredResponse:
    chosen = random.choice(_EMERGENCY_REPLIES)
    return chosen.model_copy(
        update={"suggestions": [*chosen.suggestions, home_suggestion()]}, deep=True
    )
