from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Sequence, TypeVar

from .config import OrchestratorSettings
from .failure_state import FailureState
from .fallbacks import BOTH_PROVIDERS_DOWN, SECONDARY_DOWN, apology
from .providers.base import Provider
from .schemas import CategoryResult, EmotionResult, Message, StructuredResponse, neutral_emotion

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AllProvidersFailed(Exception):
    """Internal: both branches of a race failed."""


class ResilientOrchestrator:
    """
    Runs every call against the primary provider first and brings the
    secondary in when the primary is slow, broken, or switched off.

    Race shape (per call):
      - primary starts immediately
      - secondary starts after `delay`, or at once if the primary fails first
      - `primary_timeout` (generate only) charges the primary a failure but
        does not stop it
      - first success wins; the other branch is cancelled
    A request charges the primary at most one failure.
    """

    def __init__(
        self,
        primary: Provider,
        secondary: Provider,
        failure_state: Optional[FailureState] = None,
        settings: Optional[OrchestratorSettings] = None,
    ):
        self.primary = primary
        self.secondary = secondary
        self.settings = settings or OrchestratorSettings()
        self.failures = failure_state or FailureState(
            max_failures=self.settings.max_failures,
            cooldown_period_ms=self.settings.cooldown_period_ms,
        )

    # -------------------------
    # Operator controls
    # -------------------------
    def toggle_fallback_mode(self, use_fallback: Optional[bool] = None) -> Dict[str, bool]:
        forced = self.failures.set_forced(use_fallback)
        logger.info("Fallback mode %s by operator", "forced" if forced else "released")
        return {"use_fallback": forced}

    def reset_failures(self) -> Dict[str, Any]:
        self.failures.reset()
        return self.get_fallback_status()

    def get_fallback_status(self) -> Dict[str, Any]:
        use_fallback = self.failures.should_use_fallback()
        snap = self.failures.snapshot()
        return {
            "use_fallback": use_fallback,
            "forced_fallback": snap.forced_fallback,
            "failure_count": snap.failure_count,
            "time_since_last_failure_ms": self.failures.time_since_last_failure_ms(),
            "cooldown_period_ms": self.settings.cooldown_period_ms,
            "max_failures": self.settings.max_failures,
            "primary_provider": self.primary.name,
            "fallback_provider": self.secondary.name,
        }

    async def aclose(self) -> None:
        await self.primary.aclose()
        await self.secondary.aclose()

    # -------------------------
    # Public operations
    # -------------------------
    async def generate_response(
        self, message: str, system_prompt: str, history: Sequence[Message] = ()
    ) -> StructuredResponse:
        self._begin_request()
        history = list(history)

        if self.failures.should_use_fallback():
            logger.info("Primary provider bypassed (forced or cooling down); using %s", self.secondary.name)
            try:
                return await self.secondary.generate_response(message, system_prompt, history)
            except Exception as e:
                logger.error("Secondary provider failed in fallback mode: %s", e)
                return apology(SECONDARY_DOWN)

        try:
            return await self._race(
                "generate",
                lambda: self.primary.generate_response(message, system_prompt, history),
                lambda: self.secondary.generate_response(message, system_prompt, history),
                delay_ms=self.settings.fallback_start_delay_ms,
                timeout_ms=self.settings.primary_timeout_ms,
            )
        except AllProvidersFailed:
            logger.error("All AI providers failed")
            return apology(BOTH_PROVIDERS_DOWN)

    async def classify_category(
        self, message: str, preferred_category: Optional[str] = None
    ) -> CategoryResult:
        self._begin_request()
        default = CategoryResult(category=preferred_category or "general", confidence=0.5)

        if self.failures.should_use_fallback():
            try:
                return await self.secondary.classify_category(message, preferred_category)
            except Exception as e:
                logger.error("Secondary category classification failed: %s", e)
                return default

        try:
            return await self._race(
                "classify",
                lambda: self.primary.classify_category(message, preferred_category),
                lambda: self.secondary.classify_category(message, preferred_category),
                delay_ms=self.settings.category_race_delay_ms,
            )
        except AllProvidersFailed:
            logger.error("All category providers failed")
            return default

    async def analyze_emotion(self, message: str) -> EmotionResult:
        self._begin_request()

        if self.failures.should_use_fallback():
            try:
                return await self.secondary.analyze_emotion(message)
            except Exception as e:
                logger.error("Secondary emotion analysis failed: %s", e)
                return neutral_emotion()

        try:
            return await self._race(
                "emotion",
                lambda: self.primary.analyze_emotion(message),
                lambda: self.secondary.analyze_emotion(message),
                delay_ms=self.settings.emotion_race_delay_ms,
            )
        except AllProvidersFailed:
            logger.error("All emotion providers failed")
            return neutral_emotion()

    # -------------------------
    # Internals
    # -------------------------
    def _begin_request(self) -> None:
        if self.settings.proactive_reset and self.failures.reset():
            logger.info("Failure state cleared at request start")

    async def _race(
        self,
        op: str,
        primary_call: Callable[[], Awaitable[T]],
        secondary_call: Callable[[], Awaitable[T]],
        delay_ms: int,
        timeout_ms: Optional[int] = None,
    ) -> T:
        loop = asyncio.get_running_loop()
        started = loop.time()
        stagger_at = started + delay_ms / 1000.0
        timeout_at = started + timeout_ms / 1000.0 if timeout_ms is not None else None

        primary = asyncio.ensure_future(primary_call())
        secondary: Optional[asyncio.Future] = None
        charged = False
        timeout_noted = False

        def charge(reason: str) -> None:
            nonlocal charged
            if not charged:
                charged = True
                self.failures.record_failure()
                logger.warning("[%s] primary charged a failure: %s", op, reason)

        def start_secondary(reason: str) -> asyncio.Future:
            logger.info("[%s] starting %s (%s)", op, self.secondary.name, reason)
            return asyncio.ensure_future(secondary_call())

        try:
            while True:
                running = [t for t in (primary, secondary) if t is not None and not t.done()]

                deadlines = []
                if secondary is None:
                    deadlines.append(stagger_at)
                if timeout_at is not None and not timeout_noted and not primary.done():
                    deadlines.append(timeout_at)
                wait_s = max(0.0, min(deadlines) - loop.time()) if deadlines else None

                if running:
                    done, _ = await asyncio.wait(
                        running, timeout=wait_s, return_when=asyncio.FIRST_COMPLETED
                    )
                else:
                    done = set()

                if primary in done:
                    exc = primary.exception()
                    if exc is None:
                        if secondary is not None and secondary in done and not secondary.cancelled():
                            # secondary settled in the same round
                            lost = secondary.exception()
                            if lost is not None:
                                logger.warning("[%s] %s failed: %s", op, self.secondary.name, lost)
                        # a success after the soft timeout does not undo the charge
                        if not charged:
                            self.failures.record_success()
                        logger.info("[%s] %s responded first", op, self.primary.name)
                        return primary.result()
                    logger.warning("[%s] %s failed: %s", op, self.primary.name, exc)
                    charge("error")
                    if secondary is None:
                        secondary = start_secondary("primary failed")
                        continue

                if secondary is not None and secondary in done:
                    exc = secondary.exception()
                    if exc is None:
                        charge(f"{self.secondary.name} won")
                        logger.info("[%s] %s responded first", op, self.secondary.name)
                        return secondary.result()
                    logger.warning("[%s] %s failed: %s", op, self.secondary.name, exc)

                if primary.done() and secondary is not None and secondary.done():
                    raise AllProvidersFailed(op)

                now = loop.time()
                if secondary is None and now >= stagger_at:
                    secondary = start_secondary(f"primary still pending after {delay_ms}ms")
                if (
                    timeout_at is not None
                    and not timeout_noted
                    and not primary.done()
                    and now >= timeout_at
                ):
                    timeout_noted = True
                    charge(f"timed out after {timeout_ms}ms")
        finally:
            for task in (primary, secondary):
                if task is not None and not task.done():
                    task.cancel()
