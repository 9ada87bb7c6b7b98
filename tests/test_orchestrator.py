from __future__ import annotations

import asyncio
import gc
from dataclasses import replace

import pytest

from fundi.errors import ProviderError
from fundi.fallbacks import BOTH_PROVIDERS_DOWN, SECONDARY_DOWN
from fundi.orchestrator import ResilientOrchestrator

MSG = "Tell me something about planets"


def _orch(primary, secondary, settings):
    return ResilientOrchestrator(primary, secondary, settings=settings)


@pytest.mark.asyncio
async def test_fast_primary_wins_and_secondary_never_starts(make_provider, fast_settings):
    primary = make_provider("primary", reply="P")
    secondary = make_provider("secondary", reply="S")
    orch = _orch(primary, secondary, fast_settings)

    out = await orch.generate_response(MSG, "SYS")

    assert out.response == "P"
    assert secondary.calls == []
    assert orch.get_fallback_status()["failure_count"] == 0


@pytest.mark.asyncio
async def test_failing_primary_starts_secondary_immediately(make_provider, fast_settings):
    primary = make_provider("primary", fail=True)
    secondary = make_provider("secondary", reply="S")
    orch = _orch(primary, secondary, replace(fast_settings, fallback_start_delay_ms=5_000))

    loop = asyncio.get_running_loop()
    started = loop.time()
    out = await orch.generate_response(MSG, "SYS")
    elapsed = loop.time() - started

    # no waiting out the 5s stagger
    assert elapsed < 1.0

    assert out.response == "S"
    assert secondary.count("generate") == 1
    # one request charges at most one failure
    assert orch.get_fallback_status()["failure_count"] == 1


@pytest.mark.asyncio
async def test_slow_primary_loses_race_and_is_cancelled(make_provider, fast_settings):
    primary = make_provider("primary", reply="P", delay=1.0)
    secondary = make_provider("secondary", reply="S")
    orch = _orch(primary, secondary, fast_settings)

    out = await orch.generate_response(MSG, "SYS")
    await asyncio.sleep(0.01)

    assert out.response == "S"
    assert primary.cancelled == 1
    assert orch.get_fallback_status()["failure_count"] == 1


@pytest.mark.asyncio
async def test_both_failing_returns_apology_with_home_suggestion(make_provider, fast_settings):
    orch = _orch(
        make_provider("primary", fail=True),
        make_provider("secondary", fail=True),
        fast_settings,
    )

    out = await orch.generate_response(MSG, "SYS")

    assert out.response == BOTH_PROVIDERS_DOWN
    assert out.sentiment == "apologetic"
    assert "/" in [s.path for s in out.suggestions]


@pytest.mark.asyncio
async def test_late_primary_success_keeps_timeout_charge(make_provider, fast_settings):
    # secondary fails fast, primary answers after the soft timeout
    primary = make_provider("primary", reply="P", delay=0.3)
    secondary = make_provider("secondary", fail=True)
    orch = _orch(primary, secondary, fast_settings)

    out = await orch.generate_response(MSG, "SYS")

    assert out.response == "P"
    assert orch.get_fallback_status()["failure_count"] == 1


@pytest.mark.asyncio
async def test_secondary_error_is_read_when_both_finish_together(make_provider, fast_settings):
    loop = asyncio.get_running_loop()
    unhandled = []
    previous = loop.get_exception_handler()
    loop.set_exception_handler(lambda _loop, ctx: unhandled.append(ctx))
    try:
        orch = _orch(make_provider("primary"), make_provider("secondary"), fast_settings)
        primary_fut = loop.create_future()
        secondary_fut = loop.create_future()

        def finish_both():
            primary_fut.set_result("P")
            secondary_fut.set_exception(ProviderError("secondary", "boom"))

        # secondary starts at once, then both settle in one loop tick
        loop.call_later(0.02, finish_both)
        out = await orch._race("generate", lambda: primary_fut, lambda: secondary_fut, delay_ms=0)

        del primary_fut, secondary_fut
        gc.collect()
    finally:
        loop.set_exception_handler(previous)

    assert out == "P"
    assert unhandled == []


@pytest.mark.asyncio
async def test_repeated_failures_switch_to_secondary_only(make_provider, fast_settings):
    primary = make_provider("primary", fail=True)
    secondary = make_provider("secondary", reply="S")
    orch = _orch(primary, secondary, fast_settings)

    for _ in range(3):
        assert (await orch.generate_response(MSG, "SYS")).response == "S"
    assert primary.count("generate") == 3

    status = orch.get_fallback_status()
    assert status["failure_count"] == 3
    assert status["use_fallback"] is True

    out = await orch.generate_response(MSG, "SYS")
    assert out.response == "S"
    assert primary.count("generate") == 3


@pytest.mark.asyncio
async def test_proactive_reset_keeps_trying_primary(make_provider, fast_settings):
    primary = make_provider("primary", fail=True)
    secondary = make_provider("secondary", reply="S")
    orch = _orch(primary, secondary, replace(fast_settings, proactive_reset=True))

    for _ in range(4):
        await orch.generate_response(MSG, "SYS")

    assert primary.count("generate") == 4
    assert orch.get_fallback_status()["failure_count"] == 1


@pytest.mark.asyncio
async def test_forced_fallback_bypasses_primary(make_provider, fast_settings):
    primary = make_provider("primary", reply="P")
    secondary = make_provider("secondary", reply="S")
    orch = _orch(primary, secondary, fast_settings)

    assert orch.toggle_fallback_mode(True) == {"use_fallback": True}
    out = await orch.generate_response(MSG, "SYS")

    assert out.response == "S"
    assert primary.calls == []

    # no argument flips the flag back
    assert orch.toggle_fallback_mode() == {"use_fallback": False}
    assert (await orch.generate_response(MSG, "SYS")).response == "P"


@pytest.mark.asyncio
async def test_forced_fallback_with_broken_secondary_apologizes(make_provider, fast_settings):
    orch = _orch(make_provider("primary"), make_provider("secondary", fail=True), fast_settings)
    orch.toggle_fallback_mode(True)

    out = await orch.generate_response(MSG, "SYS")

    assert out.response == SECONDARY_DOWN
    assert "/" in [s.path for s in out.suggestions]


@pytest.mark.asyncio
async def test_reset_failures_clears_count_and_forced_flag(make_provider, fast_settings):
    orch = _orch(make_provider("primary", fail=True), make_provider("secondary"), fast_settings)
    await orch.generate_response(MSG, "SYS")
    orch.toggle_fallback_mode(True)

    status = orch.reset_failures()

    assert status["failure_count"] == 0
    assert status["forced_fallback"] is False
    assert status["use_fallback"] is False


def test_status_reports_providers_and_settings(make_provider, fast_settings):
    orch = _orch(make_provider("primary"), make_provider("secondary"), fast_settings)

    status = orch.get_fallback_status()

    assert set(status) == {
        "use_fallback",
        "forced_fallback",
        "failure_count",
        "time_since_last_failure_ms",
        "cooldown_period_ms",
        "max_failures",
        "primary_provider",
        "fallback_provider",
    }
    assert status["primary_provider"] == "primary"
    assert status["fallback_provider"] == "secondary"
    assert status["time_since_last_failure_ms"] is None
    assert status["max_failures"] == 3


# -------------------------
# Category / emotion races
# -------------------------
@pytest.mark.asyncio
async def test_category_uses_primary_scores(make_provider, fast_settings):
    primary = make_provider("primary", scores={"cooking and food preparation": 0.85})
    secondary = make_provider("secondary")
    orch = _orch(primary, secondary, fast_settings)

    out = await orch.classify_category(MSG)

    assert out.category == "cooking"
    assert out.confidence == pytest.approx(0.85)
    assert secondary.calls == []


@pytest.mark.asyncio
async def test_category_defaults_when_everything_fails(make_provider, fast_settings):
    orch = _orch(
        make_provider("primary", fail=True),
        make_provider("secondary", fail=True),
        fast_settings,
    )

    out = await orch.classify_category(MSG)

    assert out.category == "general"
    assert out.confidence == 0.5


@pytest.mark.asyncio
async def test_emotion_falls_back_to_secondary_then_neutral(make_provider, fast_settings):
    orch = _orch(
        make_provider("primary", fail=True),
        make_provider("secondary"),
        fast_settings,
    )
    assert (await orch.analyze_emotion(MSG)).primary_emotion == "joy"

    dead = _orch(
        make_provider("primary", fail=True),
        make_provider("secondary", fail=True),
        fast_settings,
    )
    out = await dead.analyze_emotion(MSG)
    assert out.primary_emotion == "neutral"
    assert out.emotion_score == 0.5
    assert [e.emotion for e in out.emotions] == ["neutral", "calm", "interest"]
