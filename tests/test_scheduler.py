"""Tests for the tick timer and the narration gate."""

from __future__ import annotations

import asyncio

import pytest

from conftest import FailingNarrator, GatedNarrator, ScriptedNarrator, drain, tick
from walkradio.errors import NarrationUnavailable
from walkradio.models import WalkPhase, WalkState
from walkradio.scheduler import PeriodicTimer
from walkradio.simulation import WalkSimulation


# ── PeriodicTimer ─────────────────────────────────────────────────────────


class TestPeriodicTimer:
    def test_rejects_non_positive_period(self):
        with pytest.raises(ValueError):
            PeriodicTimer(0, lambda: None)

    def test_fires_repeatedly_until_cancelled(self):
        async def scenario():
            fired = []
            timer = PeriodicTimer(0.01, lambda: fired.append(1))
            timer.arm()
            assert timer.armed
            await asyncio.sleep(0.1)
            timer.cancel()
            assert not timer.armed
            count = len(fired)
            await asyncio.sleep(0.05)
            return count, len(fired)

        count, later = asyncio.run(scenario())
        assert count >= 2
        assert later == count

    def test_callback_can_cancel_its_own_timer(self):
        async def scenario():
            fired = []

            def once():
                fired.append(1)
                timer.cancel()

            timer = PeriodicTimer(0.01, once)
            timer.arm()
            await asyncio.sleep(0.08)
            return fired, timer.armed

        fired, armed = asyncio.run(scenario())
        assert fired == [1]
        assert not armed

    def test_arm_twice_keeps_one_schedule(self):
        async def scenario():
            fired = []
            timer = PeriodicTimer(0.1, lambda: fired.append(1))
            timer.arm()
            timer.arm()
            await asyncio.sleep(0.15)
            timer.cancel()
            return fired

        assert len(asyncio.run(scenario())) == 1


# ── Narration gate ────────────────────────────────────────────────────────


def make_simulation(route, clock, narrator, logger, **kwargs):
    return WalkSimulation(narrator, route=route, clock=clock, logger=logger, **kwargs)


def test_start_dispatches_initial_narration(short_route, clock, logger):
    narrator = ScriptedNarrator("Welcome to the equator.")

    async def scenario():
        sim = make_simulation(short_route, clock, narrator, logger)
        sim.start()
        assert sim.session.narration_in_flight
        await drain(sim)
        sim.stop()
        return sim

    sim = asyncio.run(scenario())
    assert len(narrator.calls) == 1
    assert narrator.calls[0].phase is WalkPhase.START
    assert narrator.calls[0].coordinate == short_route.start
    assert [e.message for e in sim.narration_log] == ["Welcome to the equator."]
    assert not sim.session.narration_in_flight


def test_narration_cadence_follows_dispatch_time(corner_route, clock, logger):
    narrator = ScriptedNarrator("one", "two", "three")

    async def scenario():
        sim = make_simulation(corner_route, clock, narrator, logger, pace=5)
        sim.start()
        await drain(sim)
        tick(sim, clock, 19)
        calls_before = len(narrator.calls)
        tick(sim, clock, 1)
        await drain(sim)
        sim.stop()
        return calls_before

    calls_before = asyncio.run(scenario())
    assert calls_before == 1
    assert len(narrator.calls) == 2


def test_single_flight(corner_route, clock, logger):
    narrator = GatedNarrator("Slow answer.")

    async def scenario():
        sim = make_simulation(corner_route, clock, narrator, logger, pace=5)
        sim.start()
        await asyncio.sleep(0)
        tick(sim, clock, 45)
        calls_while_blocked = len(narrator.calls)
        narrator.release()
        await drain(sim)
        tick(sim, clock, 1)
        await drain(sim)
        sim.stop()
        return sim, calls_while_blocked

    sim, calls_while_blocked = asyncio.run(scenario())
    assert calls_while_blocked == 1
    assert len(narrator.calls) == 2
    assert "Narration skipped, previous request still in flight" in logger.messages()
    # second reply repeats the first, so only one entry
    assert [e.message for e in sim.narration_log] == ["Slow answer."]


def test_blocked_narration_is_logged_once(corner_route, clock, logger):
    narrator = GatedNarrator("Slow answer.")

    async def scenario():
        sim = make_simulation(corner_route, clock, narrator, logger, pace=5)
        sim.start()
        await asyncio.sleep(0)
        tick(sim, clock, 60)
        narrator.release()
        await drain(sim)
        sim.stop()

    asyncio.run(scenario())
    assert logger.messages().count("Narration skipped, previous request still in flight") == 1


def test_pause_from_position_callback_skips_narration(short_route, clock, logger):
    narrator = ScriptedNarrator("a", "b")
    holder = {}

    def pause_after_first_step(fix):
        if holder["sim"].distance_traveled > 0:
            holder["sim"].pause()

    async def scenario():
        sim = make_simulation(short_route, clock, narrator, logger, narration_period=1,
                              on_position=pause_after_first_step)
        holder["sim"] = sim
        sim.start()
        await drain(sim)
        tick(sim, clock)
        await drain(sim)
        return sim

    sim = asyncio.run(scenario())
    assert sim.state is WalkState.PAUSED
    assert not sim.scheduler.armed
    assert len(narrator.calls) == 1
    assert [e.message for e in sim.narration_log] == ["a"]


def test_pause_on_final_step_completes_after_resume(short_route, clock, logger):
    holder = {}

    def pause_at_end(fix):
        if fix.complete and not holder.get("paused"):
            holder["paused"] = holder["sim"].pause()

    async def scenario():
        sim = make_simulation(short_route, clock, ScriptedNarrator(), logger, pace=50,
                              on_position=pause_at_end)
        holder["sim"] = sim
        sim.start()
        await drain(sim)
        tick(sim, clock, 9)  # 9 * 13.9 m covers the 111 m route
        paused_state = sim.state
        sim.resume()
        tick(sim, clock)
        await drain(sim)
        return sim, paused_state

    sim, paused_state = asyncio.run(scenario())
    assert paused_state is WalkState.PAUSED
    assert sim.state is WalkState.STOPPED
    assert sim.position == short_route.end
    assert "Illegal transition" not in logger.messages()
    assert "Route complete" in logger.messages()


def test_identical_consecutive_narration_is_suppressed(short_route, clock, logger):
    narrator = ScriptedNarrator("same", "same", "different")

    async def scenario():
        sim = make_simulation(short_route, clock, narrator, logger, narration_period=2, pace=1)
        sim.start()
        await drain(sim)
        for _ in range(2):
            tick(sim, clock, 2)
            await drain(sim)
        sim.stop()
        return sim

    sim = asyncio.run(scenario())
    assert len(narrator.calls) == 3
    assert [e.message for e in sim.narration_log] == ["same", "different"]
    assert sim.session.last_narration_message == "different"
    assert "Duplicate narration suppressed" in logger.messages()


def test_failure_is_logged_and_walk_continues(short_route, clock, logger):
    async def scenario():
        sim = make_simulation(short_route, clock, FailingNarrator(), logger, pace=1)
        sim.start()
        await drain(sim)
        tick(sim, clock, 3)
        return sim

    sim = asyncio.run(scenario())
    assert sim.state is WalkState.WALKING
    assert sim.distance_traveled > 0
    [event] = sim.narration_log
    assert event.is_error
    assert event.message == "Error: service down"
    assert sim.session.last_narration_message is None
    assert not sim.session.narration_in_flight


def test_failure_does_not_reset_duplicate_tracking(short_route, clock, logger):
    narrator = ScriptedNarrator("hello", NarrationUnavailable("timeout"), "hello")

    async def scenario():
        sim = make_simulation(short_route, clock, narrator, logger, narration_period=1, pace=1)
        sim.start()
        await drain(sim)
        for _ in range(2):
            tick(sim, clock, 1)
            await drain(sim)
        sim.stop()
        return sim

    sim = asyncio.run(scenario())
    assert [e.message for e in sim.narration_log] == ["hello", "Error: timeout"]


def test_unexpected_exception_becomes_error_entry(short_route, clock, logger):
    narrator = ScriptedNarrator(RuntimeError("boom"))

    async def scenario():
        sim = make_simulation(short_route, clock, narrator, logger)
        sim.start()
        await drain(sim)
        sim.stop()
        return sim

    sim = asyncio.run(scenario())
    [event] = sim.narration_log
    assert event.is_error
    assert event.message == "Error: RuntimeError: boom"


def test_result_after_stop_is_applied_without_restarting(short_route, clock, logger):
    narrator = GatedNarrator("Late but welcome.")

    async def scenario():
        sim = make_simulation(short_route, clock, narrator, logger)
        sim.start()
        await asyncio.sleep(0)
        sim.stop()
        narrator.release()
        await drain(sim)
        return sim

    sim = asyncio.run(scenario())
    assert sim.state is WalkState.STOPPED
    assert not sim.scheduler.armed
    assert [e.message for e in sim.narration_log] == ["Late but welcome."]


def test_result_from_previous_walk_is_discarded(short_route, clock, logger):
    narrator = GatedNarrator("Old news.")

    async def scenario():
        sim = make_simulation(short_route, clock, narrator, logger)
        sim.start()
        await asyncio.sleep(0)
        sim.stop()
        sim.start()
        calls_after_restart = len(narrator.calls)
        narrator.release()
        await drain(sim)
        sim.stop()
        return sim, calls_after_restart

    sim, calls_after_restart = asyncio.run(scenario())
    # the restart could not dispatch while the old call was in flight
    assert calls_after_restart == 1
    assert sim.narration_log == []
    assert not sim.session.narration_in_flight
    assert "Narration from a previous walk discarded" in logger.messages()


# ── Narration context ─────────────────────────────────────────────────────


def test_context_on_first_segment_is_start_with_heading(corner_route, clock, logger):
    narrator = ScriptedNarrator()

    async def scenario():
        sim = make_simulation(corner_route, clock, narrator, logger)
        sim.start()
        await drain(sim)
        sim.stop()

    asyncio.run(scenario())
    context = narrator.calls[0]
    assert context.phase is WalkPhase.START
    assert context.direction == "E"
    assert context.turn is None
    assert context.pace == 20


def test_context_after_corner_reports_turn(corner_route, clock, logger):
    async def scenario():
        sim = make_simulation(corner_route, clock, ScriptedNarrator(), logger, pace=50)
        sim.start()
        await drain(sim)
        tick(sim, clock, 10)  # ~139 m, past the corner at ~111 m
        await drain(sim)
        context = sim.scheduler.build_context()
        sim.stop()
        return sim, context

    sim, context = asyncio.run(scenario())
    assert sim.segment_index == 1
    assert context.phase is WalkPhase.WALKING
    assert context.direction == "N"
    assert context.turn == "left"


def test_context_at_route_end(short_route, clock, logger):
    async def scenario():
        sim = make_simulation(short_route, clock, ScriptedNarrator(), logger, pace=50)
        sim.start()
        await drain(sim)
        tick(sim, clock, 10)
        await drain(sim)
        return sim, sim.scheduler.build_context()

    sim, context = asyncio.run(scenario())
    assert sim.state is WalkState.STOPPED
    assert context.phase is WalkPhase.END
    assert context.direction is None
