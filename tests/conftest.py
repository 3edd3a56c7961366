from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import pytest

PROJECT_BASE = Path(__file__).resolve().parents[1]
if str(PROJECT_BASE) not in sys.path:
    sys.path.insert(0, str(PROJECT_BASE))

from walkradio.errors import NarrationUnavailable
from walkradio.logger import Logger
from walkradio.route import Route


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedNarrator:
    """Replies with the scripted messages in order, then repeats the last one.

    Exception instances in the script are raised instead of returned.
    """

    def __init__(self, *replies):
        self.replies = list(replies) or ["Nice view."]
        self.calls = []

    async def narrate(self, context):
        self.calls.append(context)
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        return reply


class GatedNarrator:
    """Holds every call open until release() is called"""

    def __init__(self, message: str = "Held reply."):
        self.message = message
        self.calls = []
        self._gate = None

    async def narrate(self, context):
        self.calls.append(context)
        if self._gate is None:
            self._gate = asyncio.Event()
        await self._gate.wait()
        return self.message

    def release(self):
        self._gate.set()


class FailingNarrator:
    async def narrate(self, context):
        raise NarrationUnavailable("service down")


async def drain(simulation) -> None:
    """Wait for every outstanding narration call of the simulation"""
    pending = simulation.scheduler.pending
    if pending:
        await asyncio.gather(*pending)


def tick(simulation, clock: FakeClock, times: int = 1) -> None:
    for _ in range(times):
        clock.advance(simulation.scheduler.tick_period)
        simulation.scheduler.tick()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def logger() -> Logger:
    return Logger(echo=False)


@pytest.fixture
def short_route() -> Route:
    # ~111 m due east along the equator
    return Route.from_pairs([(0.0, 0.0), (0.0, 0.001)])


@pytest.fixture
def corner_route() -> Route:
    # east for ~111 m, then north for ~111 m
    return Route.from_pairs([(0.0, 0.0), (0.0, 0.001), (0.001, 0.001)])
