"""Position ticks and narration scheduling.

Everything here runs on a single asyncio event loop. Ticks are plain
callbacks; the only suspension point is the narration service call, which
runs as a separate task while ticks keep firing.
"""

import asyncio
import time
from typing import Callable, Optional

from .config import CONFIG
from .errors import NarrationUnavailable
from .geo import bearing, bearing_to_compass, turn_hint
from .logger import Logger
from .models import NarrationContext, NarrationEvent, PositionFix, WalkPhase
from .route import Route, position_at
from .session import WalkingSession


class PeriodicTimer:
    """Repeating loop callback with an explicit arm()/cancel() lifecycle.

    Deadlines are computed from the previous deadline rather than from when
    the callback ran, so a slow callback does not stretch the period.
    cancel() takes effect immediately: no callback runs after it returns.
    """

    def __init__(self, period: float, callback: Callable[[], None], name: str = "timer"):
        if period <= 0:
            raise ValueError("period must be positive")
        self.period = period
        self.callback = callback
        self.name = name
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._handle: Optional[asyncio.TimerHandle] = None
        self._deadline = 0.0

    @property
    def armed(self) -> bool:
        return self._handle is not None

    def arm(self):
        """Start firing every period seconds. Must be called from the loop."""
        if self._handle is not None:
            return
        self._loop = asyncio.get_running_loop()
        self._deadline = self._loop.time() + self.period
        self._handle = self._loop.call_at(self._deadline, self._fire)

    def cancel(self):
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self):
        # Schedule the next deadline first; the callback may cancel() it.
        self._deadline += self.period
        now = self._loop.time()
        if self._deadline < now:
            # Fell behind (loop blocked); skip missed ticks instead of bursting.
            self._deadline = now + self.period
        self._handle = self._loop.call_at(self._deadline, self._fire)
        self.callback()


class NarrationScheduler:
    """Advances the walker every tick and decides when to request narration.

    Owns the position tick timer. The narration gate has no timer of its
    own; it is evaluated on every tick and dispatches at most one request
    at a time (single-flight). Completed narrations are appended to the
    session log unless identical to the last delivered message.
    """

    def __init__(self, session: WalkingSession, narrator,
                 logger: Optional[Logger] = None,
                 tick_period: float = CONFIG["tick_period"],
                 narration_period: float = CONFIG["narration_period"],
                 turn_threshold: float = CONFIG["turn_threshold"],
                 clock: Callable[[], float] = time.monotonic,
                 on_position: Optional[Callable[[PositionFix], None]] = None,
                 on_narration: Optional[Callable[[NarrationEvent], None]] = None,
                 on_complete: Optional[Callable[[], None]] = None):
        if narration_period <= 0:
            raise ValueError("narration_period must be positive")
        self.session = session
        self.narrator = narrator
        self.logger = logger or Logger(echo=False)
        self.tick_period = tick_period
        self.narration_period = narration_period
        self.turn_threshold = turn_threshold
        self.clock = clock
        self.on_position = on_position
        self.on_narration = on_narration
        self.on_complete = on_complete
        self.position_timer = PeriodicTimer(tick_period, self.tick, name="position")
        self._tasks: set[asyncio.Task] = set()
        self._skip_logged = False

    # --- timer lifecycle -------------------------------------------------

    def arm(self):
        self.position_timer.arm()

    def cancel(self):
        """Halt ticking. In-flight narration calls are left to finish."""
        self.position_timer.cancel()

    @property
    def armed(self) -> bool:
        return self.position_timer.armed

    @property
    def pending(self) -> set[asyncio.Task]:
        """Narration tasks that have not completed yet"""
        return set(self._tasks)

    # --- position --------------------------------------------------------

    def tick(self):
        """Advance by one tick period at the current pace"""
        session = self.session
        if not session.machine.is_walking or session.route is None:
            return

        speed = session.pace / 3.6  # km/h -> m/s
        session.total_distance_traveled += speed * self.tick_period

        fix = position_at(session.route, session.total_distance_traveled)
        if fix.complete:
            session.total_distance_traveled = session.route.total_distance()
        self._apply_fix(fix)
        # on_position may have paused or stopped the walk
        if not session.machine.is_walking:
            return

        self.maybe_narrate()

        if fix.complete and self.on_complete:
            self.on_complete()

    def place_at_start(self):
        """Put the walker on the first vertex without advancing"""
        self._apply_fix(position_at(self.session.route, 0.0))

    def _apply_fix(self, fix: PositionFix):
        self.session.current_coordinate = fix.coordinate
        self.session.current_segment_index = fix.segment_index
        if self.on_position:
            self.on_position(fix)

    # --- narration gate --------------------------------------------------

    def maybe_narrate(self, force: bool = False) -> bool:
        """Dispatch a narration request if the gate allows it.

        force skips the cadence check (used for the first narration of a
        walk) but never the single-flight check.
        """
        session = self.session
        if not session.machine.is_walking or session.current_coordinate is None:
            return False

        now = self.clock()
        if not force and session.last_narration_at is not None:
            if now - session.last_narration_at < self.narration_period:
                return False

        if session.narration_in_flight:
            # once per blocked request, not once per tick
            if not self._skip_logged:
                self.logger.log("Narration skipped, previous request still in flight")
                self._skip_logged = True
            return False

        context = self.build_context()
        session.narration_in_flight = True
        session.last_narration_at = now
        self._skip_logged = False
        self.logger.log("Narration requested", context.to_dict())

        task = asyncio.get_running_loop().create_task(
            self._narrate(context, session.run_id)
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return True

    def build_context(self) -> NarrationContext:
        session = self.session
        route = session.route
        index = session.current_segment_index
        last = route.length() - 1

        # a completed walk sits on the last vertex
        if index >= last:
            return NarrationContext(
                coordinate=session.current_coordinate,
                pace=session.pace,
                phase=WalkPhase.END,
            )

        heading = segment_bearing(route, index)
        direction = bearing_to_compass(heading) if heading is not None else None

        if index == 0:
            return NarrationContext(
                coordinate=session.current_coordinate,
                pace=session.pace,
                phase=WalkPhase.START,
                direction=direction,
            )

        turn = None
        incoming = segment_bearing(route, index - 1)
        if incoming is not None and heading is not None:
            turn = turn_hint(incoming, heading, self.turn_threshold)

        return NarrationContext(
            coordinate=session.current_coordinate,
            pace=session.pace,
            phase=WalkPhase.WALKING,
            direction=direction,
            turn=turn,
        )

    async def _narrate(self, context: NarrationContext, run_id: int):
        message = None
        error = None
        try:
            message = await self.narrator.narrate(context)
        except NarrationUnavailable as e:
            error = str(e)
        except Exception as e:
            # A misbehaving service must not take the walk down with it.
            error = f"{type(e).__name__}: {e}"
        finally:
            self.session.narration_in_flight = False

        if run_id != self.session.run_id:
            self.logger.log("Narration from a previous walk discarded", {"run": run_id})
            return

        if error is not None:
            self.apply_failure(error)
        else:
            self.apply_result(message)

    def apply_result(self, message: str) -> Optional[NarrationEvent]:
        """Record a successful narration unless it repeats the last one"""
        session = self.session
        if message == session.last_narration_message:
            self.logger.log("Duplicate narration suppressed")
            return None
        event = NarrationEvent(message=message)
        session.narration_log.append(event)
        session.last_narration_message = message
        self.logger.log("Narration received", {"message": message})
        if self.on_narration:
            self.on_narration(event)
        return event

    def apply_failure(self, reason: str) -> NarrationEvent:
        event = NarrationEvent(message=f"Error: {reason}", is_error=True)
        self.session.narration_log.append(event)
        self.logger.log("Narration failed", {"error": reason})
        if self.on_narration:
            self.on_narration(event)
        return event


def segment_bearing(route: Route, index: int) -> Optional[float]:
    """Bearing of segment index, or None for a zero-length segment"""
    if route.segment_distance(index) <= 0:
        return None
    return bearing(route.vertex_at(index), route.vertex_at(index + 1))
