"""Walking simulation: the control surface around a session and its scheduler."""

import time
from typing import Callable, Iterable, Optional, Union

from .config import CONFIG
from .errors import IllegalTransition, InvalidPace, InvalidRoute
from .logger import Logger
from .models import Coordinate, NarrationEvent, PositionFix, WalkEvent, WalkState
from .route import Route
from .scheduler import NarrationScheduler
from .session import WalkingSession


class WalkSimulation:
    """Simulates a pedestrian walking a route and narrating along the way.

    Control methods return True when they changed the state and False when
    the request was not legal in the current state (the attempt is logged).
    Must be driven from a running asyncio event loop.
    """

    def __init__(self, narrator, route: Optional[Union[Route, Iterable[Coordinate]]] = None,
                 pace: float = CONFIG["default_pace"],
                 logger: Optional[Logger] = None,
                 tick_period: float = CONFIG["tick_period"],
                 narration_period: float = CONFIG["narration_period"],
                 turn_threshold: float = CONFIG["turn_threshold"],
                 clock: Callable[[], float] = time.monotonic,
                 on_position: Optional[Callable[[PositionFix], None]] = None,
                 on_narration: Optional[Callable[[NarrationEvent], None]] = None,
                 on_state_change: Optional[Callable[[WalkState, WalkState], None]] = None):
        self.logger = logger or Logger(echo=False)
        self.session = WalkingSession(pace=_check_pace(pace))
        self.on_state_change = on_state_change
        self.scheduler = NarrationScheduler(
            self.session, narrator,
            logger=self.logger,
            tick_period=tick_period,
            narration_period=narration_period,
            turn_threshold=turn_threshold,
            clock=clock,
            on_position=on_position,
            on_narration=on_narration,
            on_complete=self._complete_route,
        )
        if route is not None:
            self.set_route(route)

    # --- read accessors ----------------------------------------------------

    @property
    def state(self) -> WalkState:
        return self.session.state

    @property
    def route(self) -> Optional[Route]:
        return self.session.route

    @property
    def pace(self) -> float:
        return self.session.pace

    @property
    def position(self) -> Optional[Coordinate]:
        return self.session.current_coordinate

    @property
    def segment_index(self) -> int:
        return self.session.current_segment_index

    @property
    def distance_traveled(self) -> float:
        return self.session.total_distance_traveled

    @property
    def progress(self) -> float:
        return self.session.progress()

    @property
    def narration_log(self) -> list[NarrationEvent]:
        """Narration events, oldest first"""
        return list(self.session.narration_log)

    def recent_narrations(self) -> list[NarrationEvent]:
        """Narration events, most recent first (display order)"""
        return list(reversed(self.session.narration_log))

    def get_state(self) -> dict:
        """Current state as dict for logging"""
        state = self.session.to_dict()
        if self.session.route:
            state["route_distance"] = round(self.session.route.total_distance(), 1)
        return state

    # --- control surface -------------------------------------------------

    def set_route(self, route: Union[Route, Iterable[Coordinate]]):
        """Replace the route. Any walk in progress is stopped and progress reset.

        Raises InvalidRoute (leaving the current route untouched) if the new
        route has fewer than two points.
        """
        if not isinstance(route, Route):
            route = Route(route)
        if not self.session.machine.is_stopped:
            self.stop()
        self.session.route = route
        self.session.run_id += 1
        self.session.reset_progress()
        self.logger.log("Route loaded", {
            "points": route.length(),
            "distance": round(route.total_distance(), 1),
        })

    def set_pace(self, pace: float):
        """Change pace in km/h; applies from the next tick onward"""
        pace = _check_pace(pace)
        old = self.session.pace
        self.session.pace = pace
        self.logger.log("Pace changed", {"from": old, "to": pace})

    def start(self) -> bool:
        """Start walking from the beginning of the route"""
        if self.session.route is None:
            raise InvalidRoute("no route loaded")
        if not self._transition(WalkEvent.START):
            return False

        self.session.run_id += 1
        self.session.reset_progress()
        self.scheduler.place_at_start()
        self.scheduler.maybe_narrate(force=True)
        if self.session.machine.is_walking:
            self.scheduler.arm()
        self.logger.log("Walk started", self.get_state())
        return True

    def pause(self) -> bool:
        if not self._transition(WalkEvent.PAUSE):
            return False
        self.scheduler.cancel()
        self.logger.log("Walk paused", self.get_state())
        return True

    def resume(self) -> bool:
        """Continue a paused walk without resetting distance"""
        if not self._transition(WalkEvent.CONTINUE):
            return False
        self.scheduler.arm()
        self.logger.log("Walk continued", self.get_state())
        return True

    def stop(self) -> bool:
        """Stop walking. Stopping an already stopped walk is a silent no-op."""
        if self.session.machine.is_stopped:
            return False
        if not self._transition(WalkEvent.STOP):
            return False
        self.scheduler.cancel()
        self.logger.log("Walk stopped", self.get_state())
        return True

    def _complete_route(self):
        if not self._transition(WalkEvent.ROUTE_COMPLETE):
            return
        self.scheduler.cancel()
        self.logger.log("Route complete", self.get_state())

    def _transition(self, event: WalkEvent) -> bool:
        machine = self.session.machine
        old = machine.state
        try:
            new = machine.fire(event)
        except IllegalTransition as e:
            self.logger.log("Illegal transition", {"state": old.value, "event": event.value, "error": str(e)})
            return False
        self.logger.log("State change", {"from": old.value, "to": new.value, "event": event.value})
        if self.on_state_change:
            self.on_state_change(old, new)
        return True


def _check_pace(pace: float) -> float:
    try:
        pace = float(pace)
    except (TypeError, ValueError):
        raise InvalidPace(f"pace must be a number, got {pace!r}")
    if not CONFIG["min_pace"] <= pace <= CONFIG["max_pace"]:
        raise InvalidPace(
            f"pace must be between {CONFIG['min_pace']} and {CONFIG['max_pace']} km/h, got {pace}"
        )
    return pace
