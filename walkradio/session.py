"""Mutable state of one walking simulation."""

from dataclasses import dataclass, field
from typing import Optional

from .config import CONFIG
from .models import Coordinate, NarrationEvent, WalkState
from .route import Route
from .state import WalkingStateMachine


@dataclass
class WalkingSession:
    """Progress, narration bookkeeping and state of a single walk.

    Owned by exactly one WalkSimulation; nothing else mutates it.
    """
    route: Optional[Route] = None
    pace: float = CONFIG["default_pace"]  # km/h
    machine: WalkingStateMachine = field(default_factory=WalkingStateMachine)
    total_distance_traveled: float = 0.0  # meters
    current_coordinate: Optional[Coordinate] = None
    current_segment_index: int = 0
    last_narration_at: Optional[float] = None  # clock seconds at dispatch
    last_narration_message: Optional[str] = None
    narration_in_flight: bool = False
    narration_log: list[NarrationEvent] = field(default_factory=list)
    run_id: int = 0  # bumped on every start and route change so late results can be matched to their run

    @property
    def state(self) -> WalkState:
        return self.machine.state

    def reset_progress(self):
        """Back to the start of the route, with an empty narration log"""
        self.total_distance_traveled = 0.0
        self.current_coordinate = self.route.vertex_at(0) if self.route else None
        self.current_segment_index = 0
        self.last_narration_at = None
        self.last_narration_message = None
        self.narration_log = []

    def progress(self) -> float:
        """Fraction of the route walked, 0.0 - 1.0"""
        if not self.route or self.route.total_distance() <= 0:
            return 0.0
        return min(1.0, self.total_distance_traveled / self.route.total_distance())

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "pace": self.pace,
            "distance": round(self.total_distance_traveled, 2),
            "progress": round(self.progress(), 4),
            "segment_index": self.current_segment_index,
            "location": self.current_coordinate.to_dict() if self.current_coordinate else None,
            "narrations": len(self.narration_log),
            "narration_in_flight": self.narration_in_flight,
        }
