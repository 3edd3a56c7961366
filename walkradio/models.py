"""Data classes for WalkRadio."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class Coordinate:
    lat: float
    lng: float

    def __post_init__(self):
        if not -90 <= self.lat <= 90:
            raise ValueError(f"latitude out of range: {self.lat}")
        if not -180 <= self.lng <= 180:
            raise ValueError(f"longitude out of range: {self.lng}")

    def to_dict(self) -> dict:
        return {"lat": self.lat, "lng": self.lng}


@dataclass(frozen=True)
class PositionFix:
    """A point on the route and the vertex index immediately preceding it"""
    coordinate: Coordinate
    segment_index: int
    complete: bool = False


class WalkState(Enum):
    STOPPED = "stopped"
    WALKING = "walking"
    PAUSED = "paused"


class WalkEvent(Enum):
    START = "start"
    PAUSE = "pause"
    CONTINUE = "continue"
    STOP = "stop"
    ROUTE_COMPLETE = "complete route"


class WalkPhase(Enum):
    START = "start"
    WALKING = "walking"
    END = "end"


@dataclass(frozen=True)
class NarrationContext:
    """Everything a narration service is told about the walker"""
    coordinate: Coordinate
    pace: float  # km/h
    phase: WalkPhase
    direction: Optional[str] = None  # compass abbreviation, e.g. "NE"
    turn: Optional[str] = None  # "left" / "right"

    def to_dict(self) -> dict:
        return {
            "coordinate": self.coordinate.to_dict(),
            "pace": self.pace,
            "phase": self.phase.value,
            "direction": self.direction,
            "turn": self.turn,
        }


@dataclass(frozen=True)
class NarrationEvent:
    message: str
    timestamp: datetime = field(default_factory=datetime.now)
    is_error: bool = False

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp.isoformat(),
            "message": self.message,
            "is_error": self.is_error,
        }
