"""WalkRadio - simulated walks with narrated commentary."""

from .config import CONFIG
from .errors import (
    WalkRadioError,
    InvalidRoute,
    InvalidPace,
    IllegalTransition,
    RouteUnavailable,
    NarrationUnavailable,
)
from .models import (
    Coordinate,
    PositionFix,
    WalkState,
    WalkEvent,
    WalkPhase,
    NarrationContext,
    NarrationEvent,
)
from .logger import Logger
from .geo import (
    haversine_distance,
    bearing_between,
    distance,
    bearing,
    bearing_to_compass,
    turn_hint,
    interpolate_line,
    retry_with_backoff,
)
from .route import Route, position_at
from .state import WalkingStateMachine
from .session import WalkingSession
from .scheduler import PeriodicTimer, NarrationScheduler
from .simulation import WalkSimulation
from .routing import RouteProvider, OSRMRouter, parse_brouter_url, is_brouter_url
from .narration import NarrationService, LangFlowNarrator, OfflineNarrator, build_prompt
from .recorder import WalkRecorder
from .audio import Audio

__all__ = [
    "CONFIG",
    "WalkRadioError",
    "InvalidRoute",
    "InvalidPace",
    "IllegalTransition",
    "RouteUnavailable",
    "NarrationUnavailable",
    "Coordinate",
    "PositionFix",
    "WalkState",
    "WalkEvent",
    "WalkPhase",
    "NarrationContext",
    "NarrationEvent",
    "Logger",
    "haversine_distance",
    "bearing_between",
    "distance",
    "bearing",
    "bearing_to_compass",
    "turn_hint",
    "interpolate_line",
    "retry_with_backoff",
    "Route",
    "position_at",
    "WalkingStateMachine",
    "WalkingSession",
    "PeriodicTimer",
    "NarrationScheduler",
    "WalkSimulation",
    "RouteProvider",
    "OSRMRouter",
    "parse_brouter_url",
    "is_brouter_url",
    "NarrationService",
    "LangFlowNarrator",
    "OfflineNarrator",
    "build_prompt",
    "WalkRecorder",
    "Audio",
]
