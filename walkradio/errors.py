"""Exceptions raised by WalkRadio."""


class WalkRadioError(Exception):
    """Base class for all WalkRadio errors"""


class InvalidRoute(WalkRadioError, ValueError):
    """Route has fewer than two points, or no route is loaded"""


class InvalidPace(WalkRadioError, ValueError):
    """Pace outside the accepted range"""


class IllegalTransition(WalkRadioError):
    """Event not allowed in the current walking state"""

    def __init__(self, state, event):
        self.state = state
        self.event = event
        super().__init__(f"cannot {event.value} while {state.value}")


class RouteUnavailable(WalkRadioError):
    """Route provider could not produce a route"""


class NarrationUnavailable(WalkRadioError):
    """Narration service failed to return commentary"""
