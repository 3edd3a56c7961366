"""Walking state machine."""

from .errors import IllegalTransition
from .models import WalkEvent, WalkState

TRANSITIONS = {
    (WalkState.STOPPED, WalkEvent.START): WalkState.WALKING,
    (WalkState.WALKING, WalkEvent.PAUSE): WalkState.PAUSED,
    (WalkState.PAUSED, WalkEvent.CONTINUE): WalkState.WALKING,
    (WalkState.WALKING, WalkEvent.STOP): WalkState.STOPPED,
    (WalkState.PAUSED, WalkEvent.STOP): WalkState.STOPPED,
    (WalkState.WALKING, WalkEvent.ROUTE_COMPLETE): WalkState.STOPPED,
}


class WalkingStateMachine:
    """Holds the walking state and rejects transitions not in TRANSITIONS"""

    def __init__(self, state: WalkState = WalkState.STOPPED):
        self.state = state

    def can(self, event: WalkEvent) -> bool:
        return (self.state, event) in TRANSITIONS

    def fire(self, event: WalkEvent) -> WalkState:
        """Apply event and return the new state. Raises IllegalTransition."""
        target = TRANSITIONS.get((self.state, event))
        if target is None:
            raise IllegalTransition(self.state, event)
        self.state = target
        return target

    @property
    def is_walking(self) -> bool:
        return self.state is WalkState.WALKING

    @property
    def is_stopped(self) -> bool:
        return self.state is WalkState.STOPPED
