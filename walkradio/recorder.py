"""Recording of a simulated walk to JSON."""

import json
import time
from datetime import datetime
from typing import Callable

from .models import NarrationEvent, PositionFix, WalkState


class WalkRecorder:
    """Collects ticks, state changes and narration of one walk.

    Hook its ``record_*`` methods into WalkSimulation's callbacks, then
    call save() when the walk is over.
    """

    def __init__(self, record_path: str, clock: Callable[[], float] = time.time):
        self.record_path = record_path
        self.clock = clock
        self.trace: list[dict] = []
        self.start_time = clock()

    def _entry(self, kind: str, **data) -> dict:
        entry = {"elapsed": round(self.clock() - self.start_time, 3), "type": kind}
        entry.update(data)
        self.trace.append(entry)
        return entry

    def record_position(self, fix: PositionFix):
        self._entry(
            "position",
            location=fix.coordinate.to_dict(),
            segment_index=fix.segment_index,
            complete=fix.complete,
        )

    def record_state(self, old: WalkState, new: WalkState):
        self._entry("state", **{"from": old.value, "to": new.value})

    def record_narration(self, event: NarrationEvent):
        self._entry("narration", **event.to_dict())

    def count(self, kind: str) -> int:
        return sum(1 for e in self.trace if e["type"] == kind)

    def save(self, route=None):
        """Save trace to file"""
        data = {
            "recorded_at": datetime.now().isoformat(),
            "trace": self.trace,
        }
        if route is not None:
            data["route"] = route.to_list()
        with open(self.record_path, "w") as f:
            json.dump(data, f, indent=2)
        print(f"Walk trace saved to {self.record_path} ({len(self.trace)} entries)")
