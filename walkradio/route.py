"""Route model and position tracking along it."""

from bisect import bisect_left
from typing import Iterable

from .errors import InvalidRoute
from .geo import distance
from .models import Coordinate, PositionFix


class Route:
    """Immutable ordered polyline of coordinates to walk along"""

    def __init__(self, points: Iterable[Coordinate]):
        self._points = tuple(points)
        if len(self._points) < 2:
            raise InvalidRoute(f"a route needs at least 2 points, got {len(self._points)}")

        self._segment_distances = tuple(
            distance(self._points[i], self._points[i + 1])
            for i in range(len(self._points) - 1)
        )
        # cumulative[i] = distance from the start to vertex i
        cumulative = [0.0]
        for d in self._segment_distances:
            cumulative.append(cumulative[-1] + d)
        self._cumulative = tuple(cumulative)

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[float, float]]) -> "Route":
        """Build from (lat, lng) tuples"""
        return cls(Coordinate(lat=lat, lng=lng) for lat, lng in pairs)

    def __len__(self) -> int:
        return len(self._points)

    def __iter__(self):
        return iter(self._points)

    def __repr__(self) -> str:
        return f"Route({len(self)} points, {self.total_distance():.0f}m)"

    def length(self) -> int:
        """Number of vertices"""
        return len(self._points)

    def total_distance(self) -> float:
        return self._cumulative[-1]

    def vertex_at(self, i: int) -> Coordinate:
        return self._points[i]

    def segment_distance(self, i: int) -> float:
        if not 0 <= i < len(self._segment_distances):
            raise IndexError(f"segment index {i} out of range")
        return self._segment_distances[i]

    def cumulative_distances(self) -> tuple[float, ...]:
        """Distance from the first vertex to each vertex"""
        return self._cumulative

    @property
    def start(self) -> Coordinate:
        return self._points[0]

    @property
    def end(self) -> Coordinate:
        return self._points[-1]

    def to_list(self) -> list[dict]:
        return [p.to_dict() for p in self._points]


def position_at(route: Route, distance_traveled: float) -> PositionFix:
    """Map distance since the start onto a point of the route.

    Distances at or past the end clamp to the last vertex with
    segment_index == len(route) - 1 and complete=True.
    """
    if distance_traveled <= 0:
        return PositionFix(coordinate=route.vertex_at(0), segment_index=0)

    last = route.length() - 1
    if distance_traveled >= route.total_distance():
        return PositionFix(coordinate=route.vertex_at(last), segment_index=last, complete=True)

    # First vertex j >= 1 whose cumulative distance reaches distance_traveled;
    # the walker is on segment j - 1.
    cumulative = route.cumulative_distances()
    i = bisect_left(cumulative, distance_traveled, 1) - 1
    i = min(i, last - 1)

    seg_len = route.segment_distance(i)
    if seg_len <= 0:
        t = 0.0
    else:
        t = (distance_traveled - cumulative[i]) / seg_len
        t = max(0.0, min(1.0, t))

    a = route.vertex_at(i)
    b = route.vertex_at(i + 1)
    point = Coordinate(
        lat=a.lat + (b.lat - a.lat) * t,
        lng=a.lng + (b.lng - a.lng) * t,
    )
    return PositionFix(coordinate=point, segment_index=i)
