"""Route acquisition: BRouter share links and OSRM routing."""

from typing import Optional
from urllib.parse import unquote, urlparse

import requests

from .config import CONFIG
from .errors import RouteUnavailable
from .geo import interpolate_line, retry_with_backoff
from .logger import Logger
from .models import Coordinate
from .route import Route


def is_brouter_url(url: str) -> bool:
    """Cheap check that url looks like a BRouter link carrying waypoints"""
    return CONFIG["brouter_host"] in url and "lonlats=" in url


def parse_brouter_url(url: str) -> list[Coordinate]:
    """Extract waypoints from a BRouter web link.

    The waypoints live in a ``lonlats=lng,lat;lng,lat;...`` parameter, which
    brouter-web puts either in the query string or in the URL fragment.
    Pairs that do not parse are skipped.
    """
    parsed = urlparse(url)
    if CONFIG["brouter_host"] not in parsed.netloc:
        raise RouteUnavailable(
            f"Please use a BRouter URL. You can create routes at https://{CONFIG['brouter_host']}/"
        )

    lonlats = None
    for part in (parsed.query, parsed.fragment):
        for param in part.replace("?", "&").split("&"):
            key, _, value = param.partition("=")
            if key == "lonlats":
                lonlats = unquote(value)
                break
        if lonlats:
            break

    coords = []
    if lonlats:
        for pair in lonlats.split(";"):
            try:
                lng, lat = (float(v) for v in pair.split(",")[:2])
                coords.append(Coordinate(lat=lat, lng=lng))
            except ValueError:
                continue

    if len(coords) < 2:
        raise RouteUnavailable(
            "Could not extract coordinates from BRouter URL. "
            "Please make sure the URL contains the lonlats parameter."
        )
    return coords


class OSRMRouter:
    """Fetch a full route geometry between two points from an OSRM server"""

    def __init__(self, base_url: str = CONFIG["osrm_url"],
                 profile: str = CONFIG["osrm_profile"],
                 timeout: float = CONFIG["osrm_timeout"],
                 max_time: float = CONFIG["route_fetch_max_time"],
                 fallback: bool = True,
                 logger: Optional[Logger] = None):
        self.base_url = base_url.rstrip("/")
        self.profile = profile
        self.timeout = timeout
        self.max_time = max_time
        self.fallback = fallback
        self.logger = logger or Logger(echo=False)

    def route_url(self, start: Coordinate, end: Coordinate) -> str:
        return (f"{self.base_url}/route/v1/{self.profile}/"
                f"{start.lng},{start.lat};{end.lng},{end.lat}"
                f"?overview=full&geometries=geojson")

    def request(self, start: Coordinate, end: Coordinate) -> list[Coordinate]:
        """One OSRM request. Raises RouteUnavailable on any failure."""
        url = self.route_url(start, end)
        self.logger.log("Calling OSRM", {"url": url})
        try:
            response = requests.get(url, headers={"Accept": "application/json"}, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            raise RouteUnavailable(f"OSRM request failed: {e}") from e

        routes = data.get("routes") or []
        if not routes:
            raise RouteUnavailable(f"No route found in OSRM response ({data.get('code', 'unknown')})")
        geometry = routes[0].get("geometry") or {}
        try:
            coords = [Coordinate(lat=lat, lng=lng) for lng, lat in geometry.get("coordinates", [])]
        except (TypeError, ValueError) as e:
            raise RouteUnavailable(f"Malformed OSRM geometry: {e}") from e
        if len(coords) < 2:
            raise RouteUnavailable("OSRM route has fewer than 2 points")
        return coords

    def fetch(self, start: Coordinate, end: Coordinate) -> list[Coordinate]:
        """Route from start to end, retrying with backoff.

        When every attempt fails, returns a straight line between the two
        points if fallback is enabled, otherwise raises RouteUnavailable.
        """
        last_error: list[RouteUnavailable] = []

        def try_osrm():
            try:
                return self.request(start, end)
            except RouteUnavailable as e:
                self.logger.log("OSRM attempt failed", {"error": str(e)})
                last_error[:] = [e]
                return None

        coords = retry_with_backoff(
            try_osrm,
            max_time=self.max_time,
            initial_delay=1.0,
            max_delay=4.0,
            description="route fetch",
        )
        if coords:
            self.logger.log("OSRM route received", {"points": len(coords)})
            return coords

        if not self.fallback:
            raise last_error[0] if last_error else RouteUnavailable("route fetch failed")

        self.logger.log("Using straight-line fallback route", {"points": CONFIG["fallback_points"] + 1})
        return interpolate_line(start, end, CONFIG["fallback_points"])


class RouteProvider:
    """Turns user input (a BRouter link or two endpoints) into a Route"""

    def __init__(self, router: Optional[OSRMRouter] = None, logger: Optional[Logger] = None):
        self.logger = logger or Logger(echo=False)
        self.router = router or OSRMRouter(logger=self.logger)

    def from_url(self, url: str, snap: bool = True) -> Route:
        """Build a route from a BRouter link.

        With snap, only the first and last waypoints are kept and the path
        between them comes from OSRM; otherwise the waypoints are walked as
        straight segments.
        """
        waypoints = parse_brouter_url(url)
        self.logger.log("Extracted BRouter coordinates", {"points": len(waypoints)})
        if not snap:
            return Route(waypoints)
        return self.from_endpoints(waypoints[0], waypoints[-1])

    def from_endpoints(self, start: Coordinate, end: Coordinate) -> Route:
        return Route(self.router.fetch(start, end))
