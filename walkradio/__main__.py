#!/usr/bin/env python3
"""
WalkRadio - simulated walk with narrated commentary

Usage:
    python -m walkradio --url BROUTER_URL [options]
    python -m walkradio --start LAT LON --end LAT LON [options]

Options:
    --pace KMH                 Walking pace in km/h (default: 20)
    --tick SECONDS             Position tick period (default: 1)
    --narration-interval SEC   Seconds between narration requests (default: 20)
    --no-snap                  Walk the BRouter waypoints directly instead of routing via OSRM
    --no-fallback              Fail instead of walking a straight line when OSRM is unreachable
    --offline                  Use the built-in narrator instead of LangFlow
    --langflow-url URL         LangFlow run endpoint
    --speak                    Speak narration with espeak
    --log FILE                 Log file path (default: walkradio_TIMESTAMP.log)
    --record FILE              Record the walk trace to a JSON file
"""

import argparse
import asyncio
import sys
import time
from datetime import datetime
from typing import Optional

from .audio import Audio
from .config import CONFIG
from .errors import InvalidRoute, RouteUnavailable
from .logger import Logger
from .models import Coordinate, NarrationEvent, PositionFix, WalkState
from .narration import LangFlowNarrator, OfflineNarrator
from .recorder import WalkRecorder
from .route import Route
from .routing import OSRMRouter, RouteProvider
from .simulation import WalkSimulation


async def walk(route: Route, narrator, logger: Logger, pace: float,
               tick_period: float, narration_period: float,
               speak: bool = False, recorder: Optional[WalkRecorder] = None) -> dict:
    """Walk the route once on the running loop and return a summary"""
    finished = asyncio.Event()
    last_state_log = 0.0

    def on_position(fix: PositionFix):
        nonlocal last_state_log
        if recorder:
            recorder.record_position(fix)
        now = time.monotonic()
        if now - last_state_log >= CONFIG["log_interval"]:
            logger.log("STATE", simulation.get_state())
            last_state_log = now

    def on_narration(event: NarrationEvent):
        print(f"\n[{event.timestamp.strftime('%H:%M:%S')}] {event.message}\n")
        if speak:
            Audio.announce(event)
        if recorder:
            recorder.record_narration(event)

    def on_state_change(old: WalkState, new: WalkState):
        if recorder:
            recorder.record_state(old, new)
        if new is WalkState.STOPPED:
            finished.set()

    simulation = WalkSimulation(
        narrator,
        route=route,
        pace=pace,
        logger=logger,
        tick_period=tick_period,
        narration_period=narration_period,
        on_position=on_position,
        on_narration=on_narration,
        on_state_change=on_state_change,
    )

    started_at = time.time()
    simulation.start()
    try:
        await finished.wait()
        # Let the last narration land before reporting.
        pending = simulation.scheduler.pending
        if pending:
            await asyncio.wait(pending, timeout=CONFIG["narration_timeout"])
    finally:
        if simulation.stop():
            print("\nWalk interrupted")
            logger.log("Walk interrupted by user")

    summary = {
        "distance": simulation.distance_traveled,
        "route_distance": route.total_distance(),
        "progress": simulation.progress,
        "narrations": sum(1 for e in simulation.narration_log if not e.is_error),
        "errors": sum(1 for e in simulation.narration_log if e.is_error),
        "duration": time.time() - started_at,
    }
    logger.log("Walk summary", summary)
    return summary


def load_route(args, logger: Logger) -> Route:
    router = OSRMRouter(fallback=not args.no_fallback, logger=logger)
    provider = RouteProvider(router, logger=logger)
    if args.url:
        return provider.from_url(args.url, snap=not args.no_snap)
    start = Coordinate(lat=args.start[0], lng=args.start[1])
    end = Coordinate(lat=args.end[0], lng=args.end[1])
    return provider.from_endpoints(start, end)


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="WalkRadio - simulated walk with narrated commentary"
    )
    parser.add_argument("--url", metavar="URL",
                        help="BRouter route URL (must contain lonlats=)")
    parser.add_argument("--start", type=float, nargs=2, metavar=("LAT", "LON"),
                        help="Start coordinate")
    parser.add_argument("--end", type=float, nargs=2, metavar=("LAT", "LON"),
                        help="End coordinate")
    parser.add_argument("--pace", type=float, default=CONFIG["default_pace"],
                        help=f"Walking pace in km/h (default: {CONFIG['default_pace']:g})")
    parser.add_argument("--tick", type=float, default=CONFIG["tick_period"],
                        help=f"Position tick period in seconds (default: {CONFIG['tick_period']:g})")
    parser.add_argument("--narration-interval", type=float, default=CONFIG["narration_period"],
                        help=f"Seconds between narration requests (default: {CONFIG['narration_period']:g})")
    parser.add_argument("--no-snap", action="store_true",
                        help="Walk the BRouter waypoints directly instead of routing via OSRM")
    parser.add_argument("--no-fallback", action="store_true",
                        help="Fail instead of using a straight line when OSRM is unreachable")
    parser.add_argument("--offline", action="store_true",
                        help="Use the built-in narrator instead of LangFlow")
    parser.add_argument("--langflow-url", default=CONFIG["langflow_url"],
                        help="LangFlow run endpoint")
    parser.add_argument("--speak", action="store_true",
                        help="Speak narration with espeak")
    parser.add_argument("--log", metavar="FILE",
                        help="Log file path (default: walkradio_TIMESTAMP.log)")
    parser.add_argument("--record", metavar="FILE",
                        help="Record the walk trace to a JSON file")

    args = parser.parse_args(argv)

    if args.url and (args.start or args.end):
        parser.error("--url cannot be combined with --start/--end")
    if not args.url and (args.start is None or args.end is None):
        parser.error("either --url or both --start and --end are required")
    if not CONFIG["min_pace"] <= args.pace <= CONFIG["max_pace"]:
        parser.error(f"--pace must be between {CONFIG['min_pace']} and {CONFIG['max_pace']}")
    if args.tick <= 0 or args.narration_interval <= 0:
        parser.error("--tick and --narration-interval must be positive")

    log_path = args.log
    if not log_path:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_path = f"walkradio_{timestamp}.log"
    logger = Logger(log_path, echo=False)

    try:
        route = load_route(args, logger)
    except (RouteUnavailable, InvalidRoute, ValueError) as e:
        print(f"Could not load route: {e}")
        logger.close()
        sys.exit(1)

    print(f"\n=== WalkRadio ===")
    print(f"Route: {route.length()} points, {route.total_distance():.0f}m")
    print(f"Pace: {args.pace:g} km/h, narration every {args.narration_interval:g}s")
    print("Press Ctrl+C to stop")

    narrator = OfflineNarrator() if args.offline else LangFlowNarrator(url=args.langflow_url)
    recorder = WalkRecorder(args.record) if args.record else None

    summary = None
    try:
        summary = asyncio.run(walk(
            route, narrator, logger,
            pace=args.pace,
            tick_period=args.tick,
            narration_period=args.narration_interval,
            speak=args.speak,
            recorder=recorder,
        ))
    except KeyboardInterrupt:
        print("\nWalk ended")
    finally:
        if recorder:
            recorder.save(route)
        logger.close()

    if summary:
        print(f"\nWalk summary:")
        print(f"  Distance: {summary['distance']:.0f}m of {summary['route_distance']:.0f}m "
              f"({summary['progress'] * 100:.0f}%)")
        print(f"  Narrations: {summary['narrations']} ({summary['errors']} errors)")
        print(f"  Duration: {summary['duration']/60:.1f} minutes")


if __name__ == "__main__":
    main()
