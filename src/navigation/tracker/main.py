# main.py
# Entry point: replays a recorded walk through WaypointNavigator.
# In production, replace replay() with a QueuePositionSource fed by your real GPS callback.
#
# Usage:
#   waypoint-tracker                                  (built-in demo route around Rome)
#   waypoint-tracker --route my_route.json --fixes walk.json --arrival 30

import argparse
import json
import logging
import sys
from typing import List, Optional, Sequence

from .errors import WaypointTrackerError
from .models import EventType, PositionFix, TrackerEvent, WaypointInput
from .nav_config import NavConfig
from .navigator import WaypointNavigator
from .position_feed import PositionFeed, replay

# ------------------------------------------------------------------
# Simulation data (Colosseum → Pantheon, Rome)
# ------------------------------------------------------------------
DEMO_ROUTE = [
    WaypointInput(41.890210, 12.492231, "Colosseum", 21.0),
    WaypointInput(41.892462, 12.485325, "Roman Forum", 19.0),
    WaypointInput(41.895466, 12.482323, "Piazza Venezia", 20.0),
    WaypointInput(41.899163, 12.473074, "Piazza Navona", 18.0),
    WaypointInput(41.898614, 12.476869, "Pantheon", 20.0),
]

DEMO_WALK = [
    PositionFix(41.889500, 12.493000, 8.0),    # near start
    PositionFix(41.890100, 12.492300, 6.0),    # Colosseum
    PositionFix(41.891500, 12.488500, 7.0),    # walking west
    PositionFix(41.892400, 12.485400, 5.0),    # Roman Forum
    PositionFix(41.895400, 12.482400, 6.0),    # Piazza Venezia
    PositionFix(41.897500, 12.478500, 9.0),    # heading to the Pantheon first
    PositionFix(41.898600, 12.476900, 5.0),    # Pantheon (switch offered)
    PositionFix(41.898610, 12.476870, 5.0),
    PositionFix(41.899100, 12.473100, 6.0),    # Piazza Navona
]


def _read_fixes(path: str) -> List[PositionFix]:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return [
        PositionFix(
            latitude=float(d["lat"]),
            longitude=float(d["lon"]),
            accuracy=d.get("accuracy"),
            timestamp_ms=d.get("time_ms"),
        )
        for d in data
    ]


def _print_event(event: TrackerEvent) -> None:
    s = event.stats
    if event.type == EventType.STATS_CHANGED:
        print(f"  [Stats] total={s.total} reached={s.reached} remaining={s.remaining} skipped={s.skipped}")
    elif event.type == EventType.TARGET_CHANGED:
        print(f"  → Next target: {event.waypoint.name}")
    elif event.type == EventType.PROMPT_OFFERED:
        print(f"  ?  {event.payload['candidate_name']} is closer, switching unless declined.")
    elif event.type == EventType.PROMPT_RESOLVED:
        print(f"  ?  Switch {event.payload['outcome']}.")
    elif event.type == EventType.ROUTE_COMPLETED:
        print("  ✓  All waypoints reached! Good job!")


def build_parser() -> argparse.ArgumentParser:
    defaults = NavConfig()
    p = argparse.ArgumentParser(prog="waypoint-tracker", description="Track progress through a waypoint route.")
    p.add_argument("--route", help="Route JSON (saved route or list of {lat, lon, name, ele}).")
    p.add_argument("--fixes", help="Position fixes JSON (list of {lat, lon, accuracy, time_ms}).")
    p.add_argument("--log-dir", default="logs", help="Directory for route, session and reached logs.")
    p.add_argument("--outer", type=float, default=defaults.outer_threshold_m, help="Outer zone radius (m).")
    p.add_argument("--mid", type=float, default=defaults.mid_threshold_m, help="Mid zone radius (m).")
    p.add_argument("--arrival", type=float, default=defaults.arrival_threshold_m, help="Arrival radius (m).")
    p.add_argument(
        "--switch-timeout", type=float, default=defaults.switch_prompt_timeout_s,
        help="Seconds before a switch offer auto-accepts.",
    )
    p.add_argument("--interval", type=float, default=0.05, help="Pause between replayed fixes (s).")
    p.add_argument(
        "--switch-answer", choices=("accept", "decline", "wait"), default="accept",
        help="How to answer switch offers (wait = let the countdown decide).",
    )
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    return p


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    # ------------------------------------------------------------------
    # Logging setup: configure once here, all modules inherit
    # ------------------------------------------------------------------
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    # ------------------------------------------------------------------
    # Config: tweak thresholds or paths here, not inside the modules
    # ------------------------------------------------------------------
    config = NavConfig(
        outer_threshold_m=args.outer,
        mid_threshold_m=args.mid,
        arrival_threshold_m=args.arrival,
        switch_prompt_timeout_s=args.switch_timeout,
        log_dir=args.log_dir,
    )
    nav = WaypointNavigator(config)
    nav.subscribe(_print_event)
    if args.switch_answer != "wait":
        answer = nav.accept_switch if args.switch_answer == "accept" else nav.decline_switch
        nav.subscribe(lambda e: e.type == EventType.PROMPT_OFFERED and answer())

    # 1. Load the route
    try:
        if args.route:
            nav.load_route_file(args.route)
        else:
            nav.load_route(DEMO_ROUTE)
        fixes = _read_fixes(args.fixes) if args.fixes else DEMO_WALK
    except (WaypointTrackerError, OSError, KeyError, ValueError) as e:
        print(f"[Main] Could not start tracking: {e}", file=sys.stderr)
        return 1

    print(f"[Main] Route: {len(nav.waypoints)} waypoints, {nav.route_length_m:.0f} m.")
    print("\n--- GPS Loop Active ---")

    # 2. GPS loop, replace with real GPS feed in production
    def _on_fix(fix: PositionFix) -> None:
        result = nav.update(fix)
        print(f"  GPS ({fix.latitude:.5f}, {fix.longitude:.5f}) → [{result.status.name}] {result.message}")

    feed = PositionFeed(replay(fixes, args.interval))
    feed.subscribe(_on_fix, nav.report_error)
    feed.run()

    # 3. Wrap up
    s = nav.stats
    print("\n--- Session complete ---")
    print(f"    reached={s.reached} skipped={s.skipped} remaining={s.remaining} of {s.total}")
    if nav.prompt is not None:
        print(f"    A switch offer is still pending ({nav.prompt_seconds_left():.0f}s left).")
    path = nav.export_log()
    if path:
        print(f"    Reached log written to: {path}")
    print(f"    Log files written to: {config.log_dir}/")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
