"""Command line interface for the event engine.

Events are generated on a simulated clock that advances by the configured
tick interval after every event, so a few thousand ticks of "music" are
produced instantly while every time-based rule (mood lifetimes, pedal
cooldowns, car and marble physics) still behaves as it would live.

Example
-------
Print twenty events of the jungle style in hot, rainy weather and record
them to a MIDI file::

    player-piano --style jungle --ticks 20 --temperature 32 \
        --weather-code 61 --output jungle.mid

Run the HTTP transport instead::

    player-piano --serve --port 8000
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional, Sequence

from .clock import ManualClock
from .config import load_config
from .engine import MusicEngine
from .events import WeatherReading
from .moods import MOOD_NAMES
from .scales import SCALES
from .styles import available_styles

__all__ = ["build_parser", "run_cli", "main"]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="player-piano",
        description="Stream procedurally generated piano events as JSON lines.",
    )
    parser.add_argument("--list-styles", action="store_true", help="List all styles and exit")
    parser.add_argument("--list-scales", action="store_true", help="List all scales and exit")
    parser.add_argument("--style", type=str, help="Style to play (default from config)")
    parser.add_argument("--ticks", type=int, default=20, help="Number of events to generate (default: 20)")
    parser.add_argument("--seed", type=int, help="Random seed for reproducible output")
    parser.add_argument("--key", type=str, help="Start in this key (e.g. C, Eb, F#)")
    parser.add_argument("--scale", type=str, help="Start in this scale")
    parser.add_argument("--mood", action="append", default=[], choices=list(MOOD_NAMES), help="Enable a mood at start; repeatable")
    parser.add_argument("--temperature", type=float, help="Temperature in degrees Celsius")
    parser.add_argument("--weather-code", type=int, help="WMO weather code")
    parser.add_argument("--output", type=str, help="Also record the events to this MIDI file")
    parser.add_argument("--config", type=str, help="JSON file with engine configuration overrides")
    parser.add_argument("--serve", action="store_true", help="Run the HTTP transport instead of printing events")
    parser.add_argument("--host", type=str, default="127.0.0.1", help="Host for --serve")
    parser.add_argument("--port", type=int, default=8000, help="Port for --serve")
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity",
    )
    return parser


def _weather(args: argparse.Namespace) -> Optional[WeatherReading]:
    if args.temperature is None and args.weather_code is None:
        return None
    return WeatherReading(temperature=args.temperature, weather_code=args.weather_code)


def run_cli(argv: Optional[Sequence[str]] = None) -> None:
    """Parse ``argv`` and print events, record them or start the server."""

    parser = build_parser()
    args = parser.parse_args(argv)
    logging.getLogger().setLevel(args.log_level)

    if args.list_styles:
        print("\n".join(available_styles()))
        return
    if args.list_scales:
        print("\n".join(SCALES))
        return

    config = load_config(args.config)

    if args.serve:
        from .server import create_app

        create_app(config).run(host=args.host, port=args.port, threaded=True)
        return

    if args.ticks <= 0:
        logging.error("Number of ticks must be a positive integer.")
        sys.exit(1)
    if args.style is not None and args.style not in available_styles():
        logging.error("Unknown style: %s", args.style)
        sys.exit(1)

    clock = ManualClock()
    engine = MusicEngine(config, clock=clock, seed=args.seed, style=args.style)
    if args.key is not None and not engine.set_key(args.key):
        logging.error("Invalid key: %s", args.key)
        sys.exit(1)
    if args.scale is not None and not engine.set_scale(args.scale):
        logging.error("Invalid scale: %s", args.scale)
        sys.exit(1)
    for mood in args.mood:
        engine.enable_mood(mood)

    weather = _weather(args)
    step = config.tick_interval_ms / 1000.0
    events = []
    for _ in range(args.ticks):
        event = engine.generate_event(weather)
        events.append(event)
        print(event.to_json())
        clock.advance(step)

    if args.output:
        from .midi_io import record_events

        try:
            record_events(events, args.output, tick_ms=config.tick_interval_ms)
        except ImportError as exc:
            logging.error(str(exc))
            sys.exit(1)


def main(argv: Optional[List[str]] = None) -> None:
    """Console script entry point."""

    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    run_cli(argv)


if __name__ == "__main__":
    main()
