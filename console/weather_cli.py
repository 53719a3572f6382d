#!/usr/bin/env python3
"""
Interactive console front end for the weather cache.

Runs the same lookup pipeline as the HTTP API, with its own cache store.
"""
import argparse
import logging
import sys
from typing import Any, Callable, Dict, Optional, TextIO

from api.config import Settings, build_pipeline, load_env_file
from api.logging_config import setup_logging
from weather_cache.errors import WeatherCacheError
from weather_cache.pipeline import WeatherPipeline
from weather_cache.views import current_view, forecast_view

logger = logging.getLogger(__name__)

DEFAULT_FORECAST_DAYS = 5
BANNER = "=================================="


def format_current(record: Dict[str, Any]) -> str:
    view = current_view(record)
    current = view["current"] or {}
    lines = [
        "",
        "===== Current Weather =====",
        f"Location: {view['location']}",
        f"Time: {current.get('datetime')}",
        f"Temperature: {current.get('temp')}°C",
        f"Feels Like: {current.get('feelslike')}°C",
        f"Conditions: {current.get('conditions')}",
        f"Humidity: {current.get('humidity')}%",
        f"Wind: {current.get('windspeed')} km/h {current.get('winddir')}°",
        f"UV Index: {current.get('uvindex')}",
        "===========================",
        "",
    ]
    return "\n".join(lines)


def format_forecast(record: Dict[str, Any], days: int = DEFAULT_FORECAST_DAYS) -> str:
    view = forecast_view(record, days)
    lines = ["", "====== Weather Forecast ======"]
    for day in view["days"]:
        lines.extend(
            [
                "",
                f"Date: {day.get('datetime')}",
                f"Temp: {day.get('tempmin')}°C to {day.get('tempmax')}°C",
                f"Conditions: {day.get('conditions')}",
                f"Precipitation: {day.get('precip')} mm",
                f"Humidity: {day.get('humidity')}%",
                "-----------------------------",
            ]
        )
    lines.extend(["", "============================="])
    return "\n".join(lines)


def render(record: Dict[str, Any], view: str, days: int = DEFAULT_FORECAST_DAYS) -> str:
    if view == "forecast":
        return format_forecast(record, days)
    return format_current(record)


def run_interactive(
    pipeline: WeatherPipeline,
    input_fn: Callable[[str], str] = input,
    out: Optional[TextIO] = None,
) -> None:
    """Prompt for locations until the user types 'exit' or input ends."""
    out = out or sys.stdout
    print(BANNER, file=out)
    print("Welcome to the Weather CLI App", file=out)
    print(BANNER, file=out)

    while True:
        try:
            location = input_fn('\nEnter a location (or "exit" to quit): ').strip()
        except EOFError:
            break

        if location.lower() == "exit":
            print("\nThank you for using the Weather CLI App. Goodbye!", file=out)
            break
        if not location:
            continue

        try:
            record = pipeline.fetch(location)
        except WeatherCacheError as e:
            print(f"Error: {e}", file=out)
            continue

        try:
            choice = input_fn(
                f"\nView [1] Current weather or [2] {DEFAULT_FORECAST_DAYS}-day forecast? (1/2): "
            ).strip()
        except EOFError:
            break

        if choice == "2":
            print(render(record, "forecast"), file=out)
        else:
            if choice != "1":
                print("Invalid choice. Showing current weather by default.", file=out)
            print(render(record, "current"), file=out)


def main(argv: Optional[list] = None) -> int:
    """Main entry point for the weather console."""
    parser = argparse.ArgumentParser(description="Weather CLI")
    parser.add_argument("--location", help="Look up one location and exit")
    parser.add_argument(
        "--view", choices=["current", "forecast"], default="current", help="What to show"
    )
    parser.add_argument(
        "--days", type=int, default=DEFAULT_FORECAST_DAYS, help="Forecast length"
    )
    parser.add_argument("--unit-group", default=None, help="metric, us, uk or base")
    args = parser.parse_args(argv)

    setup_logging("WARNING")

    load_env_file()
    settings = Settings()
    problems = settings.validate()
    if problems:
        print("ERROR: API key not properly configured!", file=sys.stderr)
        for problem in problems:
            print(f"  {problem}", file=sys.stderr)
        print("Please set up your API key in the .env file.", file=sys.stderr)
        return 1

    # Console sessions are short-lived, no background sweeper needed
    pipeline = build_pipeline(settings, check_period=0)
    try:
        if args.location:
            try:
                record = pipeline.fetch(args.location, {"unitGroup": args.unit_group})
            except WeatherCacheError as e:
                print(f"Error: {e}", file=sys.stderr)
                return 1
            print(render(record, args.view, args.days))
            return 0

        try:
            run_interactive(pipeline)
        except KeyboardInterrupt:
            print()
        return 0
    finally:
        pipeline.cache.close()


if __name__ == "__main__":
    sys.exit(main())
