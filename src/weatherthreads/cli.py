# connects command-line input (city names) to the service and prints each outcome as it arrives

from __future__ import annotations
import argparse
import logging
import os
import sys
from typing import List, Optional
from . import __version__
from .client import WeatherAPIClient, WeatherAPIError
from .config import ConfigError, load_settings
from .models import CallFailure, CallOutcome, format_failure, format_result
from .service import fetch_all

LOG_FORMAT = "%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s"

EXIT_OK = 0
EXIT_PARTIAL_FAILURE = 1
EXIT_SETUP_ERROR = 2

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="weather-threads", description="Get weather for cities")
    parser.add_argument("cities", nargs="*", metavar="CITY", help="city names to look up")
    parser.add_argument("--timeout", type=float, default=None, help="per-request timeout in seconds")
    parser.add_argument("--max-workers", type=int, default=None,
                        help="cap on concurrent requests (default: one thread per city)")
    parser.add_argument("--base-url", default=None, help="weather endpoint to query")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="-v for info, -vv for debug")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser

def configure_logging(verbosity: int) -> None:
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        name = os.getenv("WEATHER_THREADS_LOG_LEVEL", "WARNING").upper()
        level = logging.getLevelName(name)
        if not isinstance(level, int):
            raise ConfigError(f"WEATHER_THREADS_LOG_LEVEL must be a logging level name (got {name!r})")
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)
    # urllib3 logs every request line at DEBUG, query string and appid included
    logging.getLogger("urllib3").setLevel(max(level, logging.INFO))

def print_outcome(outcome: CallOutcome) -> None:
    if isinstance(outcome, CallFailure):
        print(format_failure(outcome), file=sys.stderr)
    else:
        print(format_result(outcome), flush=True)

def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        configure_logging(args.verbose)
    except ConfigError as exc:
        print(f"weather-threads: {exc}", file=sys.stderr)
        return EXIT_SETUP_ERROR

    # nothing to fetch means no key and no network needed
    if not args.cities:
        return EXIT_OK

    if args.max_workers is not None and args.max_workers < 1:
        print("weather-threads: --max-workers must be at least 1", file=sys.stderr)
        return EXIT_SETUP_ERROR
    if args.timeout is not None and args.timeout <= 0:
        print("weather-threads: --timeout must be positive", file=sys.stderr)
        return EXIT_SETUP_ERROR

    try:
        settings = load_settings().with_overrides(timeout=args.timeout, base_url=args.base_url)
        client = WeatherAPIClient.from_settings(settings)
    except (ConfigError, WeatherAPIError) as exc:
        print(f"weather-threads: {exc}", file=sys.stderr)
        return EXIT_SETUP_ERROR

    outcomes = fetch_all(client, args.cities, max_workers=args.max_workers, on_outcome=print_outcome)
    if any(isinstance(o, CallFailure) for o in outcomes):
        return EXIT_PARTIAL_FAILURE
    return EXIT_OK

if __name__ == "__main__":
    sys.exit(main())
