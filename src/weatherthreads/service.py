# orchestration and business rules
# fan-out: one unit per city on a ThreadPoolExecutor, each unit puts exactly one outcome on a shared queue
# fan-in: the aggregator takes exactly N outcomes in arrival order, then the barrier joins every unit

from __future__ import annotations
import json
import logging
import queue
from concurrent.futures import Executor, Future, ThreadPoolExecutor, wait
from typing import Callable, List, Optional, Sequence
from .client import WeatherAPIClient
from .models import CallFailure, CallOutcome, CallResult

logger = logging.getLogger(__name__)

OutcomeCallback = Callable[[CallOutcome], None]

class WeatherParseError(ValueError):
    # the body was not the payload we expect; fatal for the unit, never for the run
    pass

def _field(obj, key, path: str):
    if isinstance(key, int):
        if not isinstance(obj, list) or len(obj) <= key:
            raise WeatherParseError(f"missing field {path!r}")
        return obj[key]
    if not isinstance(obj, dict) or key not in obj:
        raise WeatherParseError(f"missing field {path!r}")
    return obj[key]

def _reject_constant(name: str):
    # python accepts NaN and Infinity, strict JSON does not
    raise WeatherParseError(f"non-standard constant {name}")

# openweathermap shape: name, weather[0].description, main.temp
def parse_weather(body: str) -> CallResult:
    try:
        data = json.loads(body, parse_constant=_reject_constant)
    except ValueError as exc:
        raise WeatherParseError(f"invalid JSON: {exc}") from exc

    city = _field(data, "name", "name")
    weather = _field(_field(_field(data, "weather", "weather"), 0, "weather[0]"), "description", "weather[0].description")
    temp = _field(_field(data, "main", "main"), "temp", "main.temp")

    if not isinstance(city, str):
        raise WeatherParseError("field 'name' is not a string")
    if not isinstance(weather, str):
        raise WeatherParseError("field 'weather[0].description' is not a string")
    # bool is an int subclass, but true is not a temperature
    if isinstance(temp, bool) or not isinstance(temp, (int, float)):
        raise WeatherParseError("field 'main.temp' is not a number")

    return CallResult(city=city, weather=weather, temperature=float(temp))

# single city path: fetch -> parse
def weather_call(client: WeatherAPIClient, city_query: str) -> CallResult:
    return parse_weather(client.fetch_body(city_query))

def fetch_city(client: WeatherAPIClient, city_query: str) -> CallOutcome:
    # parse failures become a value; anything else is a bug and keeps propagating
    try:
        return weather_call(client, city_query)
    except WeatherParseError as exc:
        logger.error("Could not parse weather data for %r: %s", city_query, exc)
        return CallFailure(city=city_query, reason=str(exc))

def run_unit(client: WeatherAPIClient, city_query: str, channel: "queue.Queue[CallOutcome]") -> None:
    # exactly one put on every exit path, otherwise collect() would block forever
    try:
        outcome = fetch_city(client, city_query)
    except Exception as exc:
        channel.put(CallFailure(city=city_query, reason=f"unexpected error: {exc!r}"))
        raise
    channel.put(outcome)

def dispatch(
    client: WeatherAPIClient,
    cities: Sequence[str],
    channel: "queue.Queue[CallOutcome]",
    executor: Executor,
) -> List[Future]:
    # handles come back in dispatch order so the barrier can report the first crash deterministically
    return [executor.submit(run_unit, client, city, channel) for city in cities]

def collect(
    channel: "queue.Queue[CallOutcome]",
    expected: int,
    on_outcome: Optional[OutcomeCallback] = None,
) -> List[CallOutcome]:
    outcomes: List[CallOutcome] = []
    for _ in range(expected):
        outcome = channel.get()
        if on_outcome is not None:
            on_outcome(outcome)
        outcomes.append(outcome)
    return outcomes

def join_all(futures: Sequence[Future]) -> None:
    # a unit may still be unwinding after its outcome was received
    wait(futures)
    for fut in futures:
        # allow unexpected unit errors to propagate (cli will display a traceback)
        fut.result()

def fetch_all(
    client: WeatherAPIClient,
    cities: Sequence[str],
    max_workers: Optional[int] = None,
    on_outcome: Optional[OutcomeCallback] = None,
) -> List[CallOutcome]:
    cities = list(cities)
    expected = len(cities)
    if expected == 0:
        return []

    channel: "queue.Queue[CallOutcome]" = queue.Queue()
    # one thread per city unless the caller caps it
    workers = max(1, min(max_workers or expected, expected))
    logger.info("Dispatching %d cities on %d threads", expected, workers)

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="weather") as pool:
        futures = dispatch(client, cities, channel, pool)
        outcomes = collect(channel, expected, on_outcome)
        join_all(futures)
    return outcomes
