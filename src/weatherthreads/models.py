# models and output formatting so every unit hands the same value objects to the aggregator

from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from typing import Union

@dataclass(frozen=True)
class CallResult:
    # one successfully parsed response; city is the name the provider resolved, not the query
    city: str
    weather: str
    temperature: float

@dataclass(frozen=True)
class CallFailure:
    # sent instead of a result so the aggregator never waits on a unit that gave up
    city: str
    reason: str

CallOutcome = Union[CallResult, CallFailure]

def format_temperature(value: float) -> str:
    # integral values print without a trailing ".0", everything else keeps full precision
    if value.is_integer():
        return str(int(value))
    text = repr(value)
    if "e" in text:
        # plain decimals, never exponent notation
        return format(Decimal(text), "f")
    return text

def format_result(result: CallResult) -> str:
    return f"Temperature in {result.city} is {format_temperature(result.temperature)}C with {result.weather}"

def format_failure(failure: CallFailure) -> str:
    return f"Failed to fetch weather for {failure.city}: {failure.reason}"
