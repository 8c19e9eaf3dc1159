# runtime settings, built once at startup and passed explicitly to the client
# environment variables win over the .env file, cli flags win over both

from __future__ import annotations
import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional
from dotenv import find_dotenv, load_dotenv

DEFAULT_BASE_URL = "http://api.openweathermap.org/data/2.5/weather"
DEFAULT_TIMEOUT = 10.0

class ConfigError(ValueError):
    pass

@dataclass(frozen=True)
class Settings:
    api_key: str = ""
    base_url: str = DEFAULT_BASE_URL
    timeout: float = DEFAULT_TIMEOUT
    max_retries: int = 3
    backoff_factor: float = 0.5

    def with_overrides(self, **changes) -> "Settings":
        # drop unset cli flags so they don't clobber the environment
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

def _number(env: Mapping[str, str], name: str, default, cast):
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number (got {raw!r})") from exc

def load_settings(env: Optional[Mapping[str, str]] = None, dotenv: bool = True) -> Settings:
    if env is None:
        if dotenv:
            # look beside the invocation, not beside this module; in production the key is injected by the environment instead
            load_dotenv(find_dotenv(usecwd=True))
        env = os.environ

    timeout = _number(env, "WEATHER_THREADS_TIMEOUT", DEFAULT_TIMEOUT, float)
    if timeout <= 0:
        raise ConfigError(f"WEATHER_THREADS_TIMEOUT must be positive (got {timeout})")

    return Settings(
        api_key=(env.get("OPENWEATHER_API_KEY") or "").strip(),
        base_url=env.get("OPENWEATHER_BASE_URL") or DEFAULT_BASE_URL,
        timeout=timeout,
        max_retries=_number(env, "WEATHER_THREADS_MAX_RETRIES", 3, int),
        backoff_factor=_number(env, "WEATHER_THREADS_BACKOFF", 0.5, float),
    )

def mask_key(api_key: str) -> str:
    # enough to tell keys apart in debug logs without leaking them
    if len(api_key) <= 4:
        return "*" * len(api_key)
    return api_key[:2] + "*" * (len(api_key) - 4) + api_key[-2:]
