# OOP boundary for external i/o
# all http/keys/retries live here, so the parser and the coordinator stay pure and testable
# each worker thread gets its own session, the client itself is shared read-only by every unit

from __future__ import annotations
import logging
import threading
from urllib.parse import urlsplit
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry
from . import __version__
from .config import DEFAULT_BASE_URL, DEFAULT_TIMEOUT, Settings, mask_key

logger = logging.getLogger(__name__)

MALFORMED_BODY = "Malformed data encountered while fetching weather data for {city}"

class WeatherAPIError(RuntimeError):
    # setup problems only (key, url); per-city trouble never raises out of fetch_body
    pass

class WeatherAPIClient:
    # this class encapsulates provider details like base URL, params, auth, retries
    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = 3,
        backoff_factor: float = 0.5,
        user_agent: str = f"weather-threads/{__version__}",
    ):
        if not api_key:
            # fail before any unit is spawned rather than sending N unauthorized requests
            raise WeatherAPIError("OPENWEATHER_API_KEY not set")

        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self.user_agent = user_agent
        logger.debug("Open Weather API key: %s", mask_key(api_key))

        # a bad base url is a setup error, so surface it here and not inside a worker
        self.build_url("probe")

        self._local = threading.local()

        # retry policy for transient network, server or rate-limit issues
        self._retry = Retry(
            total=max_retries,
            backoff_factor=backoff_factor,        # exponential backoff (0.5, 1.0, 2.0, ...)
            status_forcelist=(429, 500, 502, 503, 504),
            allowed_methods=("GET",),
            raise_on_status=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "WeatherAPIClient":
        return cls(
            api_key=settings.api_key,
            base_url=settings.base_url,
            timeout=settings.timeout,
            max_retries=settings.max_retries,
            backoff_factor=settings.backoff_factor,
        )

    def build_url(self, city_query: str) -> str:
        params = {"q": city_query, "appid": self.api_key, "units": "metric"}
        try:
            url = requests.Request("GET", self.base_url, params=params).prepare().url
        except requests.RequestException as exc:
            raise WeatherAPIError(f"Invalid base URL {self.base_url!r}: {exc}") from exc

        parts = urlsplit(url)
        if parts.scheme not in ("http", "https") or not parts.hostname:
            raise WeatherAPIError(f"Invalid base URL {self.base_url!r}")
        return url

    def _build_session(self) -> requests.Session:
        # central place to configure http behavior like headers, adapters, retries
        s = requests.Session()
        s.headers.update({"User-Agent": self.user_agent})
        adapter = HTTPAdapter(max_retries=self._retry)
        s.mount("http://", adapter)
        s.mount("https://", adapter)
        return s

    def _session(self) -> requests.Session:
        sess = getattr(self._local, "session", None)
        if sess is None:
            sess = self._build_session()
            self._local.session = sess
        return sess

    def fetch_body(self, city_query: str) -> str:
        # never raises for transport or decoding trouble: the caller parses whatever comes back
        # and an empty or placeholder body fails that parse with a clear reason
        url = self.build_url(city_query)

        logger.info("Fetching weather data for %r...", city_query)
        try:
            resp = self._session().get(url, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.warning("Error fetching weather data for %r: %s", city_query, exc)
            return ""
        logger.info("...done fetching %r (HTTP %s)", city_query, resp.status_code)

        if resp.status_code >= 400:
            # the provider's error body is kept, the parser reports what it is missing
            logger.warning("HTTP %s for %r", resp.status_code, city_query)

        try:
            return resp.content.decode("utf-8")
        except UnicodeDecodeError:
            logger.warning("Error decoding weather data for %r as UTF-8", city_query)
            return MALFORMED_BODY.format(city=city_query)
