# shared fakes so tests never touch the outside network

import json
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from urllib.parse import parse_qs, urlsplit

import pytest
import requests

DATA = Path(__file__).parent / "data"


def load_body(name: str) -> str:
    return (DATA / name).read_text()


def weather_body(name: str, description: str, temp) -> str:
    return json.dumps({"name": name, "weather": [{"description": description}], "main": {"temp": temp}})


class FakeResponse:
    def __init__(self, content: bytes, status_code: int = 200):
        self.content = content
        self.status_code = status_code


class FakeSession:
    # answers by the q= parameter; an exception instance is raised instead of returned
    def __init__(self, responses):
        self.responses = responses
        self.calls = []

    def get(self, url, timeout=None):
        self.calls.append((url, timeout))
        city = parse_qs(urlsplit(url).query)["q"][0]
        answer = self.responses[city]
        if isinstance(answer, Exception):
            raise answer
        return answer


class FakeClient:
    # stands in for WeatherAPIClient in service tests, optionally sleeping per city
    def __init__(self, bodies, delays=None):
        self.bodies = bodies
        self.delays = delays or {}
        self.calls = []
        self._lock = threading.Lock()

    def fetch_body(self, city_query: str) -> str:
        with self._lock:
            self.calls.append(city_query)
        time.sleep(self.delays.get(city_query, 0))
        body = self.bodies[city_query]
        if isinstance(body, Exception):
            raise body
        return body


@pytest.fixture
def fake_session(monkeypatch):
    from weatherthreads.client import WeatherAPIClient

    session = FakeSession({})
    monkeypatch.setattr(WeatherAPIClient, "_build_session", lambda self: session)
    return session


@pytest.fixture
def connection_refused():
    return requests.ConnectionError("connection refused")


class _PayloadHandler(BaseHTTPRequestHandler):
    body = b""

    def do_GET(self):
        self.send_response(200)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(self.body)))
        self.end_headers()
        self.wfile.write(self.body)

    def log_message(self, format, *args):
        pass


@pytest.fixture
def weather_server(monkeypatch):
    # a real local endpoint for tests that need urllib3 to do actual i/o
    for name in ("HTTP_PROXY", "http_proxy", "HTTPS_PROXY", "https_proxy", "ALL_PROXY", "all_proxy"):
        monkeypatch.delenv(name, raising=False)
    handler = type("Handler", (_PayloadHandler,), {"body": load_body("paris.json").encode("utf-8")})
    server = ThreadingHTTPServer(("127.0.0.1", 0), handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_address[1]}/data/2.5/weather"
    server.shutdown()
    server.server_close()
