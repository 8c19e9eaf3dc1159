# dags/weather_threads_dag.py
from __future__ import annotations
import os
from dataclasses import asdict
from datetime import datetime, timedelta
from typing import List
from airflow.decorators import dag, task
from airflow.exceptions import AirflowFailException
from weatherthreads.client import WeatherAPIClient, WeatherAPIError
from weatherthreads.config import ConfigError, load_settings
from weatherthreads.models import CallFailure, CallResult, format_failure, format_result
from weatherthreads.service import fetch_city

# override with a comma separated WEATHER_THREADS_CITIES in the scheduler environment
CITIES: List[str] = [
    c.strip() for c in os.getenv("WEATHER_THREADS_CITIES", "London,Paris,Tokyo").split(",") if c.strip()
]

def fetch_weather_row(city: str) -> dict:
    try:
        client = WeatherAPIClient.from_settings(load_settings())
    except (ConfigError, WeatherAPIError) as e:
        # settings do not fix themselves on retry
        raise AirflowFailException(f"fetch_weather({city}) setup error: {e}")

    # a parse failure is data for publish(), not a task failure worth retrying
    outcome = fetch_city(client, city)
    return {"ok": isinstance(outcome, CallResult), **asdict(outcome)}

@dag(
    dag_id="weather_threads",
    start_date=datetime(2025, 1, 1),
    schedule="0 * * * *",
    catchup=False,
    default_args={"owner": "weather", "retries": 1, "retry_delay": timedelta(minutes=2)},
    tags=["weather", "current"],
)
def weather_threads():
    @task(pool="openweathermap", execution_timeout=timedelta(seconds=30))
    def fetch_weather(city: str) -> dict:
        return fetch_weather_row(city)

    results = fetch_weather.expand(city=CITIES)

    @task
    def publish(rows: List[dict]) -> None:
        failed = []
        for row in rows:
            r = dict(row)
            if r.pop("ok"):
                print(format_result(CallResult(**r)))
            else:
                failure = CallFailure(**r)
                failed.append(failure.city)
                print(format_failure(failure))
        if failed:
            raise AirflowFailException(f"no weather for: {', '.join(failed)}")

    publish(results)

dag = weather_threads()
