import json
from concurrent.futures import Executor, Future
from datetime import datetime, timedelta, timezone

import pytest
import requests

from countries.config import RefreshConfig
from countries.sources import SourceUnavailable

CATALOG_URL = "http://catalog.test/countries"
RATES_URL = "http://rates.test/latest/{base}"


class ImmediateExecutor(Executor):
    """Runs submitted work on the calling thread."""

    def submit(self, fn, /, *args, **kwargs):
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as exc:
            future.set_exception(exc)
        return future


class FakeSourceClient:
    def __init__(self, countries=None, rates=None, countries_error=None, rates_error=None):
        self.countries = countries or []
        self.rates = rates or {}
        self.countries_error = countries_error
        self.rates_error = rates_error
        self.rate_bases = []

    def fetch_entities(self):
        if self.countries_error:
            raise self.countries_error
        return self.countries

    def fetch_rates(self, base_currency):
        self.rate_bases.append(base_currency)
        if self.rates_error:
            raise self.rates_error
        return self.rates


class TickingClock:
    """Returns a strictly increasing UTC timestamp on every call."""

    def __init__(self, start=datetime(2025, 10, 1, 12, 0, tzinfo=timezone.utc)):
        self.current = start

    def __call__(self):
        self.current += timedelta(minutes=5)
        return self.current


def json_response(payload, status_code=200, url=""):
    resp = requests.Response()
    resp.status_code = status_code
    resp._content = json.dumps(payload).encode()
    resp.url = url
    return resp


@pytest.fixture
def catalog():
    return [
        {
            "name": "Nigeria",
            "capital": "Abuja",
            "region": "Africa",
            "population": 206139589,
            "flag": "https://flagcdn.com/ng.svg",
            "currencies": [{"code": "NGN"}],
        },
        {
            "name": "Ghana",
            "capital": "Accra",
            "region": "Africa",
            "population": 31072940,
            "flag": "https://flagcdn.com/gh.svg",
            "currencies": [{"code": "GHS"}],
        },
    ]


@pytest.fixture
def rates():
    return {"NGN": 1600.23, "GHS": 15.34}


@pytest.fixture
def image_path(tmp_path):
    return str(tmp_path / "cache" / "summary.png")


@pytest.fixture
def config(image_path):
    return RefreshConfig(
        countries_url=CATALOG_URL,
        rates_url=RATES_URL,
        base_currency="USD",
        timeout=5.0,
        summary_image_path=image_path,
    )


@pytest.fixture
def unavailable():
    return SourceUnavailable("exchange rates API", "500 Server Error")
