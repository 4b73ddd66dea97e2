import pytest
import requests
from datetime import date, timedelta

from analyzers.bond_resolver import BondResolver
from api.lookup import BondLookup
from data.cache import MemoryCache
from data.moex_api import MoexAPI

TODAY = date(2026, 10, 19)


def iss_block(columns, *rows):
    """ISS-блок {"columns": [...], "data": [...]}."""
    return {"columns": list(columns), "data": [list(r) for r in rows]}


def day(offset: int) -> str:
    return (TODAY + timedelta(days=offset)).isoformat()


class FakeResponse:
    """Минимальная замена requests.Response."""

    def __init__(self, status_code=200, json_data=None, raise_json=False):
        self.status_code = status_code
        self._json_data = json_data
        self._raise_json = raise_json

    def json(self):
        if self._raise_json:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._json_data


class FakeSession:
    """
    Отвечает по подстроке URL: "bondization" или "securities".
    Запоминает все запросы в calls.
    """

    def __init__(self, security=None, bondization=None):
        self.headers = {}
        self.calls = []
        self.responses = {"security": security, "bondization": bondization}

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, params, timeout))
        key = "bondization" if "bondization" in url else "security"
        response = self.responses[key]
        if isinstance(response, Exception):
            raise response
        if response is None:
            raise AssertionError(f"Неожиданный запрос: {url}")
        if isinstance(response, FakeResponse):
            return response
        return FakeResponse(200, response)


def security_payload(securities=None, marketdata=None):
    payload = {}
    if securities is not None:
        payload["securities"] = securities
    if marketdata is not None:
        payload["marketdata"] = marketdata
    return payload


@pytest.fixture
def make_resolver():
    def _make(security=None, bondization=None, today=TODAY):
        session = FakeSession(security=security, bondization=bondization)
        api = MoexAPI(session=session)
        resolver = BondResolver(api=api, today=lambda: today)
        return resolver, session
    return _make


@pytest.fixture
def make_lookup(make_resolver):
    def _make(security=None, bondization=None, clock=None):
        resolver, session = make_resolver(security=security, bondization=bondization)
        cache = MemoryCache(clock=clock) if clock else MemoryCache()
        return BondLookup(resolver=resolver, cache=cache), session
    return _make


@pytest.fixture
def connection_error():
    return requests.ConnectionError("Connection refused")
