"""Pytest configuration and shared fakes.

Ensure the project root is on `sys.path` so `portfolio_service` imports work
without an editable install.
"""
from pathlib import Path
import sys

import pytest
import requests
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from portfolio_service.errors import ProviderError, TransportError  # noqa: E402
from portfolio_service.holdings import HoldingStore  # noqa: E402
from portfolio_service.models import Base  # noqa: E402
from portfolio_service.quotes import QuoteOutcome, QuoteResult  # noqa: E402


class FakeQuoteClient:
    """Quote client double. `prices` maps ticker to a price, or to an error outcome."""

    def __init__(self, prices=None, api_key="test-key"):
        self.prices = dict(prices or {})
        self.api_key = api_key
        self.calls = []

    def fetch_quote(self, ticker):
        sym = ticker.upper().strip()
        self.calls.append(sym)
        value = self.prices.get(sym, QuoteOutcome.PROVIDER_ERROR)
        if value is QuoteOutcome.TRANSPORT_ERROR:
            raise TransportError(sym, "connection refused")
        if value is QuoteOutcome.PROVIDER_ERROR:
            raise ProviderError(sym, "no quote found")
        return {"current": float(value), "change": 1.0, "change_pct": 0.5,
                "high": 0.0, "low": 0.0, "open": 0.0, "prev_close": 0.0}

    def fetch_price(self, ticker):
        sym = ticker.upper().strip()
        try:
            quote = self.fetch_quote(sym)
        except TransportError as e:
            return QuoteResult(sym, None, QuoteOutcome.TRANSPORT_ERROR, e.message)
        except ProviderError as e:
            return QuoteResult(sym, None, QuoteOutcome.PROVIDER_ERROR, e.message)
        return QuoteResult(sym, quote["current"], QuoteOutcome.SUCCESS)


class FakeResponse:
    def __init__(self, status_code=200, data=None, bad_json=False):
        self.status_code = status_code
        self._data = data
        self._bad_json = bad_json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")

    def json(self):
        if self._bad_json:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._data


class FakeSession:
    """Stands in for requests.Session; returns (or raises) a canned result."""

    def __init__(self, response=None, exc=None):
        self.response = response
        self.exc = exc
        self.requests = []

    def get(self, url, params=None, timeout=None):
        self.requests.append({"url": url, "params": params, "timeout": timeout})
        if self.exc is not None:
            raise self.exc
        return self.response


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def store(engine):
    return HoldingStore(sessionmaker(autocommit=False, autoflush=False, bind=engine))


@pytest.fixture
def fake_client():
    return FakeQuoteClient()
