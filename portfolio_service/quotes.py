"""
Finnhub quote client.

``fetch_quote`` raises typed errors and is used where a caller wants the
full quote payload. ``fetch_price`` wraps it for batch use: it never raises,
every failure comes back as a ``QuoteResult`` outcome.
"""

from __future__ import annotations

import enum
import logging
import math
from dataclasses import dataclass
from typing import Optional

import requests

from portfolio_service.config import settings
from portfolio_service.errors import ProviderError, TransportError

logger = logging.getLogger(__name__)


class QuoteOutcome(str, enum.Enum):
    SUCCESS = "success"
    PROVIDER_ERROR = "provider_error"
    TRANSPORT_ERROR = "transport_error"


@dataclass(frozen=True)
class QuoteResult:
    ticker: str
    price: Optional[float]
    outcome: QuoteOutcome
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.outcome is QuoteOutcome.SUCCESS


def _as_float(value) -> float:
    return float(value or 0)


class QuoteClient:
    def __init__(
        self,
        api_key: str | None = None,
        session: requests.Session | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
    ):
        self.api_key = api_key if api_key is not None else settings.FINNHUB_API_KEY
        self.session = session or requests.Session()
        self.base_url = (base_url or settings.FINNHUB_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.QUOTE_TIMEOUT_SECONDS

    def fetch_quote(self, ticker: str) -> dict:
        """Fetch one quote. Raises TransportError or ProviderError."""
        sym = ticker.upper().strip()
        try:
            r = self.session.get(
                f"{self.base_url}/quote",
                params={"symbol": sym, "token": self.api_key},
                timeout=self.timeout,
            )
            r.raise_for_status()
            data = r.json()
        except (requests.RequestException, ValueError) as e:
            raise TransportError(sym, str(e)) from e

        if not isinstance(data, dict):
            raise ProviderError(sym, "unexpected response shape")

        # Finnhub returns current price in `c`, and 0 for unknown symbols
        c = data.get("c")
        if isinstance(c, bool):
            raise ProviderError(sym, f"no numeric price in response (c={c!r})")
        try:
            current = float(c)
        except (TypeError, ValueError) as e:
            raise ProviderError(sym, f"no numeric price in response (c={c!r})") from e
        if not math.isfinite(current):
            raise ProviderError(sym, f"price is not finite (c={c!r})")
        if current <= 0:
            raise ProviderError(sym, "no quote found")

        try:
            return {
                "current": current,
                "change": _as_float(data.get("d")),
                "change_pct": _as_float(data.get("dp")),
                "high": _as_float(data.get("h")),
                "low": _as_float(data.get("l")),
                "open": _as_float(data.get("o")),
                "prev_close": _as_float(data.get("pc")),
            }
        except (TypeError, ValueError) as e:
            raise ProviderError(sym, f"malformed quote fields: {e}") from e

    def fetch_price(self, ticker: str) -> QuoteResult:
        sym = ticker.upper().strip()
        try:
            quote = self.fetch_quote(sym)
        except TransportError as e:
            logger.warning("Transport error fetching %s: %s", sym, e.message)
            return QuoteResult(sym, None, QuoteOutcome.TRANSPORT_ERROR, e.message)
        except ProviderError as e:
            logger.warning("Provider returned no price for %s: %s", sym, e.message)
            return QuoteResult(sym, None, QuoteOutcome.PROVIDER_ERROR, e.message)
        return QuoteResult(sym, quote["current"], QuoteOutcome.SUCCESS)
