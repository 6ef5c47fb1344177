"""
Throttled batch fetching.

Quotes are fetched one ticker at a time, in input order. A fixed cooldown is
inserted after every ``every`` requests so that a batch of N holdings spends
exactly ``(N - 1) // every`` cooldowns, whatever the individual outcomes.
"""

from __future__ import annotations

import dataclasses
import logging
import time
from dataclasses import dataclass
from typing import Callable, Protocol, Sequence

from portfolio_service.config import settings
from portfolio_service.holdings import Holding
from portfolio_service.quotes import QuoteOutcome, QuoteResult

logger = logging.getLogger(__name__)


class PriceSource(Protocol):
    def fetch_price(self, ticker: str) -> QuoteResult: ...


@dataclass(frozen=True)
class PacingPolicy:
    every: int = 30
    cooldown_seconds: float = 1.0

    def __post_init__(self):
        if self.every <= 0:
            raise ValueError("every must be positive")
        if self.cooldown_seconds < 0:
            raise ValueError("cooldown_seconds must not be negative")

    @classmethod
    def from_settings(cls) -> "PacingPolicy":
        return cls(every=settings.PACING_BATCH_SIZE, cooldown_seconds=settings.PACING_COOLDOWN_SECONDS)

    def pause_after(self, index: int) -> bool:
        """True when the request at ``index`` closes a window and a cooldown follows."""
        return index != 0 and index % self.every == 0

    def expected_cooldowns(self, n: int) -> int:
        return max(n - 1, 0) // self.every


@dataclass
class BatchReport:
    requested: int = 0
    resolved: int = 0
    provider_errors: int = 0
    transport_errors: int = 0
    cooldowns: int = 0

    @property
    def failed(self) -> int:
        return self.provider_errors + self.transport_errors


class ThrottledBatchFetcher:
    def __init__(
        self,
        client: PriceSource,
        policy: PacingPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.client = client
        self.policy = policy or PacingPolicy.from_settings()
        self._sleep = sleep

    def fetch_batch(self, holdings: Sequence[Holding]) -> list[Holding]:
        updated, _ = self.fetch_batch_with_report(holdings)
        return updated

    def fetch_batch_with_report(self, holdings: Sequence[Holding]) -> tuple[list[Holding], BatchReport]:
        report = BatchReport()
        updated: list[Holding] = []

        for i, holding in enumerate(holdings):
            result = self.client.fetch_price(holding.ticker)
            report.requested += 1

            if result.ok:
                updated.append(dataclasses.replace(holding, current_price=result.price))
                report.resolved += 1
            else:
                # keep the last known price, possibly None
                updated.append(holding)
                if result.outcome is QuoteOutcome.PROVIDER_ERROR:
                    report.provider_errors += 1
                else:
                    report.transport_errors += 1

            if self.policy.pause_after(i):
                report.cooldowns += 1
                self._sleep(self.policy.cooldown_seconds)

        logger.info(
            "Fetched %d quotes: %d resolved, %d provider errors, %d transport errors, %d cooldowns",
            report.requested,
            report.resolved,
            report.provider_errors,
            report.transport_errors,
            report.cooldowns,
        )
        return updated, report
