"""
Caller-facing portfolio operations.

Request paths fetch fresh quotes without writing them back; only
``refresh_prices`` persists resolved prices.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from portfolio_service.batch import ThrottledBatchFetcher
from portfolio_service.errors import StorageError
from portfolio_service.holdings import Holding, HoldingStore
from portfolio_service.metrics import PortfolioSnapshot, aggregate

logger = logging.getLogger(__name__)


@dataclass
class RefreshReport:
    loaded: int = 0
    resolved: int = 0
    written: int = 0
    missing: int = 0
    write_errors: int = 0


def write_back(store: HoldingStore, holdings: Sequence[Holding], report: RefreshReport | None = None) -> RefreshReport:
    """Persist every resolved price. A failed write never blocks the next one."""
    report = report or RefreshReport()
    for h in holdings:
        if h.current_price is None:
            continue
        report.resolved += 1
        try:
            if store.set_current_price(h.id, h.current_price):
                report.written += 1
            else:
                # deleted since the batch was loaded
                report.missing += 1
        except StorageError as e:
            report.write_errors += 1
            logger.error("Error updating stock price for %s (id=%s): %s", h.ticker, h.id, e)
    return report


class PortfolioService:
    def __init__(self, store: HoldingStore, fetcher: ThrottledBatchFetcher):
        self.store = store
        self.fetcher = fetcher

    def get_enriched_holdings(self) -> list[Holding]:
        return self.fetcher.fetch_batch(self.store.list_holdings())

    def get_portfolio_metrics(self) -> PortfolioSnapshot:
        return aggregate(self.get_enriched_holdings())

    def refresh_prices(self) -> RefreshReport:
        """One load, fetch and write-back cycle. Raises StorageError if the load fails."""
        holdings = self.store.list_holdings()
        report = RefreshReport(loaded=len(holdings))
        updated = self.fetcher.fetch_batch(holdings)
        write_back(self.store, updated, report)
        logger.info(
            "Price refresh wrote %d of %d resolved prices (%d missing, %d errors)",
            report.written,
            report.resolved,
            report.missing,
            report.write_errors,
        )
        return report
