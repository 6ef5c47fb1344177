"""
Portfolio valuation metrics.

Snapshots are derived from the holdings passed in and are never cached.
Holdings without a resolved price are left out of every figure. When the
total value is zero every distribution percentage is reported as 0.00
instead of a division artifact.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence

from portfolio_service.holdings import Holding


@dataclass(frozen=True)
class DistributionEntry:
    name: str
    ticker: str
    value: float
    percentage: float


@dataclass(frozen=True)
class PortfolioSnapshot:
    total_value: float = 0.0
    top_performer: Optional[Holding] = None
    distribution: list[DistributionEntry] = field(default_factory=list)


def holding_value(holding: Holding) -> float:
    return holding.quantity * (holding.current_price or 0.0)


def holding_gain(holding: Holding) -> float:
    return holding.quantity * ((holding.current_price or 0.0) - holding.buy_price)


def percentage_of(value: float, total: float) -> float:
    if total == 0:
        return 0.0
    return round(100.0 * value / total, 2)


def aggregate(holdings: Sequence[Holding]) -> PortfolioSnapshot:
    priced = [h for h in holdings if h.current_price is not None]

    total_value = 0.0
    top: Optional[Holding] = None
    top_gain = float("-inf")
    for h in priced:
        total_value += holding_value(h)
        gain = holding_gain(h)
        # strict comparison keeps the first holding on ties
        if gain > top_gain:
            top_gain = gain
            top = h

    distribution = [
        DistributionEntry(
            name=h.name,
            ticker=h.ticker,
            value=holding_value(h),
            percentage=percentage_of(holding_value(h), total_value),
        )
        for h in priced
    ]
    return PortfolioSnapshot(total_value=total_value, top_performer=top, distribution=distribution)
