"""
Holding domain type and the SQLAlchemy-backed store that owns holdings.

The quote engine only ever reads a batch through ``list_holdings`` and hands
prices back through ``set_current_price``; the remaining methods back the
CRUD endpoints.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from portfolio_service.errors import StorageError
from portfolio_service.models import Stock

logger = logging.getLogger(__name__)


def normalize_ticker(ticker: str) -> str:
    return ticker.upper().strip()


@dataclass(frozen=True)
class Holding:
    id: int
    name: str
    ticker: str
    quantity: int
    buy_price: float
    current_price: Optional[float] = None

    def __post_init__(self):
        if self.quantity <= 0:
            raise ValueError(f"quantity must be positive, got {self.quantity}")
        if self.buy_price <= 0:
            raise ValueError(f"buy_price must be positive, got {self.buy_price}")

    @classmethod
    def from_row(cls, row: Stock) -> "Holding":
        return cls(
            id=row.id,
            name=row.name,
            ticker=row.ticker,
            quantity=int(row.quantity),
            buy_price=float(row.buy_price),
            current_price=None if row.current_price is None else float(row.current_price),
        )


class HoldingStore:
    """Row storage for holdings.

    Every method opens its own short-lived session, so a store can be shared
    between request handlers and the background refresh thread.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def list_holdings(self) -> list[Holding]:
        try:
            with self._session_factory() as db:
                rows = db.execute(select(Stock).order_by(Stock.id)).scalars().all()
                return [Holding.from_row(r) for r in rows]
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to load holdings: {e}") from e
        except ValueError as e:
            raise StorageError(f"Invalid holding row: {e}") from e

    def get_holding(self, holding_id: int) -> Optional[Holding]:
        try:
            with self._session_factory() as db:
                row = db.get(Stock, holding_id)
                return None if row is None else Holding.from_row(row)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to load holding {holding_id}: {e}") from e
        except ValueError as e:
            raise StorageError(f"Invalid holding row {holding_id}: {e}") from e

    def set_current_price(self, holding_id: int, price: float) -> bool:
        """Point update of one holding's price. Returns False if the id is gone."""
        try:
            with self._session_factory() as db:
                result = db.execute(
                    update(Stock).where(Stock.id == holding_id).values(current_price=price)
                )
                db.commit()
                return result.rowcount > 0
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to update price for holding {holding_id}: {e}") from e

    def create_holding(self, name: str, ticker: str, quantity: int, buy_price: float) -> Holding:
        try:
            with self._session_factory() as db:
                row = Stock(
                    name=name,
                    ticker=normalize_ticker(ticker),
                    quantity=quantity,
                    buy_price=buy_price,
                )
                db.add(row)
                db.commit()
                db.refresh(row)
                return Holding.from_row(row)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to create holding: {e}") from e

    def update_holding(
        self,
        holding_id: int,
        name: str,
        ticker: str,
        quantity: int,
        buy_price: float,
        current_price: Optional[float] = None,
    ) -> int:
        """Replace every field of a holding; an omitted current price clears it."""
        try:
            with self._session_factory() as db:
                result = db.execute(
                    update(Stock)
                    .where(Stock.id == holding_id)
                    .values(
                        name=name,
                        ticker=normalize_ticker(ticker),
                        quantity=quantity,
                        buy_price=buy_price,
                        current_price=current_price,
                    )
                )
                db.commit()
                return result.rowcount
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to update holding {holding_id}: {e}") from e

    def delete_holding(self, holding_id: int) -> int:
        try:
            with self._session_factory() as db:
                result = db.execute(delete(Stock).where(Stock.id == holding_id))
                db.commit()
                return result.rowcount
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to delete holding {holding_id}: {e}") from e
