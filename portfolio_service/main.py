import logging
from typing import Optional

from cachetools import TTLCache
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from portfolio_service.batch import ThrottledBatchFetcher
from portfolio_service.config import settings
from portfolio_service.db import SessionLocal, engine
from portfolio_service.errors import ProviderError, StorageError, TransportError
from portfolio_service.holdings import HoldingStore, normalize_ticker
from portfolio_service.logging_config import setup_logging
from portfolio_service.metrics import PortfolioSnapshot
from portfolio_service.models import Base
from portfolio_service.quotes import QuoteClient
from portfolio_service.scheduler import RefreshScheduler
from portfolio_service.service import PortfolioService

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.APP_NAME, version=settings.APP_VERSION)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Cache single quotes to reduce rate-limit pain
price_cache = TTLCache(maxsize=settings.PRICE_CACHE_MAXSIZE, ttl=settings.PRICE_CACHE_TTL_SECONDS)

_store = HoldingStore(SessionLocal)
_quote_client = QuoteClient()


# ---------- Schemas ----------

class StockIn(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    ticker: str = Field(min_length=1, max_length=10)
    quantity: int = Field(gt=0)
    buy_price: float = Field(gt=0)


class StockUpdate(StockIn):
    current_price: Optional[float] = Field(default=None, ge=0)


class StockOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    ticker: str
    quantity: int
    buy_price: float
    current_price: Optional[float] = None


class DistributionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    ticker: str
    value: float
    percentage: float


class MetricsOut(BaseModel):
    total_value: float
    top_stock: Optional[StockOut]
    portfolio_distribution: list[DistributionOut]

    @classmethod
    def from_snapshot(cls, snap: PortfolioSnapshot) -> "MetricsOut":
        return cls(
            total_value=snap.total_value,
            top_stock=None if snap.top_performer is None else StockOut.model_validate(snap.top_performer),
            portfolio_distribution=[DistributionOut.model_validate(d) for d in snap.distribution],
        )


# ---------- Dependencies ----------

def get_store() -> HoldingStore:
    return _store


def get_quote_client() -> QuoteClient:
    return _quote_client


def get_service(
    store: HoldingStore = Depends(get_store),
    client: QuoteClient = Depends(get_quote_client),
) -> PortfolioService:
    return PortfolioService(store, ThrottledBatchFetcher(client))


def get_scheduler(request: Request) -> RefreshScheduler:
    scheduler = getattr(request.app.state, "scheduler", None)
    if scheduler is None:
        raise HTTPException(status_code=503, detail="Background refresh is disabled")
    return scheduler


# ---------- Lifecycle ----------

@app.on_event("startup")
def startup() -> None:
    Base.metadata.create_all(bind=engine)
    app.state.scheduler = None
    if not settings.REFRESH_ENABLED:
        logger.info("Background price refresh disabled")
        return
    if not _quote_client.api_key:
        logger.warning("FINNHUB_API_KEY not set, background price refresh not started")
        return
    service = PortfolioService(_store, ThrottledBatchFetcher(_quote_client))
    scheduler = RefreshScheduler(service.refresh_prices, interval_seconds=settings.REFRESH_INTERVAL_SECONDS)
    scheduler.start()
    app.state.scheduler = scheduler


@app.on_event("shutdown")
def shutdown() -> None:
    scheduler = getattr(app.state, "scheduler", None)
    if scheduler is not None:
        scheduler.stop(timeout=5)


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    logger.error("Storage error on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": str(exc)})


# ---------- Routes ----------

@app.get("/")
def root():
    return {"message": "Welcome to the Stock Portfolio Tracker"}


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/stocks", response_model=list[StockOut])
def get_stocks(service: PortfolioService = Depends(get_service)):
    return [StockOut.model_validate(h) for h in service.get_enriched_holdings()]


@app.post("/stocks", response_model=StockOut, status_code=201)
def create_stock(s: StockIn, store: HoldingStore = Depends(get_store)):
    holding = store.create_holding(s.name, s.ticker, s.quantity, s.buy_price)
    return StockOut.model_validate(holding)


@app.put("/stocks/{stock_id}")
def update_stock(stock_id: int, s: StockUpdate, store: HoldingStore = Depends(get_store)):
    rows = store.update_holding(stock_id, s.name, s.ticker, s.quantity, s.buy_price, s.current_price)
    return {"updated_rows": rows}


@app.delete("/stocks/{stock_id}")
def delete_stock(stock_id: int, store: HoldingStore = Depends(get_store)):
    return {"deleted_rows": store.delete_holding(stock_id)}


@app.get("/portfolio-metrics", response_model=MetricsOut)
def portfolio_metrics(service: PortfolioService = Depends(get_service)):
    return MetricsOut.from_snapshot(service.get_portfolio_metrics())


@app.post("/refresh")
def refresh(scheduler: RefreshScheduler = Depends(get_scheduler)):
    ran = scheduler.run_once()
    return {"ran": ran, "state": scheduler.state.value}


@app.get("/price/{symbol}")
def get_price(symbol: str, client: QuoteClient = Depends(get_quote_client)):
    if not client.api_key:
        raise HTTPException(status_code=500, detail="FINNHUB_API_KEY not set")

    sym = normalize_ticker(symbol)
    if not sym:
        raise HTTPException(status_code=400, detail="Symbol required")

    if sym in price_cache:
        return {"symbol": sym, "source": "cache", **price_cache[sym]}

    try:
        payload = client.fetch_quote(sym)
    except TransportError as e:
        raise HTTPException(status_code=502, detail=f"Quote provider error: {e.message}")
    except ProviderError:
        raise HTTPException(status_code=404, detail=f"No quote found for {sym}")

    price_cache[sym] = payload
    return {"symbol": sym, "source": "live", **payload}
