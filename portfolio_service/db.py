from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from portfolio_service.config import settings

DATABASE_URL = settings.DATABASE_URL  # e.g. sqlite:///./portfolio.db or postgresql://user:pass@db:5432/portfolio


def make_engine(url: str):
    # SQLite connections are shared between request threads and the refresh thread
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, pool_pre_ping=True, connect_args=connect_args)


engine = make_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
