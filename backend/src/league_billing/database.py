"""Async SQLAlchemy engine and session factory for the league billing database."""
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from league_billing.config import settings

engine = create_async_engine(
    str(settings.database_url),
    echo=settings.debug and settings.app_env == "development",
    pool_pre_ping=True,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
)

# Checkout responses read the league and payment after commit
AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)

Base = declarative_base()
