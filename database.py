# database.py

from typing import AsyncIterator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from config import get_settings


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    engine = create_async_engine(database_url, echo=echo)  # Set echo=True for SQL logging
    if engine.dialect.name == "sqlite":
        # SQLite leaves foreign keys off unless asked per connection
        @event.listens_for(engine.sync_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()
    return engine


def build_sessionmaker(engine: AsyncEngine) -> sessionmaker:
    return sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


_settings = get_settings()

# Create the async engine
engine = build_engine(_settings.database_url, echo=_settings.database_echo)

# Create a configured "Session" class
AsyncSessionLocal = build_sessionmaker(engine)


# Dependency to get DB session
async def get_db() -> AsyncIterator[AsyncSession]:
    async with AsyncSessionLocal() as session:
        yield session


# Function to create tables (run once at startup)
async def create_tables(bind: AsyncEngine = None):
    from models import Base  # Import Base here to avoid circular imports
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
