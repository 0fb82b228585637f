# conftest.py

from types import SimpleNamespace

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from category_service import CategoryService
from config import Settings
from database import build_engine, build_sessionmaker, create_tables, get_db
from identity_store import SessionState, UserStore
from lead_magnet_service import LeadMagnetService
from post_service import PostService

PASSWORD = "Correct-Horse-1"


@pytest.fixture
def settings(tmp_path) -> Settings:
    # Use a separate test database per test
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test_content.db'}",
        admin_emails=["alice@example.com"],
        max_failed_login_attempts=3,
        lockout_minutes=15,
    )


# Fixture to set up and tear down the test database
@pytest_asyncio.fixture
async def engine(settings):
    test_engine = build_engine(settings.database_url)
    await create_tables(bind=test_engine)
    yield test_engine
    await test_engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return build_sessionmaker(engine)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as db_session:
        yield db_session


@pytest_asyncio.fixture
async def users(session, settings):
    """Two registered owners: alice (admin) and bob, plus an inactive carol."""
    store = UserStore(session, SessionState(), settings)
    alice = await store.create_user("alice@example.com", PASSWORD, "Alice", "Anders")
    bob = await store.create_user("bob@example.com", PASSWORD, "Bob", "Brown")
    carol = await store.create_user("carol@example.com", PASSWORD, "Carol", "Clark", is_active=False)
    return SimpleNamespace(alice=alice.id, bob=bob.id, carol=carol.id)


@pytest_asyncio.fixture
async def category_service(session, settings):
    return CategoryService(session, settings)


@pytest_asyncio.fixture
async def post_service(session, settings):
    return PostService(session, settings)


@pytest_asyncio.fixture
async def lead_magnet_service(session, settings):
    return LeadMagnetService(session, settings)


# Fixture for the async HTTP client
@pytest_asyncio.fixture
async def client(session_factory):
    from main import app

    # Override the get_db dependency for testing
    async def override_get_db():
        async with session_factory() as db_session:
            yield db_session

    app.dependency_overrides[get_db] = override_get_db
    # Use ASGITransport to test the FastAPI app with httpx.AsyncClient
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
