"""Test configuration and fixtures."""

import os

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("BEARER_TOKEN_SECRET", "test-secret")
os.environ.setdefault("INVALIDATION_DEBOUNCE_SECONDS", "0")
os.environ.setdefault("ENABLE_WORKERS", "false")

from datetime import date, timedelta  # noqa: E402
from uuid import UUID, uuid4  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

from travel_booking.core.auth import SessionContext, create_access_token, session_store  # noqa: E402
from travel_booking.core.config import settings  # noqa: E402
from travel_booking.core.database import Base, get_db, get_session_factory  # noqa: E402
from travel_booking.core.events import aggregate_cache  # noqa: E402
from travel_booking.models import *  # noqa: E402,F403 - Import all models
from travel_booking.models import ADMIN_ROLE, Profile, UserRole  # noqa: E402
from travel_booking.schemas.catalog import CreateDepartureRequest, CreatePackageRequest, DeparturePriceInput  # noqa: E402
from travel_booking.services.catalog_service import CatalogService  # noqa: E402
from travel_booking.services.storage_service import StorageService  # noqa: E402


@pytest.fixture(autouse=True)
def isolated_state(tmp_path, monkeypatch):
    """Fresh caches and a private storage directory for every test."""
    monkeypatch.setattr(settings, "storage_dir", str(tmp_path / "storage"))
    monkeypatch.setattr(aggregate_cache, "debounce_seconds", 0)
    session_store.clear()
    aggregate_cache.clear()
    yield
    session_store.clear()
    aggregate_cache.clear()


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    """
    Create a test database engine.

    File-backed so that concurrent reads on separate sessions see the
    same data.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def test_session(session_factory):
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def storage(tmp_path):
    return StorageService(base_dir=tmp_path / "storage", public_url="http://test/storage")


@pytest_asyncio.fixture(scope="function")
async def test_app(session_factory):
    """Application with the database dependencies pointed at the test engine."""
    from travel_booking.main import create_app

    app = create_app()

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    yield app

    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def test_client(test_app):
    """Create a test HTTP client."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


async def _create_profile(db: AsyncSession, name: str = "Ahmad Fauzi", admin: bool = False) -> Profile:
    profile = Profile(id=uuid4(), name=name, email=f"{uuid4().hex[:8]}@example.com")
    db.add(profile)
    if admin:
        db.add(UserRole(user_id=profile.id, role=ADMIN_ROLE))
    await db.commit()
    return profile


def _context_for(profile: Profile, admin: bool = False) -> SessionContext:
    return SessionContext(
        user_id=profile.id,
        email=profile.email,
        name=profile.name,
        roles=frozenset({ADMIN_ROLE}) if admin else frozenset(),
    )


@pytest.fixture
def auth_headers():
    """Build a bearer header for a user."""

    def build(user_id: UUID, **claims) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user_id, **claims)}"}

    return build


@pytest.fixture
def make_profile(test_session):
    """Create a profile, optionally with the admin role."""

    async def create(name: str = "Ahmad Fauzi", admin: bool = False) -> Profile:
        return await _create_profile(test_session, name=name, admin=admin)

    return create


@pytest.fixture
def session_for():
    """Session context of a profile."""
    return _context_for


@pytest_asyncio.fixture
async def customer(test_session) -> Profile:
    return await _create_profile(test_session, name="Ahmad Fauzi")


@pytest_asyncio.fixture
async def admin_profile(test_session) -> Profile:
    return await _create_profile(test_session, name="Admin", admin=True)


@pytest.fixture
def sample_package_data():
    """Sample package data for testing."""
    return {
        "title": "Umroh Reguler 9 Hari",
        "slug": "umroh-reguler-9-hari",
        "description": "Paket umroh reguler dengan hotel bintang 4",
        "duration_days": 9,
        "minimum_dp": 5_000_000,
        "commissions": {"cabang": 1_000_000, "agen": 750_000},
    }


@pytest_asyncio.fixture
async def departure(test_session, sample_package_data):
    """Open departure 60 days out with quad/triple/double prices and 40 seats."""
    catalog_service = CatalogService(test_session)
    package = await catalog_service.create_package(CreatePackageRequest(**sample_package_data))
    created = await catalog_service.create_departure(
        CreateDepartureRequest(
            package_id=package.id,
            departure_date=date.today() + timedelta(days=60),
            quota=40,
            prices=[
                DeparturePriceInput(room_type="quad", price=20_000_000),
                DeparturePriceInput(room_type="triple", price=22_000_000),
                DeparturePriceInput(room_type="double", price=25_000_000),
            ],
        )
    )
    return await catalog_service.get_departure_by_id_or_raise(created.id)
