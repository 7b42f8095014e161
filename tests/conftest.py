"""Shared test fixtures."""

from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from fakes import build_fake_registry
from mvstudio.config import settings
from mvstudio.db.base import Base
# Import all models to register with Base.metadata
import mvstudio.db.models  # noqa: F401
from mvstudio.repositories.project_repo import ProjectRepository

ALICE = "user_alice"
BOB = "user_bob"


def make_token(sub: str, **claims) -> str:
    payload = {
        "sub": sub,
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=15),
        **claims,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def auth_headers(sub: str = ALICE) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(sub)}"}


@pytest.fixture
async def db_engine():
    """Create an in-memory SQLite async engine for testing."""
    engine = create_async_engine("sqlite+aiosqlite:///", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(db_engine):
    """Create a test database session."""
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
def registry():
    """Provider registry of scripted fake adapters, one per provider."""
    return build_fake_registry()


@pytest.fixture
async def project(db_session):
    """A project owned by Alice."""
    row = await ProjectRepository(db_session).create(
        project_id="proj_alice0000000001",
        owner_id=ALICE,
        title="Summer single",
        status="draft",
    )
    await db_session.commit()
    return row


@pytest.fixture
def app(db_engine, registry):
    """Create a test application instance with in-memory DB and fake providers."""
    from mvstudio.main import create_app

    _app = create_app()
    _app.state.db_engine = db_engine
    _app.state.db_session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    _app.state.provider_registry = registry
    return _app


@pytest.fixture
async def client(app):
    """Async HTTP test client authenticated as Alice."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test", headers=auth_headers(ALICE)) as ac:
        yield ac


@pytest.fixture
async def anon_client(app):
    """Async HTTP test client without credentials."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
