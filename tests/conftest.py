import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.pool import StaticPool

from pilgrim_housing.database import build_engine, build_sessionmaker, get_session
from pilgrim_housing.main import app
from pilgrim_housing.models import Base
from pilgrim_housing.viewmodels.allocation_vm import SessionRegistry


@pytest.fixture
async def engine():
    engine = build_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def sessionmaker(engine):
    return build_sessionmaker(engine)


@pytest.fixture
async def session(sessionmaker):
    async with sessionmaker() as session:
        yield session


@pytest.fixture
async def client(sessionmaker):
    async def _get_session():
        async with sessionmaker() as session:
            yield session

    app.dependency_overrides[get_session] = _get_session
    app.state.allocations = SessionRegistry(max_sessions=10)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
