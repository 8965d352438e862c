"""Shared test fixtures."""

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from secpulse.config import Settings
from secpulse.connectors.config import ConnectorConfig
from secpulse.db.base import Base
# Import all models to register with Base.metadata
import secpulse.db.models  # noqa: F401
from secpulse.db.models.connector import ConnectorConfigRow
from secpulse.events.broadcast import Broadcaster
from secpulse.sync.context import SyncContext
from secpulse.sync.gateway import PersistenceGateway


class RecordingBroadcaster(Broadcaster):
    """Keeps every published event in memory."""

    def __init__(self):
        self.events: list[tuple[str, dict]] = []

    async def publish(self, event_type: str, payload: dict) -> bool:
        self.events.append((event_type, payload))
        return True

    def of_type(self, event_type: str) -> list[dict]:
        return [payload for kind, payload in self.events if kind == event_type]


@pytest.fixture
async def db_engine(tmp_path):
    """Create a throwaway SQLite database for one test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'secpulse_test.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture
def gateway(session_factory, broadcaster):
    return PersistenceGateway(session_factory, broadcaster)


@pytest.fixture
def test_settings():
    return Settings(local_mode=True, scheduler_enabled=False, worker_concurrency=1)


@pytest.fixture
def add_connector(session_factory):
    """Insert a connector_configs row and return it as a ConnectorConfig."""

    async def _add(
        connector_id: str,
        name: str,
        connector_type: str,
        *,
        implementation: str | None = None,
        base_url: str = "https://tool.example.test",
        auth_config: dict | None = None,
        enabled: bool = True,
        config: dict | None = None,
    ) -> ConnectorConfig:
        async with session_factory() as session:
            row = ConnectorConfigRow(
                connector_id=connector_id,
                name=name,
                connector_type=connector_type,
                implementation=implementation,
                base_url=base_url,
                auth_config=auth_config or {},
                enabled=enabled,
                sync_interval=15,
                status="pending",
                config=config or {},
            )
            session.add(row)
            await session.commit()
        return ConnectorConfig.from_row(row)

    return _add


@pytest.fixture
def remote_transport():
    """Outbound HTTP for connectors built by the app; every call answers 200 {}."""
    return httpx.MockTransport(lambda request: httpx.Response(200, json={}))


@pytest.fixture
def sync_context(test_settings, session_factory, broadcaster, remote_transport):
    ctx = SyncContext.build(test_settings, session_factory, None, transport=remote_transport)
    ctx.broadcaster = broadcaster
    ctx.gateway.broadcaster = broadcaster
    return ctx


@pytest.fixture
def app(db_engine, session_factory, sync_context):
    """Create a test application instance with a throwaway DB and no Redis."""
    from secpulse.main import create_app

    _app = create_app()
    _app.state.db_engine = db_engine
    _app.state.db_session_factory = session_factory
    _app.state.redis = None
    _app.state.sync_context = sync_context
    return _app


@pytest.fixture
async def client(app):
    """Async HTTP test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
