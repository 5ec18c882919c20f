"""Shared pytest fixtures."""

from uuid import uuid4

import pytest
import yaml
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Register all models on Base
import quire.db.models  # noqa: F401
from quire.db.base import Base
from quire.db.services import site_service
from quire.db.session import enable_sqlite_savepoints
from quire.lib.hooks import hooks


@pytest.fixture
def temp_app_yaml(tmp_path):
    """Create a temporary app.yaml file for testing."""
    config_path = tmp_path / "app.yaml"

    def _create_config(config: dict):
        with open(config_path, "w") as f:
            yaml.safe_dump(config, f)
        return config_path

    return _create_config


@pytest.fixture
def clean_hooks():
    """Save and restore hooks state around a test."""
    saved = hooks.snapshot()
    yield
    hooks.restore(saved)


# ---------------------------------------------------------------------------
# In-memory database
# ---------------------------------------------------------------------------

@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_savepoints(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(engine):
    session_maker = async_sessionmaker(engine, expire_on_commit=False)
    async with session_maker() as session:
        yield session


@pytest.fixture
def workspace_id():
    return uuid4()


@pytest.fixture
async def site(db_session, workspace_id):
    return await site_service.create_site(db_session, workspace_id, "Acme", "acme")
