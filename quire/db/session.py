"""Database configuration shared by the API app and the public site app.

Provides a session config that cleans up properly when HTTP requests are
cancelled, and the SQLite transaction fixes that SAVEPOINT-based revision
writes rely on.
"""

import asyncio
from collections.abc import AsyncGenerator
from typing import TYPE_CHECKING, Any, Callable, cast

from advanced_alchemy._listeners import set_async_context
from advanced_alchemy.config import EngineConfig
from advanced_alchemy.extensions.litestar import AsyncSessionConfig, SQLAlchemyAsyncConfig
from advanced_alchemy.extensions.litestar._utils import (
    delete_aa_scope_state,
    get_aa_scope_state,
    set_aa_scope_state,
)
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from quire.config import DatabaseConfig
from quire.db.base import Base

if TYPE_CHECKING:
    from litestar.datastructures import State
    from litestar.types import Scope


class SafeSQLAlchemyAsyncConfig(SQLAlchemyAsyncConfig):
    """SQLAlchemy async config with safe session cleanup on request cancellation.

    The standard session management relies on ASGI events to trigger cleanup;
    a CancelledError (client disconnect, timeout) can prevent those from
    firing and leak pooled connections. Providing the session from an async
    generator lets Litestar's dependency injection run the cleanup anyway.
    """

    async def provide_session(
        self,
        state: "State",
        scope: "Scope",
    ) -> AsyncGenerator[AsyncSession, None]:
        session = cast(
            "AsyncSession | None",
            get_aa_scope_state(scope, self.session_scope_key),
        )

        if session is None:
            session_maker = cast(
                "Callable[[], AsyncSession]",
                state[self.session_maker_app_state_key],
            )
            session = session_maker()
            # Store in scope for reuse within this request
            set_aa_scope_state(scope, self.session_scope_key, session)

        set_async_context(True)

        try:
            yield session
        except asyncio.CancelledError:
            await session.close()
            # Remove the session from scope state to prevent double-close
            delete_aa_scope_state(scope, self.session_scope_key)
            raise


def enable_sqlite_savepoints(engine: AsyncEngine) -> None:
    """Let SQLAlchemy own BEGIN on SQLite so nested transactions work.

    The sqlite3 driver defers BEGIN until the first DML statement, which
    breaks SAVEPOINT semantics.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")


def create_db_config(db: DatabaseConfig) -> SafeSQLAlchemyAsyncConfig:
    """Build the advanced-alchemy config for ``db``."""
    is_sqlite = db.url.startswith("sqlite")
    if is_sqlite:
        engine_config = EngineConfig(echo=db.echo)
    else:
        engine_kwargs: dict[str, Any] = dict(
            pool_size=db.pool_size,
            max_overflow=db.pool_overflow,
            pool_timeout=db.pool_timeout,
            pool_pre_ping=db.pool_pre_ping,
            echo=db.echo,
        )
        engine_config = EngineConfig(**engine_kwargs)

    db_config = SafeSQLAlchemyAsyncConfig(
        connection_string=db.url,
        metadata=Base.metadata,
        create_all=False,
        session_config=AsyncSessionConfig(expire_on_commit=False),
        engine_config=engine_config,
    )
    if is_sqlite:
        enable_sqlite_savepoints(db_config.get_engine())
    return db_config


async def create_all(engine: AsyncEngine) -> None:
    """Create missing tables (development and tests; production uses Alembic)."""
    import quire.db.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
