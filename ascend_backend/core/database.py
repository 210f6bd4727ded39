import logging

from sqlalchemy import create_engine as create_sync_engine
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import Session, SQLModel

from ascend_backend.core.config import DATABASE_URL, SQL_ECHO, SYNC_DATABASE_URL

logger = logging.getLogger(__name__)


def _enable_sqlite_immediate_transactions(async_engine) -> None:
    """
    SQLite only allows one writer. Starting every transaction with BEGIN IMMEDIATE
    makes concurrent writers wait on the busy timeout instead of failing when a
    read lock is upgraded mid-transaction. Also turns on SAVEPOINT support.
    """
    sync_engine_ = async_engine.sync_engine

    @event.listens_for(sync_engine_, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(sync_engine_, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_async_engine(url: str = DATABASE_URL, echo: bool = SQL_ECHO, **kwargs):
    """Create the async engine, with SQLite write serialization when needed."""
    if url.startswith("sqlite"):
        connect_args = kwargs.pop("connect_args", {})
        connect_args.setdefault("timeout", 30)
        kwargs["connect_args"] = connect_args
    async_engine = create_async_engine(url, echo=echo, future=True, **kwargs)
    if url.startswith("sqlite"):
        _enable_sqlite_immediate_transactions(async_engine)
    return async_engine


def build_session_maker(async_engine):
    return sessionmaker(bind=async_engine, class_=AsyncSession, expire_on_commit=False)


# --- Engines ---
engine = build_async_engine()                                            # Async (routes/services)
sync_engine = create_sync_engine(SYNC_DATABASE_URL, echo=SQL_ECHO, future=True)  # Sync (seeding)

# --- Async session maker ---
async_session_maker = build_session_maker(engine)


# --- Async DB session (used in routes) ---
async def get_db():
    async with async_session_maker() as session:
        yield session


def get_session_factory():
    """Dependency for operations that open one transaction per unit of work (rollover)."""
    return async_session_maker


# --- Initialize DB tables ---
async def init_db(async_engine=None):
    """Create tables asynchronously if they don't exist."""
    from ascend_backend import models  # noqa: F401  (registers table metadata)

    async with (async_engine or engine).begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.info("Database tables ready")


# --- Sync session for seeding/scripts ---
def get_sync_session():
    return Session(sync_engine)
