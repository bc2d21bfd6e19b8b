# app/core/db.py

import ssl
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy import event

from app.core.config import (
    DATABASE_URL,
    DB_TYPE,
    DB_POOL_SIZE,
    DB_MAX_OVERFLOW,
    DB_POOL_TIMEOUT,
    DB_SSL_VERIFY,
    DB_ECHO_POOL,
    APP_ENV,
)

# =====================================================
# BASE
# =====================================================
Base = declarative_base()


# =====================================================
# SQLITE FK ENFORCEMENT
# =====================================================
def enable_sqlite_foreign_keys(dbapi_connection, _):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


# =====================================================
# ENGINE FACTORY
# =====================================================
def _postgres_options() -> dict:
    ssl_ctx = ssl.create_default_context()
    if not DB_SSL_VERIFY:
        ssl_ctx.check_hostname = False
        ssl_ctx.verify_mode = ssl.CERT_NONE

    return {
        "connect_args": {
            "ssl": ssl_ctx,
            # asyncpg behind pgbouncer cannot reuse prepared statements
            "statement_cache_size": 0,
            "prepared_statement_cache_size": 0,
        },
        "pool_size": DB_POOL_SIZE,
        "max_overflow": DB_MAX_OVERFLOW,
        "pool_timeout": DB_POOL_TIMEOUT,
        "pool_pre_ping": True,
    }


def build_engine(url: str, db_type: str, **overrides) -> AsyncEngine:
    """
    Engine for the ledger store.

    Row locks taken with ``with_for_update()`` are only enforced on postgres;
    sqlite serializes writers on its own and is used for development and tests.
    """
    if db_type == "postgres":
        options = _postgres_options()
    else:
        options = {"connect_args": {"check_same_thread": False}}

    options.update(overrides)

    engine = create_async_engine(
        url,
        echo=False,
        echo_pool=DB_ECHO_POOL,
        future=True,
        **options,
    )

    if db_type == "sqlite":
        event.listen(engine.sync_engine, "connect", enable_sqlite_foreign_keys)

    return engine


def build_sessionmaker(bind: AsyncEngine) -> sessionmaker:
    # instances stay readable after commit; locked re-reads use populate_existing
    return sessionmaker(
        bind=bind,
        class_=AsyncSession,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )


# =====================================================
# DEFAULT ENGINE + SESSION
# =====================================================
engine = build_engine(DATABASE_URL, DB_TYPE)
AsyncSessionLocal = build_sessionmaker(engine)


# =====================================================
# DEPENDENCY
# =====================================================
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session


# =====================================================
# MODEL IMPORT
# =====================================================
import app.models  # noqa


# =====================================================
# DEV ONLY: AUTO CREATE TABLES
# =====================================================
async def create_tables(bind: AsyncEngine):
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def init_models():
    if APP_ENV != "development":
        raise RuntimeError("init_models() is forbidden outside development")

    await create_tables(engine)
