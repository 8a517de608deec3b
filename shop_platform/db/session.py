from __future__ import annotations

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from shop_platform.config import settings

_engine: AsyncEngine | None = None


def async_url(database_url: str) -> str:
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if database_url.startswith("postgres://"):
        return database_url.replace("postgres://", "postgresql+asyncpg://", 1)
    return database_url


def configure_engine(database_url: str) -> AsyncEngine:
    global _engine
    _engine = create_async_engine(async_url(database_url), pool_pre_ping=True)
    return _engine


def get_engine() -> AsyncEngine:
    # створюємо лениво, щоб імпорт модуля не вимагав живої БД
    if _engine is None:
        return configure_engine(settings.DATABASE_URL)
    return _engine


async def dispose_engine() -> None:
    global _engine
    if _engine is not None:
        await _engine.dispose()
        _engine = None


async def db_fetch_one(query: str, params: dict | None = None) -> dict | None:
    params = params or {}
    # begin() => commit/rollback автоматом
    async with get_engine().begin() as conn:
        res = await conn.execute(text(query), params)
        row = res.mappings().first()
        return dict(row) if row else None


async def db_execute(query: str, params: dict | None = None) -> int:
    params = params or {}
    async with get_engine().begin() as conn:
        res = await conn.execute(text(query), params)
        return int(getattr(res, "rowcount", 0) or 0)
