from __future__ import annotations

import secrets
import time
from typing import Any, Protocol

from shop_platform.db.session import db_execute, db_fetch_one

_BOOL_FIELDS = ("is_bot_active", "is_active", "is_banned")

# колонки, які дозволено міняти через update_record
UPDATABLE_FIELDS = frozenset(
    {
        "name",
        "bot_token",
        "bot_tg_id",
        "is_bot_active",
        "bot_username",
        "bot_name",
        "is_active",
        "is_banned",
        "notification_chat_id",
    }
)


def _now() -> int:
    return int(time.time())


def _normalize(row: dict | None) -> dict | None:
    # sqlite віддає BOOLEAN як 0/1
    if row is None:
        return None
    for k in _BOOL_FIELDS:
        if k in row:
            row[k] = bool(row[k])
    return row


class ShopStore(Protocol):
    """Те, що ядру потрібно від сховища магазинів."""

    async def fetch_dispatch_record(self, shop_id: str) -> dict | None: ...

    async def fetch_full_record(self, shop_id: str) -> dict | None: ...

    async def update_record(self, shop_id: str, **fields: Any) -> bool: ...

    async def find_by_bot_tg_id(self, bot_tg_id: int) -> dict | None: ...


class ShopRepo:
    @staticmethod
    async def create(
        *,
        shop_id: str | None = None,
        name: str = "",
        owner_user_id: int | None = None,
        is_active: bool = True,
    ) -> dict:
        sid = shop_id or secrets.token_hex(8)
        ts = _now()
        q = """
        INSERT INTO shops (id, owner_user_id, name, is_active, created_ts, updated_ts)
        VALUES (:id, :owner, :name, :active, :ts, :ts)
        """
        await db_execute(q, {"id": sid, "owner": owner_user_id, "name": name, "active": is_active, "ts": ts})
        return await ShopRepo.fetch_full_record(sid) or {"id": sid}

    @staticmethod
    async def fetch_dispatch_record(shop_id: str) -> dict | None:
        q = """
        SELECT id, bot_token, is_active, is_banned
        FROM shops
        WHERE id = :id
        LIMIT 1
        """
        return _normalize(await db_fetch_one(q, {"id": shop_id}))

    @staticmethod
    async def fetch_full_record(shop_id: str) -> dict | None:
        q = """
        SELECT id, owner_user_id, name,
               bot_token, bot_tg_id, is_bot_active, bot_username, bot_name,
               is_active, is_banned, notification_chat_id,
               created_ts, updated_ts
        FROM shops
        WHERE id = :id
        LIMIT 1
        """
        return _normalize(await db_fetch_one(q, {"id": shop_id}))

    @staticmethod
    async def update_record(shop_id: str, **fields: Any) -> bool:
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"unknown shop fields: {sorted(unknown)}")
        if not fields:
            return False

        sets = ", ".join(f"{k} = :{k}" for k in sorted(fields))
        q = f"""
        UPDATE shops
        SET {sets}, updated_ts = :updated_ts
        WHERE id = :id
        """
        params = dict(fields, id=shop_id, updated_ts=_now())
        return await db_execute(q, params) > 0

    @staticmethod
    async def find_by_bot_tg_id(bot_tg_id: int) -> dict | None:
        q = """
        SELECT id, bot_username, bot_name
        FROM shops
        WHERE bot_tg_id = :bid
        LIMIT 1
        """
        return await db_fetch_one(q, {"bid": int(bot_tg_id)})
