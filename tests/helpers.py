"""Test doubles: an aiogram session without network and an in-memory shop store."""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Any

from aiogram.client.session.base import BaseSession
from aiogram.methods import SendMessage
from sqlalchemy.exc import IntegrityError

from shop_platform.config import Settings
from shop_platform.core.bot_session import BotSession
from shop_platform.core.crypto import CredentialVault

SECRET = "test-encryption-secret"
BASE_URL = "https://shop.example.com"

TOKEN_A = "111111:AAAA-shop-a-token"
TOKEN_B = "222222:BBBB-shop-b-token"


class RecordingSession(BaseSession):
    """aiogram session without network: records requests, returns queued results."""

    def __init__(self, *, delay: float = 0.0, results: dict[type, list[Any]] | None = None) -> None:
        super().__init__()
        self.delay = delay
        self.requests: list[Any] = []
        self.results: dict[type, deque] = {k: deque(v) for k, v in (results or {}).items()}
        self.closed = False

    async def make_request(self, bot, method, timeout=None):
        self.requests.append(method)
        if self.delay:
            await asyncio.sleep(self.delay)
        queue = self.results.get(type(method))
        if queue:
            result = queue.popleft()
            if isinstance(result, BaseException):
                raise result
            return result
        return True

    async def stream_content(self, url, headers=None, timeout=30, chunk_size=65536, raise_for_status=True):
        yield b""

    async def close(self) -> None:
        self.closed = True

    def sent(self, method_type: type = SendMessage) -> list[Any]:
        return [r for r in self.requests if isinstance(r, method_type)]


class BotFactory:
    """SessionFactory stub: every BotSession it builds talks to a RecordingSession."""

    def __init__(self, settings: Settings, *, delay: float = 0.0) -> None:
        self.settings = settings
        self.delay = delay
        self.results: dict[type, list[Any]] = {}
        self.built: list[BotSession] = []

    def on(self, method_type: type, *results: Any) -> "BotFactory":
        self.results.setdefault(method_type, []).extend(results)
        return self

    def __call__(self, token: str, shop_id: str) -> BotSession:
        session = RecordingSession(delay=self.delay, results=self.results)
        bot_session = BotSession(token, shop_id, settings=self.settings, session=session)
        self.built.append(bot_session)
        return bot_session

    def sessions(self) -> list[RecordingSession]:
        return [b.bot.session for b in self.built]

    def all_sent(self, method_type: type = SendMessage) -> list[Any]:
        return [r for s in self.sessions() for r in s.sent(method_type)]


class FakeShopStore:
    """In-memory ShopStore."""

    def __init__(self) -> None:
        self.shops: dict[str, dict[str, Any]] = {}
        self.fail_reads = False

    def add(
        self,
        shop_id: str,
        *,
        bot_token: str = "",
        is_active: bool = True,
        is_banned: bool = False,
        **extra: Any,
    ) -> dict[str, Any]:
        shop = {
            "id": shop_id,
            "name": extra.pop("name", shop_id),
            "bot_token": bot_token,
            "bot_tg_id": None,
            "is_bot_active": False,
            "bot_username": None,
            "bot_name": None,
            "is_active": is_active,
            "is_banned": is_banned,
            "notification_chat_id": None,
        }
        shop.update(extra)
        self.shops[shop_id] = shop
        return shop

    async def fetch_dispatch_record(self, shop_id: str) -> dict | None:
        if self.fail_reads:
            raise ConnectionError("database is down")
        shop = self.shops.get(shop_id)
        if not shop:
            return None
        return {k: shop[k] for k in ("id", "bot_token", "is_active", "is_banned")}

    async def fetch_full_record(self, shop_id: str) -> dict | None:
        shop = self.shops.get(shop_id)
        return dict(shop) if shop else None

    async def update_record(self, shop_id: str, **fields: Any) -> bool:
        shop = self.shops.get(shop_id)
        if not shop:
            return False
        bot_tg_id = fields.get("bot_tg_id")
        if bot_tg_id is not None and any(
            s["bot_tg_id"] == bot_tg_id for sid, s in self.shops.items() if sid != shop_id
        ):
            # як unique-індекс uq_shops_bot_tg_id
            raise IntegrityError("UPDATE shops", fields, Exception("UNIQUE constraint failed: shops.bot_tg_id"))
        shop.update(fields)
        return True

    async def find_by_bot_tg_id(self, bot_tg_id: int) -> dict | None:
        for shop in self.shops.values():
            if shop.get("bot_tg_id") == bot_tg_id:
                return dict(shop)
        return None


class SpyVault(CredentialVault):
    def __init__(self, secret: str | None) -> None:
        super().__init__(secret)
        self.decrypt_calls = 0

    def decrypt(self, ciphertext: str) -> str:
        self.decrypt_calls += 1
        return super().decrypt(ciphertext)


def make_update(
    text: str,
    *,
    user_id: int = 555,
    chat_id: int | None = None,
    update_id: int = 1,
) -> dict[str, Any]:
    chat_id = user_id if chat_id is None else chat_id
    return {
        "update_id": update_id,
        "message": {
            "message_id": 10 + update_id,
            "date": 1_700_000_000,
            "chat": {"id": chat_id, "type": "private" if chat_id == user_id else "supergroup"},
            "from": {"id": user_id, "is_bot": False, "first_name": "Ann"},
            "text": text,
        },
    }
