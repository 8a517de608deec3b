# shop_platform/core/shop_ctx.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable
from urllib.parse import quote, urlencode

from aiogram import BaseMiddleware
from aiogram.types import TelegramObject


@dataclass(frozen=True)
class ShopContext:
    shop_id: str


class ShopContextMiddleware(BaseMiddleware):
    """
    Кладе ShopContext у data кожного апдейту ДО хендлерів.
    data — окремий dict на кожен feed_update, тож паралельні апдейти не ділять стан.
    """

    def __init__(self, shop_id: str) -> None:
        self.shop = ShopContext(shop_id=shop_id)

    async def __call__(
        self,
        handler: Callable[[TelegramObject, dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: dict[str, Any],
    ) -> Any:
        data["shop"] = self.shop
        return await handler(event, data)


def shop_webhook_url(base_url: str, prefix: str, shop_id: str) -> str:
    base = base_url.rstrip("/")
    prefix = "/" + prefix.strip("/")
    return f"{base}{prefix}/{quote(shop_id, safe='')}"


def mini_app_url(base_url: str, shop_id: str) -> str | None:
    base = (base_url or "").strip().rstrip("/")
    if not base:
        return None
    return f"{base}/tma?{urlencode({'shopId': shop_id})}"
