# shop_platform/core/webhook.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Union

from shop_platform.core.crypto import CredentialVault
from shop_platform.core.session_cache import SessionCache
from shop_platform.db.repo import ShopStore

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Rejected:
    """Єдині випадки, коли Telegram отримує не-200."""

    status_code: int
    error: str


@dataclass(frozen=True)
class Acknowledged:
    message: str | None = None
    # внутрішня причина (в лог/тести), у відповідь Telegram не йде
    warning: str | None = None


DispatchResult = Union[Rejected, Acknowledged]


class WebhookDispatcher:
    """
    Апдейт -> магазин -> токен -> сесія -> пайплайн.

    Не-200 тільки для: нема shop_id (400), нема магазину (404), бан (403).
    Все інше, включно з нашими ж помилками, — 200, інакше Telegram
    ретраїть той самий апдейт нескінченно.
    """

    def __init__(self, store: ShopStore, vault: CredentialVault, cache: SessionCache) -> None:
        self.store = store
        self.vault = vault
        self.cache = cache

    async def dispatch(self, shop_id: str | None, update: dict[str, Any]) -> DispatchResult:
        shop_id = (shop_id or "").strip()

        # 1) шлях без shop_id
        if not shop_id:
            log.warning("Webhook without shop id")
            return Rejected(status_code=400, error="Missing shopId")

        # 2) магазин (прапорці читаємо кожен раз — бан має діяти одразу)
        try:
            shop = await self.store.fetch_dispatch_record(shop_id)
        except Exception:
            log.exception("Shop lookup failed shop=%s", shop_id)
            return Acknowledged(warning="lookup_failed")

        if not shop:
            log.warning("Shop not found shop=%s", shop_id)
            return Rejected(status_code=404, error="Shop not found")

        # 3) бан перевіряємо ДО is_active
        if shop.get("is_banned"):
            log.warning("Shop is banned shop=%s", shop_id)
            return Rejected(status_code=403, error="Shop is banned")

        # 4) неактивний — нормальний стан, не помилка
        if not shop.get("is_active"):
            return Acknowledged(message="Shop is inactive")

        # 5) токен
        try:
            token = self.vault.decrypt(shop.get("bot_token") or "")
        except Exception as e:
            log.error("Failed to decrypt bot token shop=%s err=%s", shop_id, e)
            return Acknowledged(warning="decrypt_failed")

        # 6-7) сесія + пайплайн
        stage = "session"
        try:
            async with self.cache.acquire(shop_id, token) as session:
                stage = "update"
                await session.process_update(update)
        except Exception:
            log.exception("Webhook %s failed shop=%s", stage, shop_id)
            return Acknowledged(warning=f"{stage}_failed")

        return Acknowledged()
