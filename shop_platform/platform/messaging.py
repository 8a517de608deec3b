from __future__ import annotations

import logging

from aiogram.exceptions import TelegramAPIError
from aiogram.utils.token import TokenValidationError

from shop_platform.core.crypto import CredentialVault
from shop_platform.core.errors import (
    DeliveryError,
    InvalidTokenError,
    NotificationTargetMissingError,
    ShopNotFoundError,
    TokenNotConfiguredError,
)
from shop_platform.core.session_cache import SessionCache
from shop_platform.db.repo import ShopStore
from shop_platform.shared.utils import escape

log = logging.getLogger(__name__)


class ShopMessenger:
    """Повідомлення від імені бота магазину (не у відповідь на апдейт)."""

    def __init__(self, *, store: ShopStore, vault: CredentialVault, cache: SessionCache) -> None:
        self.store = store
        self.vault = vault
        self.cache = cache

    async def _send(self, shop: dict, chat_id: int, text: str) -> None:
        shop_id = shop["id"]
        if not shop.get("bot_token"):
            raise TokenNotConfiguredError()
        token = self.vault.decrypt(shop["bot_token"])

        try:
            async with self.cache.acquire(shop_id, token) as session:
                await session.send_text(chat_id, text)
        except TokenValidationError as e:
            raise InvalidTokenError() from e
        except TelegramAPIError as e:
            log.warning("Send failed shop=%s chat=%s err=%s", shop_id, chat_id, e.message)
            raise DeliveryError() from e

    async def _shop(self, shop_id: str) -> dict:
        shop = await self.store.fetch_full_record(shop_id)
        if not shop:
            raise ShopNotFoundError()
        return shop

    async def message_customer(self, shop_id: str, chat_id: int, message: str) -> dict:
        shop = await self._shop(shop_id)
        text = f"📩 <b>Message from Store:</b>\n\n{escape(message)}"
        await self._send(shop, int(chat_id), text)
        return {"success": True}

    async def notify_owner(self, shop_id: str, message: str) -> dict:
        shop = await self._shop(shop_id)
        target = shop.get("notification_chat_id")
        if not target:
            raise NotificationTargetMissingError()
        text = f"🔔 <b>{escape(shop.get('name') or 'Shop')}</b>\n\n{escape(message)}"
        await self._send(shop, int(target), text)
        return {"success": True}
