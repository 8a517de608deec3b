# shop_platform/platform/bot_config.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from aiogram.exceptions import TelegramAPIError, TelegramBadRequest, TelegramUnauthorizedError
from aiogram.utils.token import TokenValidationError
from sqlalchemy.exc import IntegrityError

from shop_platform.config import Settings
from shop_platform.core.bot_session import BotSession
from shop_platform.core.crypto import CredentialVault
from shop_platform.core.errors import (
    BotAlreadyLinkedError,
    ConfigurationError,
    InvalidTokenError,
    PlatformError,
    ShopNotFoundError,
    TokenNotConfiguredError,
    UpstreamError,
)
from shop_platform.core.session_cache import SessionCache, SessionFactory
from shop_platform.core.shop_ctx import shop_webhook_url
from shop_platform.db.repo import ShopStore
from shop_platform.shared.utils import mask

log = logging.getLogger(__name__)

HTTPS_WARNING = "Webhook requires HTTPS. Bot is configured but will not receive messages on localhost."


def _is_https_error(e: TelegramAPIError) -> bool:
    return "https" in (e.message or "").lower()


def _bot_info(me: Any) -> dict[str, Any]:
    return {"id": me.id, "username": me.username, "first_name": me.first_name}


class BotConfigService:
    """
    Адмінська частина: токен / webhook / статус / відв'язка.
    Пише ті поля shops, які потім читає webhook dispatcher.
    """

    def __init__(
        self,
        *,
        store: ShopStore,
        vault: CredentialVault,
        cache: SessionCache,
        settings: Settings,
        factory: SessionFactory,
    ) -> None:
        self.store = store
        self.vault = vault
        self.cache = cache
        self.settings = settings
        self._factory = factory

    async def _shop(self, shop_id: str) -> dict:
        shop = await self.store.fetch_full_record(shop_id)
        if not shop:
            raise ShopNotFoundError()
        return shop

    @asynccontextmanager
    async def _temp_session(self, token: str, shop_id: str) -> AsyncIterator[BotSession]:
        """Окремий Bot під один адмінський запит, гарячий кеш не чіпаємо."""
        try:
            session = self._factory(token, shop_id)
        except TokenValidationError as e:
            raise InvalidTokenError() from e
        try:
            yield session
        finally:
            await session.close()

    def _stored_token(self, shop: dict) -> str:
        if not shop.get("bot_token"):
            raise TokenNotConfiguredError()
        return self.vault.decrypt(shop["bot_token"])

    # ==================================================================
    # PUT token
    # ==================================================================
    async def set_token(self, shop_id: str, token: str) -> dict[str, Any]:
        await self._shop(shop_id)
        token = (token or "").strip()

        async with self._temp_session(token, shop_id) as session:
            me = await session.verify()

        # один бот — один магазин
        other = await self.store.find_by_bot_tg_id(me.id)
        if other and other.get("id") != shop_id:
            log.warning("Bot @%s already linked shop=%s other=%s", me.username, shop_id, other.get("id"))
            raise BotAlreadyLinkedError()

        encrypted = self.vault.encrypt(token)

        # новий токен => webhook треба ставити заново
        try:
            await self.store.update_record(
                shop_id,
                bot_token=encrypted,
                bot_tg_id=me.id,
                is_bot_active=False,
                bot_username=None,
                bot_name=None,
            )
        except IntegrityError as e:
            # паралельний PUT встиг прив'язати цього ж бота (unique bot_tg_id)
            log.warning("Bot @%s linked concurrently shop=%s", me.username, shop_id)
            raise BotAlreadyLinkedError() from e

        # спочатку commit у БД, потім кеш: старою сесією максимум ще один апдейт
        await self.cache.invalidate(shop_id)

        log.info("Bot token saved shop=%s token=%s", shop_id, mask(token))
        return {"success": True, "message": "Bot token saved successfully"}

    # ==================================================================
    # POST webhook
    # ==================================================================
    async def register_webhook(self, shop_id: str) -> dict[str, Any]:
        shop = await self._shop(shop_id)

        try:
            token = self._stored_token(shop)

            base = self.settings.public_base_url
            if not base:
                raise ConfigurationError("PUBLIC_BASE_URL is not configured")
            url = shop_webhook_url(base, self.settings.webhook_prefix, shop_id)

            async with self._temp_session(token, shop_id) as session:
                warning = None
                try:
                    await session.register_webhook(url)
                except TelegramBadRequest as e:
                    log.error("Webhook set failed shop=%s err=%s", shop_id, e.message)
                    if not _is_https_error(e):
                        raise UpstreamError(f"Failed to set webhook: {e.message}") from e
                    warning = HTTPS_WARNING
                except TelegramUnauthorizedError as e:
                    raise InvalidTokenError() from e
                except TelegramAPIError as e:
                    raise UpstreamError(f"Failed to set webhook: {e.message}") from e

                me = await session.verify()
        except PlatformError:
            # остання спроба невдала => бот точно не активний
            await self.store.update_record(shop_id, is_bot_active=False)
            raise

        await self.store.update_record(
            shop_id,
            is_bot_active=warning is None,
            bot_username=me.username,
            bot_name=me.first_name,
        )
        log.info("Webhook registered shop=%s url=%s warning=%s", shop_id, url, bool(warning))

        return {
            "success": True,
            "message": warning or "Webhook set successfully",
            "warning": warning,
            "bot": _bot_info(me),
        }

    # ==================================================================
    # GET status
    # ==================================================================
    async def get_status(self, shop_id: str) -> dict[str, Any]:
        shop = await self._shop(shop_id)
        return {
            "configured": bool(shop.get("bot_token")),
            "active": bool(shop.get("is_bot_active")),
            "username": shop.get("bot_username"),
            "name": shop.get("bot_name"),
        }

    # ==================================================================
    # DELETE token
    # ==================================================================
    async def unlink(self, shop_id: str) -> dict[str, Any]:
        shop = await self._shop(shop_id)

        # знімаємо webhook, щоб Telegram перестав слати апдейти (best effort:
        # токен міг бути вже відкликаний)
        if shop.get("bot_token"):
            try:
                token = self._stored_token(shop)
                async with self._temp_session(token, shop_id) as session:
                    await session.delete_webhook()
            except (PlatformError, TelegramAPIError) as e:
                log.warning("deleteWebhook failed shop=%s err=%s", shop_id, e)

        await self.store.update_record(
            shop_id,
            bot_token="",
            bot_tg_id=None,
            is_bot_active=False,
            bot_username=None,
            bot_name=None,
        )
        await self.cache.invalidate(shop_id)

        log.info("Bot unlinked shop=%s", shop_id)
        return {"success": True, "message": "Bot unlinked"}

    # ==================================================================
    # super-admin
    # ==================================================================
    async def set_banned(self, shop_id: str, banned: bool) -> dict[str, Any]:
        await self._shop(shop_id)
        await self.store.update_record(shop_id, is_banned=bool(banned))
        if banned:
            await self.cache.invalidate(shop_id)
        log.info("Shop ban changed shop=%s banned=%s", shop_id, banned)
        return {"id": shop_id, "is_banned": bool(banned)}
