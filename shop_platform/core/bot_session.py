# shop_platform/core/bot_session.py
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, TypeVar

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.client.session.base import BaseSession
from aiogram.enums import ParseMode
from aiogram.exceptions import (
    TelegramAPIError,
    TelegramBadRequest,
    TelegramNetworkError,
    TelegramNotFound,
    TelegramUnauthorizedError,
)
from aiogram.types import Message, User

from shop_platform.config import Settings
from shop_platform.core.errors import InvalidTokenError, UpstreamError, UpstreamTimeoutError
from shop_platform.core.shop_ctx import ShopContextMiddleware
from shop_platform.modules.storefront.router import build_router
from shop_platform.shared.utils import send_message

log = logging.getLogger(__name__)

T = TypeVar("T")

ALLOWED_UPDATES = ["message", "callback_query"]


class BotSession:
    """
    Живий бот одного магазину: Bot з розшифрованим токеном + Dispatcher з пайплайном команд.
    Помилки хендлерів НЕ ковтає — це робить webhook dispatcher.
    """

    def __init__(
        self,
        token: str,
        shop_id: str,
        *,
        settings: Settings,
        session: BaseSession | None = None,
    ) -> None:
        self.shop_id = shop_id
        self.timeout = settings.TELEGRAM_TIMEOUT_SECONDS

        # Bot() сам валідує формат токена (TokenValidationError)
        self.bot = Bot(
            token=token,
            session=session,
            default=DefaultBotProperties(parse_mode=ParseMode.HTML),
        )

        self.dp = Dispatcher(name=f"shop:{shop_id}", disable_fsm=True, settings=settings)
        self.dp.update.outer_middleware(ShopContextMiddleware(shop_id))
        self.dp.include_router(build_router())

    async def process_update(self, data: dict[str, Any]) -> Any:
        return await self.dp.feed_raw_update(self.bot, data)

    # ------------------------------------------------------------------
    # виклики з адмінки (не гаряча гілка webhook-а) — завжди з таймаутом
    # ------------------------------------------------------------------
    async def _call(self, request: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(request, timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise UpstreamTimeoutError() from e
        except TelegramNetworkError as e:
            raise UpstreamError(f"Telegram is unreachable: {e.message}") from e

    async def verify(self) -> User:
        """getMe: токен живий + ідентичність бота."""
        try:
            return await self._call(self.bot.get_me())
        except (TelegramUnauthorizedError, TelegramNotFound, TelegramBadRequest) as e:
            raise InvalidTokenError() from e
        except TelegramAPIError as e:
            raise UpstreamError(f"Telegram getMe failed: {e.message}") from e

    async def register_webhook(self, url: str) -> None:
        await self._call(
            self.bot.set_webhook(
                url,
                drop_pending_updates=False,
                allowed_updates=ALLOWED_UPDATES,
            )
        )

    async def delete_webhook(self) -> None:
        await self._call(self.bot.delete_webhook(drop_pending_updates=True))

    async def send_text(self, chat_id: int, text: str) -> Message:
        return await self._call(send_message(self.bot, chat_id, text))

    async def close(self) -> None:
        await self.bot.session.close()
