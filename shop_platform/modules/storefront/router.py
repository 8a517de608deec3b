from __future__ import annotations

import logging

from aiogram import Router
from aiogram.filters import Command, CommandStart
from aiogram.types import Message

from shop_platform.config import Settings
from shop_platform.core.shop_ctx import ShopContext, mini_app_url
from shop_platform.modules.storefront.ui import open_shop_kb

log = logging.getLogger(__name__)

WELCOME_TEXT = "Welcome to our shop! 🛍️\nClick the button below to browse our catalog."
STORE_URL_MISSING_TEXT = "Error: Store URL is not configured. Please contact support."


def _chat_id_text(user_id: int) -> str:
    return (
        f"Your Chat ID: <code>{user_id}</code>\n\n"
        "Copy this ID and paste it into the \"Admin Notification Chat ID\" field "
        "in your shop settings to receive order notifications."
    )


async def cmd_start(message: Message, shop: ShopContext, settings: Settings) -> None:
    url = mini_app_url(settings.public_base_url, shop.shop_id)

    # без базового URL посилання буде битим — краще чесно сказати
    if not url:
        log.error("PUBLIC_BASE_URL is not set, /start shop=%s", shop.shop_id)
        await message.answer(STORE_URL_MISSING_TEXT, parse_mode=None)
        return

    await message.answer(WELCOME_TEXT, reply_markup=open_shop_kb(url))


async def cmd_help(message: Message, settings: Settings) -> None:
    await message.answer(settings.SUPPORT_TEXT, parse_mode=None)


async def cmd_id(message: Message) -> None:
    # from_user нема тільки в постах каналів
    user_id = message.from_user.id if message.from_user else message.chat.id
    await message.answer(_chat_id_text(user_id), parse_mode="HTML")


async def on_message(message: Message, shop: ShopContext) -> None:
    # точка розширення: поки нічого не робимо
    log.debug("message shop=%s chat=%s", shop.shop_id, message.chat.id)


def build_router() -> Router:
    """
    Новий Router на кожну сесію: aiogram не дозволяє чіпляти один router
    до кількох Dispatcher-ів.
    Порядок реєстрації = пріоритет.
    """
    router = Router(name="storefront")
    router.message.register(cmd_start, CommandStart())
    router.message.register(cmd_help, Command("help"))
    router.message.register(cmd_id, Command("id"))
    router.message.register(on_message)
    return router
