from __future__ import annotations

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup, WebAppInfo

BTN_OPEN_SHOP = "Open Shop 🏪"


def open_shop_kb(mini_app_url: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [InlineKeyboardButton(text=BTN_OPEN_SHOP, web_app=WebAppInfo(url=mini_app_url))],
        ]
    )
