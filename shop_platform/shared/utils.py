from __future__ import annotations

import html

from aiogram import Bot
from aiogram.types import InlineKeyboardMarkup, Message

HTML_PARSE_MODE = "HTML"


def escape(text: str) -> str:
    return html.escape(text or "", quote=False)


def mask(v: str | None) -> str:
    if not v:
        return "—"
    v = str(v)
    if len(v) <= 6:
        return "***"
    return f"{v[:3]}***{v[-3:]}"


async def send_message(
    bot: Bot,
    chat_id: int,
    text: str,
    reply_markup: InlineKeyboardMarkup | None = None,
    disable_web_page_preview: bool = True,
) -> Message:
    return await bot.send_message(
        chat_id=chat_id,
        text=text,
        parse_mode=HTML_PARSE_MODE,
        reply_markup=reply_markup,
        disable_web_page_preview=disable_web_page_preview,
    )
