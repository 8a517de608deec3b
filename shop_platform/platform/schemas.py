from __future__ import annotations

from pydantic import BaseModel, Field


class TokenIn(BaseModel):
    token: str = Field(min_length=10, description="Telegram bot token from @BotFather")


class CustomerMessageIn(BaseModel):
    chat_id: int
    message: str = Field(min_length=1, max_length=4000)


class NotifyIn(BaseModel):
    message: str = Field(min_length=1, max_length=4000)


class BanIn(BaseModel):
    banned: bool
