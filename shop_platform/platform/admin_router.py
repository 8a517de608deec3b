from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from shop_platform.platform.bot_config import BotConfigService
from shop_platform.platform.messaging import ShopMessenger
from shop_platform.platform.schemas import BanIn, CustomerMessageIn, NotifyIn, TokenIn

router = APIRouter(prefix="/api")

# Авторизація власника (JWT) живе поза цим сервісом; тут shop_id вже перевірений.


def get_bot_config(request: Request) -> BotConfigService:
    return request.app.state.bot_config


def get_messenger(request: Request) -> ShopMessenger:
    return request.app.state.messenger


# =========================================================
# Bot config (кабінет власника магазину)
# =========================================================
@router.put("/shops/{shop_id}/bot/token")
async def put_bot_token(shop_id: str, body: TokenIn, svc: BotConfigService = Depends(get_bot_config)):
    return await svc.set_token(shop_id, body.token)


@router.post("/shops/{shop_id}/bot/webhook")
async def post_bot_webhook(shop_id: str, svc: BotConfigService = Depends(get_bot_config)):
    return await svc.register_webhook(shop_id)


@router.get("/shops/{shop_id}/bot/status")
async def get_bot_status(shop_id: str, svc: BotConfigService = Depends(get_bot_config)):
    return await svc.get_status(shop_id)


@router.delete("/shops/{shop_id}/bot/token")
async def delete_bot_token(shop_id: str, svc: BotConfigService = Depends(get_bot_config)):
    return await svc.unlink(shop_id)


@router.post("/shops/{shop_id}/bot/message")
async def post_customer_message(
    shop_id: str,
    body: CustomerMessageIn,
    messenger: ShopMessenger = Depends(get_messenger),
):
    return await messenger.message_customer(shop_id, body.chat_id, body.message)


@router.post("/shops/{shop_id}/bot/notify")
async def post_owner_notification(shop_id: str, body: NotifyIn, messenger: ShopMessenger = Depends(get_messenger)):
    return await messenger.notify_owner(shop_id, body.message)


# =========================================================
# Super-admin
# =========================================================
@router.put("/super-admin/shops/{shop_id}/ban")
async def put_shop_ban(shop_id: str, body: BanIn, svc: BotConfigService = Depends(get_bot_config)):
    return await svc.set_banned(shop_id, body.banned)
