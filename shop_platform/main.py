# shop_platform/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from shop_platform.config import Settings, settings
from shop_platform.core.bot_session import BotSession
from shop_platform.core.crypto import CredentialVault
from shop_platform.core.errors import add_exception_handlers
from shop_platform.core.session_cache import SessionCache, SessionFactory
from shop_platform.core.webhook import DispatchResult, Rejected, WebhookDispatcher
from shop_platform.db.migrations import ensure_schema
from shop_platform.db.repo import ShopRepo, ShopStore
from shop_platform.db.session import dispose_engine
from shop_platform.platform.admin_router import router as admin_router
from shop_platform.platform.bot_config import BotConfigService
from shop_platform.platform.messaging import ShopMessenger

log = logging.getLogger(__name__)


def bot_session_factory(cfg: Settings) -> SessionFactory:
    def build(token: str, shop_id: str) -> BotSession:
        return BotSession(token, shop_id, settings=cfg)

    return build


def webhook_response(result: DispatchResult) -> JSONResponse:
    """Rejected -> 400/403/404, все інше -> 200."""
    if isinstance(result, Rejected):
        return JSONResponse(status_code=result.status_code, content={"error": result.error})

    body: dict = {"ok": True}
    if result.message:
        body["message"] = result.message
    return JSONResponse(status_code=200, content=body)


def create_app(
    *,
    app_settings: Settings | None = None,
    store: ShopStore | None = None,
    factory: SessionFactory | None = None,
) -> FastAPI:
    cfg = app_settings or settings
    shop_store = store if store is not None else ShopRepo
    uses_db = shop_store is ShopRepo

    vault = CredentialVault(cfg.ENCRYPTION_KEY)
    session_factory = factory or bot_session_factory(cfg)
    cache = SessionCache(session_factory, enabled=cfg.SESSION_CACHE_ENABLED)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logging.basicConfig(level=getattr(logging, cfg.LOG_LEVEL.upper(), logging.INFO))

        if uses_db and cfg.RUN_MIGRATIONS:
            await ensure_schema()

        if not cfg.public_base_url:
            log.warning("PUBLIC_BASE_URL is not set: /start will reply with a configuration error")
        log.info(
            "Webhook prefix: %s, session cache: %s",
            cfg.webhook_prefix,
            "on" if cache.enabled else "off",
        )

        yield

        # Bot-и магазинів
        log.info("Closing %s cached bot sessions", len(cache))
        await cache.close_all()
        if uses_db:
            await dispose_engine()

    app = FastAPI(title="shop_platform", lifespan=lifespan, debug=cfg.DEBUG)
    add_exception_handlers(app)

    app.state.settings = cfg
    app.state.cache = cache
    app.state.dispatcher = WebhookDispatcher(shop_store, vault, cache)
    app.state.bot_config = BotConfigService(
        store=shop_store,
        vault=vault,
        cache=cache,
        settings=cfg,
        factory=session_factory,
    )
    app.state.messenger = ShopMessenger(store=shop_store, vault=vault, cache=cache)

    app.include_router(admin_router)

    @app.get("/")
    async def root():
        return {"ok": True, "service": "shop_platform"}

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    # =========================================================
    # Shop webhook (апдейти ботів магазинів)
    # =========================================================
    async def _dispatch(req: Request, shop_id: str | None) -> JSONResponse:
        try:
            data = await req.json()
        except ValueError:
            # битий JSON впаде на валідації Update — і все одно буде 200
            log.warning("Webhook body is not JSON shop=%s", shop_id)
            data = {}

        result = await req.app.state.dispatcher.dispatch(shop_id, data)
        return webhook_response(result)

    prefix = cfg.webhook_prefix

    @app.post(prefix + "/{shop_id}")
    async def shop_webhook(shop_id: str, req: Request):
        return await _dispatch(req, shop_id)

    @app.post(prefix)
    @app.post(prefix + "/")
    async def shop_webhook_without_id(req: Request):
        return await _dispatch(req, None)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("shop_platform.main:app", host="0.0.0.0", port=settings.PORT)
