"""Shared fixtures: no test touches Telegram or a real database."""

from __future__ import annotations

import pytest

from shop_platform.config import Settings
from shop_platform.core.session_cache import SessionCache
from shop_platform.core.webhook import WebhookDispatcher

from tests.helpers import BASE_URL, SECRET, BotFactory, FakeShopStore, SpyVault


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        _env_file=None,
        PUBLIC_BASE_URL=BASE_URL,
        ENCRYPTION_KEY=SECRET,
        TELEGRAM_TIMEOUT_SECONDS=0.2,
        SESSION_CACHE_ENABLED=True,
        RUN_MIGRATIONS=False,
    )


@pytest.fixture()
def vault() -> SpyVault:
    return SpyVault(SECRET)


@pytest.fixture()
def store() -> FakeShopStore:
    return FakeShopStore()


@pytest.fixture()
def factory(settings: Settings) -> BotFactory:
    return BotFactory(settings)


@pytest.fixture()
def cache(factory: BotFactory) -> SessionCache:
    return SessionCache(factory, enabled=True)


@pytest.fixture()
def dispatcher(store: FakeShopStore, vault: SpyVault, cache: SessionCache) -> WebhookDispatcher:
    return WebhookDispatcher(store, vault, cache)
