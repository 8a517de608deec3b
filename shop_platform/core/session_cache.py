# shop_platform/core/session_cache.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Callable

from shop_platform.core.bot_session import BotSession

log = logging.getLogger(__name__)

# (token, shop_id) -> BotSession
SessionFactory = Callable[[str, str], BotSession]


@dataclass
class _Entry:
    token: str
    session: BotSession
    # скільки апдейтів/відправок зараз працюють з цією сесією
    in_use: int = 0
    evicted: bool = False


class SessionCache:
    """
    shop_id -> BotSession на процес.

    enabled=True: сесія живе до рестарту або invalidate(); якщо токен у БД
    змінився (наприклад, іншим воркером) — наступний апдейт перебудує сесію.
    Витіснену сесію закриває останній, хто її ще використовує.
    enabled=False: нова сесія на кожен апдейт, закривається одразу після нього.
    """

    def __init__(self, factory: SessionFactory, *, enabled: bool = True) -> None:
        self._factory = factory
        self.enabled = enabled
        self._entries: dict[str, _Entry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, shop_id: object) -> bool:
        return shop_id in self._entries

    def _lookup(self, shop_id: str, token: str) -> tuple[_Entry, _Entry | None]:
        # перевірка + вставка без await між ними => атомарно в межах event loop
        entry = self._entries.get(shop_id)
        if entry is not None and entry.token == token:
            return entry, None

        fresh = _Entry(token=token, session=self._factory(token, shop_id))
        self._entries[shop_id] = fresh
        if entry is not None:
            log.info("Bot token changed, session rebuilt shop=%s", shop_id)
        return fresh, entry

    async def get_or_create(self, shop_id: str, token: str) -> BotSession:
        entry, stale = self._lookup(shop_id, token)
        if stale is not None:
            await self._retire(shop_id, stale)
        return entry.session

    @asynccontextmanager
    async def acquire(self, shop_id: str, token: str) -> AsyncIterator[BotSession]:
        if not self.enabled:
            session = self._factory(token, shop_id)
            try:
                yield session
            finally:
                await self._close(shop_id, session)
            return

        entry, stale = self._lookup(shop_id, token)
        entry.in_use += 1
        try:
            if stale is not None:
                await self._retire(shop_id, stale)
            yield entry.session
        finally:
            entry.in_use -= 1
            if entry.evicted and not entry.in_use:
                await self._close(shop_id, entry.session)

    async def invalidate(self, shop_id: str) -> bool:
        entry = self._entries.pop(shop_id, None)
        if entry is None:
            return False
        await self._retire(shop_id, entry)
        log.info("Bot session invalidated shop=%s", shop_id)
        return True

    async def close_all(self) -> None:
        # shutdown: закриваємо все, незалежно від in_use
        entries, self._entries = self._entries, {}
        for shop_id, entry in entries.items():
            await self._close(shop_id, entry.session)

    async def _retire(self, shop_id: str, entry: _Entry) -> None:
        entry.evicted = True
        if entry.in_use:
            log.debug("Evicted session still in use shop=%s users=%s", shop_id, entry.in_use)
            return
        await self._close(shop_id, entry.session)

    @staticmethod
    async def _close(shop_id: str, session: BotSession) -> None:
        try:
            await session.close()
        except Exception as e:
            log.warning("Bot session close failed shop=%s err=%s", shop_id, e)
