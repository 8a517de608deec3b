from __future__ import annotations

import logging

from shop_platform.db.session import db_execute

log = logging.getLogger(__name__)

DDL: list[str] = [
    # =========================================================
    # shops (tenant records, які читає webhook dispatcher)
    # =========================================================
    """
    CREATE TABLE IF NOT EXISTS shops (
        id VARCHAR(64) PRIMARY KEY,
        owner_user_id BIGINT,
        name VARCHAR(255) NOT NULL DEFAULT '',

        bot_token TEXT NOT NULL DEFAULT '',
        bot_tg_id BIGINT,
        is_bot_active BOOLEAN NOT NULL DEFAULT FALSE,
        bot_username VARCHAR(64),
        bot_name VARCHAR(255),

        is_active BOOLEAN NOT NULL DEFAULT TRUE,
        is_banned BOOLEAN NOT NULL DEFAULT FALSE,
        notification_chat_id BIGINT,

        created_ts INTEGER NOT NULL DEFAULT 0,
        updated_ts INTEGER NOT NULL DEFAULT 0
    );
    """,
    # один бот — один магазин; NULL (бот не прив'язаний) може повторюватись
    """
    DROP INDEX IF EXISTS idx_shops_bot_tg_id;
    """,
    """
    CREATE UNIQUE INDEX IF NOT EXISTS uq_shops_bot_tg_id
        ON shops(bot_tg_id);
    """,
]


async def ensure_schema() -> None:
    for q in DDL:
        await db_execute(q)
    log.info("DB schema ensured (%s statements)", len(DDL))
