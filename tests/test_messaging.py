import pytest
from aiogram.exceptions import TelegramForbiddenError
from aiogram.methods import SendMessage

from shop_platform.core.errors import (
    DeliveryError,
    NotificationTargetMissingError,
    ShopNotFoundError,
    TokenNotConfiguredError,
)
from shop_platform.platform.messaging import ShopMessenger

from tests.helpers import TOKEN_A


@pytest.fixture()
def messenger(store, vault, cache) -> ShopMessenger:
    return ShopMessenger(store=store, vault=vault, cache=cache)


class TestMessageCustomer:
    @pytest.mark.asyncio
    async def test_sends_escaped_message_via_shop_bot(self, messenger, store, vault, factory):
        store.add("shop-a", bot_token=vault.encrypt(TOKEN_A))

        assert await messenger.message_customer("shop-a", 555, "Your order <#12> is ready") == {"success": True}

        [sent] = factory.all_sent()
        assert sent.chat_id == 555
        assert sent.text.startswith("📩 <b>Message from Store:</b>")
        assert "Your order &lt;#12&gt; is ready" in sent.text
        assert factory.built[0].bot.token == TOKEN_A

    @pytest.mark.asyncio
    async def test_reuses_webhook_session(self, messenger, store, vault, cache, factory):
        store.add("shop-a", bot_token=vault.encrypt(TOKEN_A))
        cached = await cache.get_or_create("shop-a", TOKEN_A)

        await messenger.message_customer("shop-a", 555, "hi")

        assert factory.built == [cached]

    @pytest.mark.asyncio
    async def test_blocked_by_user(self, messenger, store, vault, factory):
        factory.on(
            SendMessage,
            TelegramForbiddenError(method=SendMessage(chat_id=555, text="x"), message="bot was blocked by the user"),
        )
        store.add("shop-a", bot_token=vault.encrypt(TOKEN_A))

        with pytest.raises(DeliveryError) as exc_info:
            await messenger.message_customer("shop-a", 555, "hi")
        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_without_token(self, messenger, store):
        store.add("shop-a")

        with pytest.raises(TokenNotConfiguredError):
            await messenger.message_customer("shop-a", 555, "hi")

    @pytest.mark.asyncio
    async def test_unknown_shop(self, messenger):
        with pytest.raises(ShopNotFoundError):
            await messenger.message_customer("ghost", 555, "hi")


class TestNotifyOwner:
    @pytest.mark.asyncio
    async def test_goes_to_notification_chat(self, messenger, store, vault, factory):
        store.add("shop-a", bot_token=vault.encrypt(TOKEN_A), name="Tea & Co", notification_chat_id=-100500)

        await messenger.notify_owner("shop-a", "New order #7")

        [sent] = factory.all_sent()
        assert sent.chat_id == -100500
        assert sent.text == "🔔 <b>Tea &amp; Co</b>\n\nNew order #7"

    @pytest.mark.asyncio
    async def test_without_target(self, messenger, store, vault, factory):
        store.add("shop-a", bot_token=vault.encrypt(TOKEN_A))

        with pytest.raises(NotificationTargetMissingError):
            await messenger.notify_owner("shop-a", "New order #7")
        assert factory.built == []
