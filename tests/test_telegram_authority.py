from __future__ import annotations

import types
from typing import Any

import pytest
from aiogram.exceptions import TelegramBadRequest, TelegramNetworkError, TelegramUnauthorizedError
from aiogram.methods import GetChat, GetChatMember, GetMe

from paygate.telegram.authority import AiogramAuthority

TOKEN = "123456789:ABCdefGHIjklMNOpqrSTUvwxYZ012345678"


class FakeSession:
    def __init__(self) -> None:
        self.closed = False

    async def close(self) -> None:
        self.closed = True


class FakeBot:
    def __init__(
        self,
        *,
        me: Any = None,
        chat: Any = None,
        member: Any = None,
        me_exc: Exception | None = None,
        chat_exc: Exception | None = None,
        member_exc: Exception | None = None,
    ) -> None:
        self.session = FakeSession()
        self.me = me or types.SimpleNamespace(id=42, username="paybot", first_name="Pay")
        self.chat = chat or types.SimpleNamespace(id=-100123, title="VIP", type="channel", username="vip")
        self.member = member or types.SimpleNamespace(status="administrator", can_invite_users=True)
        self.me_exc = me_exc
        self.chat_exc = chat_exc
        self.member_exc = member_exc
        self.calls: list[str] = []

    async def get_me(self) -> Any:
        self.calls.append("get_me")
        if self.me_exc:
            raise self.me_exc
        return self.me

    async def get_chat(self, chat_id: str) -> Any:
        self.calls.append("get_chat")
        if self.chat_exc:
            raise self.chat_exc
        return self.chat

    async def get_chat_member(self, chat_id: str, user_id: int) -> Any:
        self.calls.append(f"get_chat_member:{user_id}")
        if self.member_exc:
            raise self.member_exc
        return self.member


def _authority(bot: FakeBot) -> AiogramAuthority:
    return AiogramAuthority(bot_factory=lambda token: bot)


@pytest.mark.asyncio
async def test_all_checks_pass() -> None:
    bot = FakeBot()
    reply = await _authority(bot).check(TOKEN, "-100123")

    assert reply.valid is True
    assert reply.bot is not None and reply.bot.username == "paybot"
    assert reply.channel is not None and reply.channel.title == "VIP"
    assert bot.calls == ["get_me", "get_chat", "get_chat_member:42"]
    assert bot.session.closed is True


@pytest.mark.asyncio
@pytest.mark.parametrize("token", ["bad", "abc:def", "123456789", "123:has space"])
async def test_bad_token_format_never_builds_a_bot(token: str) -> None:
    built: list[str] = []

    def factory(t: str) -> FakeBot:
        built.append(t)
        return FakeBot()

    reply = await AiogramAuthority(bot_factory=factory).check(token, "-100123")
    assert reply.valid is False
    assert reply.error is not None and reply.error.startswith("Invalid bot token format")
    assert built == []


@pytest.mark.asyncio
async def test_bad_channel_format() -> None:
    bot = FakeBot()
    reply = await _authority(bot).check(TOKEN, "12345")
    assert reply.valid is False
    assert reply.error is not None and reply.error.startswith("Invalid channel ID format")
    assert bot.calls == []


@pytest.mark.asyncio
async def test_rejected_token_uses_telegram_description() -> None:
    bot = FakeBot(me_exc=TelegramUnauthorizedError(method=GetMe(), message="Unauthorized"))
    reply = await _authority(bot).check(TOKEN, "-100123")

    assert reply.valid is False
    assert reply.step == "bot_token"
    assert reply.error == "Unauthorized"
    assert reply.unreachable is False
    assert bot.session.closed is True


@pytest.mark.asyncio
async def test_chat_not_found() -> None:
    bot = FakeBot(chat_exc=TelegramBadRequest(method=GetChat(chat_id="-100123"), message="Bad Request: chat not found"))
    reply = await _authority(bot).check(TOKEN, "-100123")
    assert reply.valid is False
    assert reply.step == "channel"
    assert reply.error == "Bad Request: chat not found"


@pytest.mark.asyncio
async def test_private_chat_is_rejected() -> None:
    bot = FakeBot(chat=types.SimpleNamespace(id=5, title=None, type="private"))
    reply = await _authority(bot).check(TOKEN, "@someone")
    assert reply.valid is False
    assert reply.error == "The chat must be a channel or supergroup"


@pytest.mark.asyncio
async def test_bot_must_be_admin() -> None:
    bot = FakeBot(member=types.SimpleNamespace(status="member"))
    reply = await _authority(bot).check(TOKEN, "-100123")
    assert reply.valid is False
    assert reply.step == "permissions"
    assert reply.error == "Bot must be an administrator in the channel"


@pytest.mark.asyncio
async def test_admin_without_invite_right() -> None:
    bot = FakeBot(member=types.SimpleNamespace(status="administrator", can_invite_users=False))
    reply = await _authority(bot).check(TOKEN, "-100123")
    assert reply.valid is False
    assert reply.error == "Bot needs 'Invite Users via Link' permission"


@pytest.mark.asyncio
async def test_member_lookup_failure() -> None:
    bot = FakeBot(
        member_exc=TelegramBadRequest(method=GetChatMember(chat_id="-100123", user_id=42), message="Bad Request")
    )
    reply = await _authority(bot).check(TOKEN, "-100123")
    assert reply.valid is False
    assert reply.error == "Could not verify bot permissions"


@pytest.mark.asyncio
async def test_network_failure_is_flagged_unreachable() -> None:
    bot = FakeBot(me_exc=TelegramNetworkError(method=GetMe(), message="timeout"))
    reply = await _authority(bot).check(TOKEN, "-100123")
    assert reply.valid is False
    assert reply.unreachable is True
    assert reply.error == "Failed to connect to Telegram API"
    assert bot.session.closed is True
