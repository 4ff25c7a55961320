from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol

from aiogram import Bot
from aiogram.exceptions import TelegramAPIError, TelegramNetworkError
from aiogram.utils.token import TokenValidationError


logger = logging.getLogger(__name__)

_BOT_TOKEN_RE = re.compile(r"^\d+:[A-Za-z0-9_-]+$")

STEP_FORMAT = "format"
STEP_BOT_TOKEN = "bot_token"
STEP_CHANNEL = "channel"
STEP_PERMISSIONS = "permissions"

MSG_UNREACHABLE = "Failed to connect to Telegram API"


@dataclass(frozen=True)
class BotInfo:
    id: int
    username: str
    first_name: str = ""


@dataclass(frozen=True)
class ChannelInfo:
    id: int
    title: str
    type: str
    username: Optional[str] = None


@dataclass(frozen=True)
class AuthorityReply:
    """Answer of the messaging platform to one bot+channel capability check."""

    valid: bool
    error: Optional[str] = None
    bot: Optional[BotInfo] = None
    channel: Optional[ChannelInfo] = None
    step: Optional[str] = None
    unreachable: bool = False

    @classmethod
    def reject(cls, step: str, error: str) -> "AuthorityReply":
        return cls(valid=False, error=error, step=step)

    @classmethod
    def down(cls, step: str) -> "AuthorityReply":
        return cls(valid=False, error=MSG_UNREACHABLE, step=step, unreachable=True)


class TelegramAuthority(Protocol):
    async def check(self, bot_token: str, channel_id: str) -> AuthorityReply: ...


def _status_of(member: Any) -> str:
    status = getattr(member, "status", None)
    return str(getattr(status, "value", status) or "")


class AiogramAuthority:
    """Checks a bot token and channel against the Telegram Bot API.

    The bot must be able to read the chat, the chat must be a channel or
    supergroup, and the bot must be an administrator allowed to create invite
    links. Every call opens and closes its own bot session.
    """

    def __init__(self, bot_factory: Callable[[str], Any] = Bot) -> None:
        self._bot_factory = bot_factory

    async def check(self, bot_token: str, channel_id: str) -> AuthorityReply:
        if not _BOT_TOKEN_RE.match(bot_token):
            return AuthorityReply.reject(
                STEP_FORMAT,
                "Invalid bot token format. Expected format: 123456789:ABCdefGHIjklMNOpqrSTUvwxYZ",
            )
        if not (channel_id.startswith("-100") or channel_id.startswith("@")):
            return AuthorityReply.reject(
                STEP_FORMAT,
                "Invalid channel ID format. Should start with -100 or @ for username",
            )
        try:
            bot = self._bot_factory(bot_token)
        except TokenValidationError:
            return AuthorityReply.reject(
                STEP_FORMAT,
                "Invalid bot token format. Expected format: 123456789:ABCdefGHIjklMNOpqrSTUvwxYZ",
            )
        try:
            return await self._check_with(bot, channel_id)
        finally:
            await bot.session.close()

    async def _check_with(self, bot: Any, channel_id: str) -> AuthorityReply:
        # Step 1: the token belongs to a live bot
        try:
            me = await bot.get_me()
        except TelegramNetworkError as e:
            logger.warning("telegram.unreachable", extra={"extra": {"step": STEP_BOT_TOKEN, "err": str(e)}})
            return AuthorityReply.down(STEP_BOT_TOKEN)
        except TelegramAPIError as e:
            return AuthorityReply.reject(STEP_BOT_TOKEN, e.message or "Invalid bot token")
        bot_info = BotInfo(id=me.id, username=me.username or "", first_name=me.first_name or "")
        logger.debug("telegram.bot_ok", extra={"extra": {"bot_username": bot_info.username}})

        # Step 2: the chat exists, is visible to the bot and is a channel/supergroup
        try:
            chat = await bot.get_chat(chat_id=channel_id)
        except TelegramNetworkError as e:
            logger.warning("telegram.unreachable", extra={"extra": {"step": STEP_CHANNEL, "err": str(e)}})
            return AuthorityReply.down(STEP_CHANNEL)
        except TelegramAPIError as e:
            return AuthorityReply.reject(
                STEP_CHANNEL, e.message or "Invalid channel ID or bot not added to channel"
            )
        chat_type = str(getattr(chat.type, "value", chat.type))
        if chat_type not in ("channel", "supergroup"):
            return AuthorityReply.reject(STEP_CHANNEL, "The chat must be a channel or supergroup")
        channel_info = ChannelInfo(
            id=chat.id,
            title=chat.title or "",
            type=chat_type,
            username=getattr(chat, "username", None),
        )

        # Step 3: the bot is an admin with the invite-link right
        try:
            member = await bot.get_chat_member(chat_id=channel_id, user_id=bot_info.id)
        except TelegramNetworkError as e:
            logger.warning("telegram.unreachable", extra={"extra": {"step": STEP_PERMISSIONS, "err": str(e)}})
            return AuthorityReply.down(STEP_PERMISSIONS)
        except TelegramAPIError:
            return AuthorityReply.reject(STEP_PERMISSIONS, "Could not verify bot permissions")
        status = _status_of(member)
        if status not in ("administrator", "creator"):
            return AuthorityReply.reject(STEP_PERMISSIONS, "Bot must be an administrator in the channel")
        if status == "administrator" and not getattr(member, "can_invite_users", False):
            return AuthorityReply.reject(STEP_PERMISSIONS, "Bot needs 'Invite Users via Link' permission")

        return AuthorityReply(valid=True, bot=bot_info, channel=channel_info)
