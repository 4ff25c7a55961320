from __future__ import annotations

import logging
from typing import Optional

from paygate.errors import FailureKind
from paygate.telegram.authority import AiogramAuthority, TelegramAuthority
from paygate.utils.correlation import correlation_scope
from paygate.verdicts import ValidationRequest, ValidationSubject, ValidationVerdict


logger = logging.getLogger(__name__)

MSG_REQUIRED = "Bot token and channel ID are required"
MSG_FAILED = "validation failed"


class CredentialValidator:
    """Validate a bot token + channel pair before a project is activated.

    Every call asks the authority again; the pairing can change between calls
    (bot removed from the channel, rights revoked). Authority problems never
    raise, they come back as an invalid verdict.
    """

    def __init__(self, authority: Optional[TelegramAuthority] = None) -> None:
        self._authority = authority or AiogramAuthority()

    async def validate(self, request: ValidationRequest) -> ValidationVerdict:
        bot_token = (request.bot_token or "").strip()
        channel_id = (request.channel_id or "").strip()
        with correlation_scope():
            if not bot_token or not channel_id:
                logger.info("credential.malformed", extra={"extra": {"channel_id": channel_id}})
                return ValidationVerdict.failed(MSG_REQUIRED, FailureKind.MALFORMED_INPUT)

            try:
                reply = await self._authority.check(bot_token, channel_id)
            except Exception:
                logger.exception("credential.authority_error", extra={"extra": {"channel_id": channel_id}})
                return ValidationVerdict.failed(MSG_FAILED, FailureKind.AUTHORITY_UNREACHABLE)

            if not reply.valid:
                kind = FailureKind.AUTHORITY_UNREACHABLE if reply.unreachable else FailureKind.AUTHORITY_REJECTED
                logger.info(
                    "credential.rejected",
                    extra={"extra": {"channel_id": channel_id, "step": reply.step, "kind": kind.value, "err": reply.error}},
                )
                return ValidationVerdict.failed(reply.error or MSG_FAILED, kind)

            subject = ValidationSubject(
                bot_username=reply.bot.username if reply.bot else "",
                channel_title=reply.channel.title if reply.channel else "",
            )
            logger.info(
                "credential.validated",
                extra={"extra": {"channel_id": channel_id, "bot_username": subject.bot_username}},
            )
            return ValidationVerdict.ok(subject)
