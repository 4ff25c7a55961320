"""
Stripe secret key check.

A key is accepted when it carries a recognized secret-key prefix and the
account endpoint authenticates it. Live mode is reported only when the key is
a live key AND the account can actually take charges.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from paygate.config import settings
from paygate.errors import FailureKind
from paygate.utils.correlation import correlation_scope
from paygate.verdicts import KeyCheckRequest, KeyCheckVerdict


logger = logging.getLogger(__name__)

LIVE_PREFIX = "sk_live_"
TEST_PREFIX = "sk_test_"

MSG_REQUIRED = "Secret key is required"
MSG_BAD_FORMAT = "Invalid key format. Key should start with 'sk_live_' or 'sk_test_'"
MSG_INVALID = "Invalid API key"
MSG_UNREACHABLE = "Failed to connect to Stripe API"


def _account_name(account: Dict[str, Any]) -> str:
    profile = account.get("business_profile") or {}
    dashboard = (account.get("settings") or {}).get("dashboard") or {}
    return profile.get("name") or dashboard.get("display_name") or account.get("email") or "Stripe Account"


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return MSG_INVALID
    if isinstance(body, dict):
        err = body.get("error")
        if isinstance(err, dict) and err.get("message"):
            return str(err["message"])
    return MSG_INVALID


class PaymentGatewayKeyValidator:
    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.base_url = (base_url or settings.stripe_api_base).rstrip("/")
        self._transport = transport
        self._timeout = httpx.Timeout(timeout or settings.http_timeout_seconds)

    async def validate(self, request: KeyCheckRequest) -> KeyCheckVerdict:
        # Checked as given: a key with stray whitespace fails the prefix check
        secret_key = request.secret_key or ""
        with correlation_scope():
            if not secret_key.strip():
                return KeyCheckVerdict.failed(MSG_REQUIRED, FailureKind.MALFORMED_INPUT)
            if not secret_key.startswith((LIVE_PREFIX, TEST_PREFIX)):
                logger.info("stripe_key.bad_format")
                return KeyCheckVerdict.failed(MSG_BAD_FORMAT, FailureKind.MALFORMED_INPUT)

            url = f"{self.base_url}/v1/account"
            try:
                async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                    resp = await client.get(url, headers={"Authorization": f"Bearer {secret_key}"})
            except httpx.HTTPError as e:
                logger.warning("stripe_key.unreachable", extra={"extra": {"err": str(e)}})
                return KeyCheckVerdict.failed(MSG_UNREACHABLE, FailureKind.AUTHORITY_UNREACHABLE)

            if not resp.is_success:
                message = _error_message(resp)
                logger.info("stripe_key.rejected", extra={"extra": {"status": resp.status_code, "err": message}})
                return KeyCheckVerdict.failed(message, FailureKind.AUTHORITY_REJECTED)

            try:
                account: Any = resp.json()
            except ValueError:
                account = None
            if not isinstance(account, dict):
                logger.warning("stripe_key.bad_body", extra={"extra": {"status": resp.status_code}})
                return KeyCheckVerdict.failed(MSG_INVALID, FailureKind.AUTHORITY_REJECTED)

            live_mode = bool(account.get("charges_enabled")) and secret_key.startswith(LIVE_PREFIX)
            verdict = KeyCheckVerdict(
                valid=True,
                account_name=_account_name(account),
                account_id=account.get("id"),
                live_mode=live_mode,
            )
            logger.info(
                "stripe_key.validated",
                extra={"extra": {"account_id": verdict.account_id, "live_mode": live_mode}},
            )
            return verdict
