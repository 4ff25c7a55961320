from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from paygate.logging_config import setup_logging
from paygate.payment.stripe_key import PaymentGatewayKeyValidator
from paygate.telegram.validator import CredentialValidator
from paygate.verdicts import KeyCheckRequest, ValidationRequest


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="paygate", description="Validate integration credentials.")
    sub = parser.add_subparsers(dest="command", required=True)

    bot = sub.add_parser("check-bot", help="check a Telegram bot token and channel")
    bot.add_argument("--token", default=os.getenv("CHECK_BOT_TOKEN", ""), help="bot token (or CHECK_BOT_TOKEN)")
    bot.add_argument("--channel", required=True, help="channel id (-100...) or @username")

    key = sub.add_parser("check-key", help="check a Stripe secret key")
    key.add_argument("--key", default=os.getenv("CHECK_STRIPE_KEY", ""), help="secret key (or CHECK_STRIPE_KEY)")
    return parser


async def _run(args: argparse.Namespace) -> Dict[str, Any]:
    if args.command == "check-bot":
        verdict = await CredentialValidator().validate(ValidationRequest(bot_token=args.token, channel_id=args.channel))
        return verdict.as_wire()
    verdict_key = await PaymentGatewayKeyValidator().validate(KeyCheckRequest(secret_key=args.key))
    return verdict_key.as_wire()


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = _build_parser().parse_args(argv)
    setup_logging(stream="ext://sys.stderr")
    result = asyncio.run(_run(args))
    print(json.dumps(result, ensure_ascii=False))
    return 0 if result.get("valid") else 1


def run() -> None:
    raise SystemExit(main(sys.argv[1:]))


if __name__ == "__main__":
    run()
