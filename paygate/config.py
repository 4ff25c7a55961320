from __future__ import annotations

import os
from dataclasses import dataclass


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass
class Settings:
    app_env: str = os.getenv("APP_ENV", "production")
    tz: str = os.getenv("TZ", "UTC")

    # Used only for operator notifications, never for credential checks
    telegram_bot_token: str = os.getenv("TELEGRAM_BOT_TOKEN", "")
    log_chat_id: str = os.getenv("LOG_CHAT_ID", "")

    stripe_api_base: str = os.getenv("STRIPE_API_BASE", "https://api.stripe.com")

    storage_url: str = os.getenv("STORAGE_URL", "")
    storage_service_key: str = os.getenv("STORAGE_SERVICE_KEY", "")
    proof_bucket: str = os.getenv("PROOF_BUCKET", "invoice-proofs")
    subscriber_proof_bucket: str = os.getenv("SUBSCRIBER_PROOF_BUCKET", "payment-proofs")
    proof_path_prefix: str = os.getenv("PROOF_PATH_PREFIX", "invoices")
    proof_max_bytes: int = _int_env("PROOF_MAX_BYTES", 5 * 1024 * 1024)
    proof_signed_url_ttl: int = _int_env("PROOF_SIGNED_URL_TTL", 31536000)  # 1 year

    http_timeout_seconds: float = _float_env("HTTP_TIMEOUT_SECONDS", 10.0)

    db_url: str = os.getenv("DB_URL", "")


settings = Settings()
