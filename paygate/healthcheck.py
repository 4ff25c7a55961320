import asyncio
import os
import sys

from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine

from paygate.config import settings
from paygate.storage.client import get_storage

# Healthcheck: DB connectivity (SELECT 1) and object storage reachability.
#
# Skip the storage probe with HEALTHCHECK_SKIP_STORAGE=1 (useful in staging
# when the bucket is not provisioned yet).


async def _check_db() -> bool:
    if not settings.db_url:
        return False
    try:
        engine = create_async_engine(settings.db_url, pool_pre_ping=True)
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        await engine.dispose()
        return True
    except Exception:
        return False


async def _check_storage() -> bool:
    if not settings.storage_url or not settings.storage_service_key:
        return False
    storage = get_storage()
    try:
        return await storage.ping()
    finally:
        await storage.aclose()


def main() -> int:
    ok_db = asyncio.run(_check_db())
    if not ok_db:
        print("db not ready", file=sys.stderr)
        return 1

    skip_storage = os.getenv("HEALTHCHECK_SKIP_STORAGE", "0").strip().lower() in {"1", "true", "yes", "on"}
    if not skip_storage:
        ok_storage = asyncio.run(_check_storage())
        if not ok_storage:
            print("storage not ready", file=sys.stderr)
            return 1

    print("ok")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
