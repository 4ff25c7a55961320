from __future__ import annotations

import asyncio
import logging
import random
from typing import Any, Optional, Protocol
from urllib.parse import quote

import httpx

from paygate.config import settings
from paygate.errors import StorageError


logger = logging.getLogger(__name__)

_RETRYABLE_STATUSES = {429, 502, 503, 504}


class ObjectStorage(Protocol):
    async def put(self, path: str, data: bytes, *, content_type: str, overwrite: bool = True) -> None: ...

    async def signed_url(self, path: str, ttl_seconds: int) -> str: ...


class StorageClient:
    """Supabase Storage REST client for one bucket.

    Uploads are sent with ``x-upsert`` when overwrite is allowed, which makes a
    retried upload of the same path idempotent; retryable statuses and transport
    errors are therefore retried with backoff.
    """

    def __init__(
        self,
        base_url: str,
        service_key: str,
        bucket: str,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.bucket = bucket
        self._service_key = service_key
        t = timeout or settings.http_timeout_seconds
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(t * 3, connect=t, read=t, write=t),
            transport=transport,
        )
        self._max_attempts = 3
        self._backoff_base = 0.5  # seconds

    def _headers(self, extra: Optional[dict[str, str]] = None) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self._service_key}",
            "apikey": self._service_key,
        }
        if extra:
            headers.update(extra)
        return headers

    def _object_url(self, *parts: str) -> str:
        return "/".join([f"{self.base_url}/storage/v1/object", *parts])

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        for attempt in range(1, self._max_attempts + 1):
            try:
                resp = await self._client.request(method, url, **kwargs)
            except httpx.TransportError as e:
                if attempt < self._max_attempts:
                    delay = self._backoff_base * (2 ** (attempt - 1)) + random.uniform(0, 0.25)
                    logger.warning(
                        "Network error on %s %s: %s, attempt %d/%d, sleeping %.2fs",
                        method, url, e, attempt, self._max_attempts, delay,
                    )
                    await asyncio.sleep(delay)
                    continue
                logger.error("storage transport error on %s %s after %d attempts: %s", method, url, attempt, e)
                raise StorageError(f"Storage unreachable: {e}") from e

            if resp.status_code in _RETRYABLE_STATUSES and attempt < self._max_attempts:
                delay = self._backoff_base * (2 ** (attempt - 1)) + random.uniform(0, 0.25)
                logger.warning(
                    "Retryable status %s on %s %s, attempt %d/%d, sleeping %.2fs",
                    resp.status_code, method, url, attempt, self._max_attempts, delay,
                )
                await asyncio.sleep(delay)
                continue
            if not resp.is_success:
                raise StorageError(_error_message(resp), status_code=resp.status_code)
            return resp
        # Loop always returns or raises
        raise StorageError(f"Request failed: {method} {url}")

    async def put(self, path: str, data: bytes, *, content_type: str, overwrite: bool = True) -> None:
        url = self._object_url(self.bucket, quote(path))
        headers = self._headers({
            "Content-Type": content_type,
            "x-upsert": "true" if overwrite else "false",
        })
        await self._request("POST", url, content=data, headers=headers)
        logger.debug("storage.put", extra={"extra": {"bucket": self.bucket, "path": path, "bytes": len(data)}})

    async def signed_url(self, path: str, ttl_seconds: int) -> str:
        url = self._object_url("sign", self.bucket, quote(path))
        resp = await self._request("POST", url, json={"expiresIn": int(ttl_seconds)}, headers=self._headers())
        try:
            signed = resp.json().get("signedURL") or resp.json().get("signedUrl")
        except ValueError:
            signed = None
        if not signed:
            raise StorageError("Signed URL missing in storage response", status_code=resp.status_code)
        if signed.startswith("http"):
            return signed
        return f"{self.base_url}/storage/v1{signed}"

    async def ping(self) -> bool:
        """Light reachability probe used by the healthcheck."""
        try:
            resp = await self._client.get(f"{self.base_url}/storage/v1/bucket/{self.bucket}", headers=self._headers())
        except httpx.HTTPError:
            return False
        return resp.is_success

    async def aclose(self) -> None:
        await self._client.aclose()


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return f"Storage error {resp.status_code}"
    if isinstance(body, dict):
        for key in ("message", "error"):
            if body.get(key):
                return str(body[key])
    return f"Storage error {resp.status_code}"


def get_storage(bucket: Optional[str] = None) -> StorageClient:
    return StorageClient(
        settings.storage_url,
        settings.storage_service_key,
        bucket or settings.proof_bucket,
    )
