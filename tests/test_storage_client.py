from __future__ import annotations

import json
from typing import List

import httpx
import pytest

from paygate.errors import StorageError
from paygate.storage.client import StorageClient


@pytest.fixture
def sleeps(monkeypatch: pytest.MonkeyPatch) -> List[float]:
    recorded: List[float] = []

    async def fake_sleep(delay: float) -> None:
        recorded.append(delay)

    monkeypatch.setattr("paygate.storage.client.asyncio.sleep", fake_sleep)
    return recorded


def _client(handler) -> StorageClient:
    return StorageClient(
        "https://proj.supabase.test/",
        "service-key",
        "invoice-proofs",
        transport=httpx.MockTransport(handler),
        timeout=5,
    )


@pytest.mark.asyncio
async def test_put_sends_upsert_and_auth_headers() -> None:
    seen: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"Key": "invoice-proofs/invoices/u1/a.png"})

    client = _client(handler)
    await client.put("invoices/u1/invoice-9-1.png", b"png-bytes", content_type="image/png")
    await client.aclose()

    assert len(seen) == 1
    req = seen[0]
    assert req.method == "POST"
    assert req.url.path == "/storage/v1/object/invoice-proofs/invoices/u1/invoice-9-1.png"
    assert req.headers["x-upsert"] == "true"
    assert req.headers["Content-Type"] == "image/png"
    assert req.headers["Authorization"] == "Bearer service-key"
    assert req.content == b"png-bytes"


@pytest.mark.asyncio
async def test_signed_url_relative_path_is_made_absolute() -> None:
    bodies: List[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        assert request.url.path == "/storage/v1/object/sign/invoice-proofs/invoices/u1/a.png"
        return httpx.Response(200, json={"signedURL": "/object/sign/invoice-proofs/invoices/u1/a.png?token=xyz"})

    client = _client(handler)
    url = await client.signed_url("invoices/u1/a.png", 31536000)
    await client.aclose()

    assert bodies == [{"expiresIn": 31536000}]
    assert url == "https://proj.supabase.test/storage/v1/object/sign/invoice-proofs/invoices/u1/a.png?token=xyz"


@pytest.mark.asyncio
async def test_signed_url_absolute_is_kept() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"signedUrl": "https://cdn.test/a.png?token=1"})

    client = _client(handler)
    assert await client.signed_url("a.png", 60) == "https://cdn.test/a.png?token=1"
    await client.aclose()


@pytest.mark.asyncio
async def test_signed_url_missing_in_response() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={})

    client = _client(handler)
    with pytest.raises(StorageError):
        await client.signed_url("a.png", 60)
    await client.aclose()


@pytest.mark.asyncio
async def test_retryable_status_then_success(sleeps: List[float]) -> None:
    statuses = [503, 200]

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(statuses.pop(0), json={})

    client = _client(handler)
    await client.put("a.png", b"x", content_type="image/png")
    await client.aclose()

    assert statuses == []
    assert len(sleeps) == 1


@pytest.mark.asyncio
async def test_client_error_is_not_retried(sleeps: List[float]) -> None:
    calls: List[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(1)
        return httpx.Response(400, json={"message": "Bucket not found"})

    client = _client(handler)
    with pytest.raises(StorageError) as ei:
        await client.put("a.png", b"x", content_type="image/png")
    await client.aclose()

    assert ei.value.status_code == 400
    assert str(ei.value) == "Bucket not found"
    assert len(calls) == 1
    assert sleeps == []


@pytest.mark.asyncio
async def test_transport_errors_exhaust_attempts(sleeps: List[float]) -> None:
    calls: List[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(1)
        raise httpx.ConnectError("refused", request=request)

    client = _client(handler)
    with pytest.raises(StorageError):
        await client.put("a.png", b"x", content_type="image/png")
    await client.aclose()

    assert len(calls) == 3
    assert len(sleeps) == 2


@pytest.mark.asyncio
async def test_persistent_retryable_status_gives_up(sleeps: List[float]) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="bad gateway")

    client = _client(handler)
    with pytest.raises(StorageError) as ei:
        await client.put("a.png", b"x", content_type="image/png")
    await client.aclose()

    assert ei.value.status_code == 502
    assert len(sleeps) == 2


@pytest.mark.asyncio
async def test_ping() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/storage/v1/bucket/invoice-proofs"
        return httpx.Response(200, json={"id": "invoice-proofs"})

    client = _client(handler)
    assert await client.ping() is True
    await client.aclose()
