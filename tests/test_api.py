import httpx
import pytest

from signet_x402.api import SignetApiClient
from signet_x402.errors import NetworkError


@pytest.mark.asyncio
async def test_fetch_estimate():
    def handler(request):
        assert request.url.path == "/api/x402/estimate"
        assert request.url.params["guaranteeHours"] == "6"
        return httpx.Response(200, json={"guaranteeHours": 6, "estimatedUSDC": "12.28"})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    api = SignetApiClient("http://signet.test/", http_client=client)
    try:
        payload = await api.fetch_estimate(6)
    finally:
        await client.aclose()

    assert payload["estimatedUSDC"] == "12.28"


@pytest.mark.asyncio
async def test_error_status_is_network_error():
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(502, text="bad gateway")))
    api = SignetApiClient("http://signet.test", http_client=client)
    try:
        with pytest.raises(NetworkError, match="502"):
            await api.fetch_signatures(0, 5)
    finally:
        await client.aclose()


@pytest.mark.asyncio
async def test_transport_failure_on_post_is_network_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    api = SignetApiClient("http://signet.test", http_client=client)
    try:
        with pytest.raises(NetworkError):
            await api.post_spotlight("https://example.com", 1)
    finally:
        await client.aclose()


@pytest.mark.asyncio
async def test_post_spotlight_merges_headers():
    seen = {}

    def handler(request):
        seen.update(request.headers)
        return httpx.Response(402, json={})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    api = SignetApiClient("http://signet.test", http_client=client)
    try:
        response = await api.post_spotlight("https://example.com", 1, headers={"PAYMENT-SIGNATURE": "abc"})
    finally:
        await client.aclose()

    assert response.status_code == 402
    assert seen["payment-signature"] == "abc"
    assert seen["content-type"] == "application/json"
