import base64
import json

import httpx
import pytest

from signet_x402.api import SignetApiClient
from signet_x402.authorizer import PaymentAuthorizer
from signet_x402.config import SignetConfig
from signet_x402.constants import USDC_ADDRESS
from signet_x402.errors import PaymentRejected
from signet_x402.models import QuoteResult, SignatureRecord, SpotlightStatus
from signet_x402.negotiator import PaymentNegotiator
from signet_x402.workflows import estimate_spotlight, post_spotlight, recent_signatures

from conftest import TEST_PRIVATE_KEY

BASE_URL = "http://signet.test"
TARGET = "https://example.com"

REQUIREMENT = {
    "scheme": "exact",
    "network": "eip155:8453",
    "amount": "12.28",
    "asset": USDC_ADDRESS,
    "payTo": "0x78981ca2f04f97975eaa5b2d69bc1db50459bde5",
    "maxTimeoutSeconds": 300,
    "extra": {},
}


class StubGateway:
    def __init__(self, count=0):
        self.config = SignetConfig()
        self.count = count
        self.calls = []

    async def estimate(self, token_address, hours):
        self.calls.append(("estimate", token_address, hours))
        return QuoteResult(from_token_amount=1_000_000, secondary_token_required=10**18)

    async def get_spotlight_status(self):
        self.calls.append(("status",))
        return SpotlightStatus(available=False, remaining_seconds=90)

    async def get_signature_count(self):
        return self.count

    async def get_signature_list(self, start, end):
        self.calls.append(("list", start, end))
        return [
            SignatureRecord(i, 1_700_000_000, 1, "0x" + "9a" * 20, f"https://{i}.example", 0, 0, 1)
            for i in range(start, end + 1)
        ]


def _api(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SignetApiClient(BASE_URL, http_client=client), client


@pytest.mark.asyncio
async def test_estimate_applies_price_buffer():
    gateway = StubGateway()

    estimate = await estimate_spotlight(gateway, 4)

    assert estimate.guarantee_hours == 4
    assert estimate.settlement_amount == 1_050_000
    assert estimate.settlement_decimals == 6
    assert estimate.available is False
    assert estimate.remaining_seconds == 90
    assert ("estimate", USDC_ADDRESS, 4) in gateway.calls


@pytest.mark.asyncio
async def test_estimate_rejects_bad_hours():
    with pytest.raises(ValueError):
        await estimate_spotlight(StubGateway(), 30)


@pytest.mark.asyncio
async def test_post_spotlight_pays_once():
    requests = []

    def handler(request):
        requests.append(request)
        if "PAYMENT-SIGNATURE" not in request.headers:
            return httpx.Response(402, json={"x402Version": 2, "accepts": [REQUIREMENT]})
        return httpx.Response(200, json={"txHash": "0xfeed", "url": TARGET, "guaranteeHours": 2})

    api, client = _api(handler)
    authorizer = PaymentAuthorizer.from_private_key(TEST_PRIVATE_KEY)
    try:
        receipt = await post_spotlight(PaymentNegotiator(api), authorizer, TARGET, 2)
    finally:
        await client.aclose()

    assert receipt.tx_hash == "0xfeed"
    assert len(requests) == 2
    paid = requests[1]
    assert paid.headers["X-PAYMENT"] == paid.headers["PAYMENT-SIGNATURE"]
    document = json.loads(base64.b64decode(paid.headers["PAYMENT-SIGNATURE"]))
    assert document["payload"]["authorization"]["value"] == "12280000"
    assert document["payload"]["authorization"]["from"] == authorizer.address


@pytest.mark.asyncio
async def test_post_spotlight_does_not_retry_rejection():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(402, json={"x402Version": 2, "accepts": [REQUIREMENT], "error": "expired"})

    api, client = _api(handler)
    authorizer = PaymentAuthorizer.from_private_key(TEST_PRIVATE_KEY)
    try:
        with pytest.raises(PaymentRejected, match="expired"):
            await post_spotlight(PaymentNegotiator(api), authorizer, TARGET, 2)
    finally:
        await client.aclose()

    assert len(requests) == 2


@pytest.mark.asyncio
async def test_post_spotlight_free_placement():
    api, client = _api(lambda request: httpx.Response(200, json={"txHash": "0x1", "url": TARGET}))
    authorizer = PaymentAuthorizer.from_private_key(TEST_PRIVATE_KEY)
    try:
        receipt = await post_spotlight(PaymentNegotiator(api), authorizer, TARGET, 0)
    finally:
        await client.aclose()

    assert receipt.tx_hash == "0x1"


@pytest.mark.asyncio
async def test_recent_signatures_newest_first():
    seen = []

    def handler(request):
        seen.append(dict(request.url.params))
        signatures = [
            {"signatureIndex": i, "url": f"https://{i}.example", "huntAmount": "1000000000000000000",
             "timestamp": 1_700_000_000, "userWallet": "0x" + "9a" * 20,
             "viewCount": 100, "clickCount": 10, "metadata": {"title": f"Ad {i}"}}
            for i in (7, 9, 8)
        ]
        return httpx.Response(200, json={"signatures": signatures})

    api, client = _api(handler)
    try:
        records = await recent_signatures(StubGateway(count=10), api, count=3)
    finally:
        await client.aclose()

    assert seen == [{"startIndex": "7", "endIndex": "9"}]
    assert [record.index for record in records] == [9, 8, 7]
    assert records[0].title == "Ad 9"
    assert records[0].view_count == 100


@pytest.mark.asyncio
async def test_recent_signatures_falls_back_to_registry():
    gateway = StubGateway(count=2)
    api, client = _api(lambda request: httpx.Response(500, text="down"))
    try:
        records = await recent_signatures(gateway, api, count=5)
    finally:
        await client.aclose()

    assert ("list", 0, 1) in gateway.calls
    assert [record.index for record in records] == [1, 0]


@pytest.mark.asyncio
async def test_recent_signatures_empty_registry():
    api, client = _api(lambda request: pytest.fail("API should not be called"))
    try:
        assert await recent_signatures(StubGateway(count=0), api) == []
    finally:
        await client.aclose()
