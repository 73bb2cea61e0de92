import json

import httpx
import pytest
from eth_abi import encode as abi_encode
from eth_account import Account

from signet_x402.config import SignetConfig
from signet_x402.gateway import ChainGateway
from signet_x402.rpc import FallbackPolicy, RpcEndpointPool

TEST_PRIVATE_KEY = "0x" + "1" * 64
RPC_URL = "http://rpc.test"


def encode_result(types, values):
    return "0x" + abi_encode(list(types), list(values)).hex()


class RpcFault:
    """A JSON-RPC error object returned in place of a result."""

    def __init__(self, code, message):
        self.code = code
        self.message = message


class FakeChain:
    """In-memory JSON-RPC node served through ``httpx.MockTransport``.

    ``results`` maps a method to a value or ``callable(params)``;
    ``calls`` maps a 4-byte selector (``0x12345678``) to the same for ``eth_call``.
    Entries may also be an :class:`RpcFault`, and callables may raise httpx errors.
    """

    def __init__(self):
        self.results = {}
        self.calls = {}
        self.requests = []

    def handler(self, request):
        body = json.loads(request.content.decode())
        method, params = body["method"], body["params"]
        self.requests.append((method, params))
        if method == "eth_call":
            entry = self.calls[params[0]["data"][:10]]
        else:
            entry = self.results[method]
        result = entry(params) if callable(entry) else entry
        if isinstance(result, RpcFault):
            error = {"code": result.code, "message": result.message}
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "error": error})
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})

    def methods(self):
        return [method for method, _ in self.requests]

    def transport(self):
        return httpx.MockTransport(self.handler)


@pytest.fixture
def fake_chain():
    return FakeChain()


@pytest.fixture
def account():
    return Account.from_key(TEST_PRIVATE_KEY)


@pytest.fixture
def config():
    return SignetConfig(rpc_urls=[RPC_URL], confirmation_timeout=5.0, poll_interval=0.0)


@pytest.fixture
def make_gateway(fake_chain, config):
    def factory(account=None):
        pool = RpcEndpointPool(
            config.rpc_urls,
            FallbackPolicy(timeout_seconds=1.0, attempts=1),
            FallbackPolicy(timeout_seconds=1.0, attempts=1),
            http_client=httpx.AsyncClient(transport=fake_chain.transport()),
        )
        return ChainGateway(pool, config, account=account)

    return factory
