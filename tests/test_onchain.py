import logging

import pytest

from signet_x402.config import SignetConfig
from signet_x402.constants import KNOWN_TOKENS, MAX_UINT256, ZAP_CONTRACT
from signet_x402.errors import InsufficientBalance, UnknownToken
from signet_x402.models import QuoteResult, SpendDetail, TransactionOutcome
from signet_x402.onchain import OnChainSigner

WALLET = "0x" + "78" * 20
URL = "https://example.com"


class StubAccount:
    address = WALLET


class StubGateway:
    def __init__(self, balance=10**24, allowance=MAX_UINT256, quote=1_000_000, spend=True):
        self.account = StubAccount()
        self.balance = balance
        self.allowance = allowance
        self.quote = quote
        self.spend = spend
        self.events = []

    async def estimate(self, token_address, hours):
        self.events.append(("estimate", token_address, hours))
        return QuoteResult(from_token_amount=self.quote, secondary_token_required=10**18)

    async def get_balance(self, token, wallet):
        self.events.append(("balance", token.symbol, wallet))
        return self.balance

    async def get_allowance(self, token, owner, spender):
        self.events.append(("allowance", token.symbol, spender))
        return self.allowance

    async def approve(self, token, spender, amount):
        self.events.append(("approve", token.symbol, spender, amount))
        return {"transactionHash": "0xapprove", "status": "0x1"}

    async def pay(self, token_address, url, max_amount, hours):
        self.events.append(("pay", token_address, url, max_amount, hours))
        if not self.spend:
            return TransactionOutcome(tx_hash="0xpay", block_number=7, decode_error="no logs")
        detail = SpendDetail(WALLET, token_address, url, max_amount - 1, 10**18, hours)
        return TransactionOutcome(tx_hash="0xpay", block_number=7, spend=detail)

    def names(self):
        return [event[0] for event in self.events]


class StubSelector:
    def __init__(self, token):
        self.token = token
        self.calls = []

    async def select_token(self, priority, wallet, hours, slippage_percent):
        self.calls.append((tuple(priority), wallet, hours, slippage_percent))
        return self.token


def _signer(gateway, selector=None, config=None):
    config = config or SignetConfig()
    return OnChainSigner(gateway, selector or StubSelector(KNOWN_TOKENS["hunt"]), config)


@pytest.mark.asyncio
async def test_insufficient_balance_after_slippage():
    gateway = StubGateway(balance=1_000_000, quote=1_000_000)

    with pytest.raises(InsufficientBalance) as excinfo:
        await _signer(gateway).sign(URL, 1, token="usdc", slippage_percent=5.0)

    assert excinfo.value.needed == 1_050_000
    assert excinfo.value.have == 1_000_000
    assert "pay" not in gateway.names()


@pytest.mark.asyncio
async def test_sufficient_allowance_skips_approval():
    gateway = StubGateway()

    result = await _signer(gateway).sign(URL, 2, token="usdc", slippage_percent=5.0)

    assert gateway.names() == ["estimate", "balance", "allowance", "pay"]
    assert result.max_amount == 1_050_000
    assert result.approval_tx_hash is None
    assert result.tx_hash == "0xpay"
    assert gateway.events[-1] == ("pay", KNOWN_TOKENS["usdc"].address, URL, 1_050_000, 2)


@pytest.mark.asyncio
async def test_low_allowance_approves_zap_before_paying():
    gateway = StubGateway(allowance=0)

    result = await _signer(gateway).sign(URL, 1, token="usdc")

    assert gateway.names() == ["estimate", "balance", "allowance", "approve", "pay"]
    assert gateway.events[3] == ("approve", "usdc", ZAP_CONTRACT, MAX_UINT256)
    assert result.approval_tx_hash == "0xapprove"


@pytest.mark.asyncio
async def test_native_coin_skips_allowance():
    gateway = StubGateway(allowance=0)

    result = await _signer(gateway).sign(URL, 1, token="eth")

    assert gateway.names() == ["estimate", "balance", "pay"]
    assert result.token.symbol == "eth"


@pytest.mark.asyncio
async def test_auto_uses_selector():
    gateway = StubGateway()
    selector = StubSelector(KNOWN_TOKENS["mt"])

    result = await _signer(gateway, selector).sign(URL, 3, token="auto", slippage_percent=2)

    assert result.token.symbol == "mt"
    assert selector.calls == [(("hunt", "usdc", "eth", "mt"), WALLET, 3, 2)]


@pytest.mark.asyncio
async def test_unknown_token_fails_before_any_chain_call():
    gateway = StubGateway()

    with pytest.raises(UnknownToken):
        await _signer(gateway).sign(URL, 1, token="doge")
    assert gateway.events == []


@pytest.mark.asyncio
async def test_event_decode_failure_is_still_success():
    gateway = StubGateway(spend=False)

    result = await _signer(gateway).sign(URL, 1, token="usdc")

    assert result.tx_hash == "0xpay"
    assert result.outcome.spend is None
    assert result.outcome.decode_error == "no logs"


@pytest.mark.asyncio
@pytest.mark.parametrize("hours", [0, 25])
async def test_hours_out_of_range(hours):
    with pytest.raises(ValueError):
        await _signer(StubGateway()).sign(URL, hours, token="usdc")


@pytest.mark.asyncio
async def test_negative_slippage_rejected():
    with pytest.raises(ValueError):
        await _signer(StubGateway()).sign(URL, 1, token="usdc", slippage_percent=-1)


@pytest.mark.asyncio
async def test_excessive_slippage_is_clamped(caplog):
    gateway = StubGateway()

    with caplog.at_level(logging.WARNING, logger="signet_x402.onchain"):
        result = await _signer(gateway).sign(URL, 1, token="usdc", slippage_percent=80)

    assert result.slippage_percent == 50.0
    assert result.max_amount == 1_500_000
    assert "exceeds" in caplog.text
