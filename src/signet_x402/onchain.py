"""Direct on-chain spotlight payment through the zap contract."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from .config import SignetConfig
from .constants import AUTO_TOKEN, MAX_UINT256
from .errors import InsufficientBalance, SigningFailed
from .gateway import ChainGateway
from .models import QuoteResult, TokenDescriptor, TransactionOutcome
from .selector import TokenSelector
from .units import Number, compute_max_amount, slippage_to_bps, validate_guarantee_hours

logger = logging.getLogger(__name__)

MIN_DIRECT_HOURS = 1
MAX_DIRECT_HOURS = 24


class SignState(str, Enum):
    RESOLVE_TOKEN = "resolve_token"
    QUOTE = "quote"
    COMPUTE_MAX_AMOUNT = "compute_max_amount"
    CHECK_BALANCE = "check_balance"
    CHECK_ALLOWANCE = "check_allowance"
    APPROVE = "approve"
    AWAIT_APPROVAL = "await_approval"
    EXECUTE = "execute"
    AWAIT_CONFIRMATION = "await_confirmation"
    DECODE_EVENT = "decode_event"
    DONE = "done"


@dataclass(frozen=True)
class SignResult:
    token: TokenDescriptor
    quote: QuoteResult
    max_amount: int
    slippage_percent: Number
    outcome: TransactionOutcome
    approval_tx_hash: Optional[str] = None

    @property
    def tx_hash(self) -> str:
        return self.outcome.tx_hash


def _is_native(token: TokenDescriptor) -> bool:
    return int(token.address, 16) == 0


class OnChainSigner:
    """Pays for a spotlight placement with a single ``sign`` transaction.

    The flow is quote, slippage bound, balance check, optional unlimited
    approval of the zap contract, then the payment itself. The payment is
    submitted at most once; a failed confirmation is reported, never resent.
    """

    def __init__(self, gateway: ChainGateway, selector: TokenSelector, config: SignetConfig) -> None:
        self._gateway = gateway
        self._selector = selector
        self._config = config

    def _enter(self, state: SignState, detail: str = "") -> None:
        if detail:
            logger.info("sign: %s (%s)", state.value, detail)
        else:
            logger.info("sign: %s", state.value)

    def _bounded_slippage(self, slippage_percent: Number) -> Number:
        if slippage_to_bps(slippage_percent) > slippage_to_bps(self._config.max_slippage_percent):
            logger.warning(
                "slippage %s%% exceeds the %s%% limit; using %s%%",
                slippage_percent,
                self._config.max_slippage_percent,
                self._config.max_slippage_percent,
            )
            return self._config.max_slippage_percent
        return slippage_percent

    async def sign(
        self,
        url: str,
        hours: int,
        token: Union[str, TokenDescriptor] = AUTO_TOKEN,
        slippage_percent: Number = 5.0,
    ) -> SignResult:
        validate_guarantee_hours(hours, minimum=MIN_DIRECT_HOURS, maximum=MAX_DIRECT_HOURS)
        if not url:
            raise ValueError("url is required")
        slippage_percent = self._bounded_slippage(slippage_percent)
        if self._gateway.account is None:
            raise SigningFailed("on-chain payment needs a signing account")
        wallet = self._gateway.account.address

        self._enter(SignState.RESOLVE_TOKEN, str(token))
        if isinstance(token, TokenDescriptor):
            descriptor = token
        elif token.lower() == AUTO_TOKEN:
            descriptor = await self._selector.select_token(
                self._config.token_priority, wallet, hours, slippage_percent
            )
        else:
            descriptor = self._config.resolve_token(token)

        self._enter(SignState.QUOTE, descriptor.symbol)
        quote = await self._gateway.estimate(descriptor.address, hours)

        self._enter(SignState.COMPUTE_MAX_AMOUNT)
        max_amount = compute_max_amount(quote.from_token_amount, slippage_percent)
        logger.info(
            "quote %d %s, max %d with %s%% slippage",
            quote.from_token_amount,
            descriptor.symbol,
            max_amount,
            slippage_percent,
        )

        self._enter(SignState.CHECK_BALANCE)
        balance = await self._gateway.get_balance(descriptor, wallet)
        if balance < max_amount:
            raise InsufficientBalance(needed=max_amount, have=balance, token=descriptor.symbol)

        approval_tx_hash = None
        if not _is_native(descriptor):
            self._enter(SignState.CHECK_ALLOWANCE)
            spender = self._config.zap_contract
            allowance = await self._gateway.get_allowance(descriptor, wallet, spender)
            if allowance < max_amount:
                self._enter(SignState.APPROVE, f"{descriptor.symbol} -> {spender}")
                receipt = await self._gateway.approve(descriptor, spender, MAX_UINT256)
                approval_tx_hash = receipt.get("transactionHash")
                self._enter(SignState.AWAIT_APPROVAL, str(approval_tx_hash))

        # gateway.pay covers submission, confirmation and event decoding.
        self._enter(SignState.EXECUTE, f"{max_amount} {descriptor.symbol}")
        outcome = await self._gateway.pay(descriptor.address, url, max_amount, hours)
        self._enter(SignState.AWAIT_CONFIRMATION, f"{outcome.tx_hash} in block {outcome.block_number}")
        self._enter(SignState.DECODE_EVENT, "ok" if outcome.spend else "unavailable")
        self._enter(SignState.DONE)

        return SignResult(
            token=descriptor,
            quote=quote,
            max_amount=max_amount,
            slippage_percent=slippage_percent,
            outcome=outcome,
            approval_tx_hash=approval_tx_hash,
        )
