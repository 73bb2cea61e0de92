"""Greedy first-fit token selection for the direct payment path."""

from __future__ import annotations

import asyncio
import logging
from typing import List, Mapping, Sequence, Tuple, Union

from .constants import get_token
from .errors import NetworkError, NoSuitableToken, RpcError
from .models import TokenDescriptor
from .units import Number, compute_max_amount

logger = logging.getLogger(__name__)

TokenRef = Union[str, TokenDescriptor]


class TokenSelector:
    """Picks the first token in priority order the wallet can afford.

    This is not a cheapest-token search: a later token may cost less.
    """

    def __init__(self, gateway, tokens: Mapping[str, TokenDescriptor]) -> None:
        self._gateway = gateway
        self._tokens = dict(tokens)

    def _resolve(self, token: TokenRef) -> TokenDescriptor:
        if isinstance(token, TokenDescriptor):
            return token
        return get_token(token, self._tokens)

    async def select_token(
        self,
        priority: Sequence[TokenRef],
        wallet: str,
        hours: int,
        slippage_percent: Number,
    ) -> TokenDescriptor:
        candidates = [self._resolve(token) for token in priority]
        skipped: List[Tuple[str, str]] = []

        for token in candidates:
            try:
                balance, quote = await asyncio.gather(
                    self._gateway.get_balance(token, wallet),
                    self._gateway.estimate(token.address, hours),
                )
            except (NetworkError, RpcError, ValueError) as exc:
                logger.info("skipping %s: lookup failed: %s", token.symbol, exc)
                skipped.append((token.symbol, f"lookup failed: {exc}"))
                continue

            required = compute_max_amount(quote.from_token_amount, slippage_percent)
            if balance >= required:
                logger.info(
                    "selected %s (balance %d covers %d with %s%% slippage)",
                    token.symbol,
                    balance,
                    required,
                    slippage_percent,
                )
                return token

            logger.debug("skipping %s: balance %d < required %d", token.symbol, balance, required)
            skipped.append((token.symbol, f"balance {balance} < required {required}"))

        raise NoSuitableToken(skipped)
