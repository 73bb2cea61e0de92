"""Typed reads and writes against the Signet registry, the zap and ERC-20 tokens."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional

from eth_utils import to_checksum_address

from . import abi
from .config import SignetConfig
from .constants import MAX_UINT256
from .errors import EventDecodeError, NetworkError, RpcError, TransactionFailure
from .models import (
    QuoteResult,
    SignatureRecord,
    SpendDetail,
    SpotlightStatus,
    TokenDescriptor,
    TransactionOutcome,
)
from .rpc import RpcEndpointPool
from .units import apply_bps

logger = logging.getLogger(__name__)

JsonDict = Dict[str, Any]


def _is_native(address: str) -> bool:
    return int(address, 16) == 0


def _hex_to_int(value: Optional[str], *, field: str) -> int:
    if value is None:
        raise ValueError(f"RPC returned null {field}")
    return int(value, 16)


class ChainGateway:
    """Contract calls routed through an :class:`RpcEndpointPool`.

    ``account`` is an ``eth_account`` local account; it is only needed for
    :meth:`approve` and :meth:`pay`.
    """

    def __init__(self, pool: RpcEndpointPool, config: SignetConfig, account: Any = None) -> None:
        self.pool = pool
        self.config = config
        self.account = account

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def _eth_call(self, to: str, fn: abi.ContractFunction, *args: Any) -> tuple:
        call = {"to": to, "data": fn.encode(*args)}
        result = await self.pool.read("eth_call", [call, "latest"])
        if result is None:
            raise ValueError(f"{fn.signature} returned no data")
        return fn.decode(result)

    async def get_signature_count(self) -> int:
        (count,) = await self._eth_call(self.config.signet_contract, abi.GET_SIGNATURE_COUNT)
        return int(count)

    async def get_signature_list(self, start: int, end: int) -> List[SignatureRecord]:
        """Signatures ``start..end`` inclusive, in index order."""
        if start < 0 or end < start:
            raise ValueError("signature range must satisfy 0 <= start <= end")
        # The contract treats its end index as exclusive.
        (rows,) = await self._eth_call(
            self.config.signet_contract, abi.GET_SIGNATURE_LIST, start, end + 1
        )
        records = []
        for offset, row in enumerate(rows):
            timestamp, block_number, wallet, url, hunt_amount, signet_amount, hours = row
            records.append(
                SignatureRecord(
                    index=start + offset,
                    timestamp=int(timestamp),
                    block_number=int(block_number),
                    user_wallet=wallet,
                    url=url,
                    hunt_amount=int(hunt_amount),
                    signet_amount=int(signet_amount),
                    guarantee_hours=int(hours),
                )
            )
        return records

    async def is_spotlight_available(self) -> bool:
        (available,) = await self._eth_call(self.config.signet_contract, abi.IS_SPOTLIGHT_AVAILABLE)
        return bool(available)

    async def get_spotlight_remaining_time(self) -> int:
        (remaining,) = await self._eth_call(
            self.config.signet_contract, abi.GET_SPOTLIGHT_REMAINING_TIME
        )
        return int(remaining)

    async def get_spotlight_status(self) -> SpotlightStatus:
        available, remaining = await asyncio.gather(
            self.is_spotlight_available(), self.get_spotlight_remaining_time()
        )
        return SpotlightStatus(available=available, remaining_seconds=remaining)

    async def get_balance(self, token: TokenDescriptor, wallet: str) -> int:
        if _is_native(token.address):
            result = await self.pool.read("eth_getBalance", [wallet, "latest"])
            return _hex_to_int(result, field="balance")
        (balance,) = await self._eth_call(token.address, abi.BALANCE_OF, wallet)
        return int(balance)

    async def get_allowance(self, token: TokenDescriptor, owner: str, spender: str) -> int:
        if _is_native(token.address):
            return MAX_UINT256
        (allowance,) = await self._eth_call(token.address, abi.ALLOWANCE, owner, spender)
        return int(allowance)

    async def estimate(self, token_address: str, hours: int) -> QuoteResult:
        """Fresh quote from the zap; never cached."""
        from_amount, hunt_required = await self._eth_call(
            self.config.zap_contract, abi.ESTIMATE_SIGN, token_address, hours
        )
        return QuoteResult(
            from_token_amount=int(from_amount), secondary_token_required=int(hunt_required)
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _require_account(self) -> Any:
        if self.account is None:
            raise RuntimeError("a signing account is required for chain writes")
        return self.account

    async def send_transaction(self, to: str, data: str, value: int = 0) -> str:
        """Sign a legacy transaction locally and submit it once."""
        account = self._require_account()
        sender = account.address
        call = {"from": sender, "to": to, "data": data, "value": hex(value)}
        try:
            gas_price, nonce, gas_estimate = await asyncio.gather(
                self.pool.read("eth_gasPrice", []),
                self.pool.read("eth_getTransactionCount", [sender, "pending"]),
                self.pool.read("eth_estimateGas", [call]),
            )
        except RpcError as exc:
            raise TransactionFailure(f"transaction to {to} cannot be prepared: {exc}") from exc

        tx = {
            "chainId": self.config.chain_id,
            "nonce": _hex_to_int(nonce, field="nonce"),
            "gas": apply_bps(_hex_to_int(gas_estimate, field="gas estimate"), self.config.gas_headroom_bps),
            "gasPrice": _hex_to_int(gas_price, field="gas price"),
            "to": to_checksum_address(to),
            "value": value,
            "data": data,
        }
        signed = account.sign_transaction(tx)
        raw_tx = "0x" + bytes(signed.raw_transaction).hex()
        try:
            tx_hash = await self.pool.write("eth_sendRawTransaction", [raw_tx])
        except RpcError as exc:
            # A retried submission of the same signed bytes; the first one landed.
            if "already known" in str(exc).lower():
                tx_hash = "0x" + bytes(signed.hash).hex()
            else:
                raise TransactionFailure(f"transaction to {to} was rejected: {exc}") from exc
        if tx_hash is None:
            raise TransactionFailure("RPC returned null for eth_sendRawTransaction")
        logger.info("submitted transaction %s to %s", tx_hash, to)
        return tx_hash

    async def wait_for_receipt(self, tx_hash: str) -> JsonDict:
        """Poll for the receipt of a broadcast transaction.

        Unreachable endpoints are retried until ``confirmation_timeout``;
        every failure raised here carries ``tx_hash``.
        """
        deadline = time.monotonic() + self.config.confirmation_timeout
        last_error: Optional[NetworkError] = None
        while True:
            try:
                receipt = await self.pool.read("eth_getTransactionReceipt", [tx_hash])
            except NetworkError as exc:
                receipt = None
                last_error = exc
                logger.warning("receipt poll for %s failed: %s", tx_hash, exc)
            except RpcError as exc:
                raise TransactionFailure(
                    f"receipt lookup for transaction {tx_hash} failed: {exc}", tx_hash=tx_hash
                ) from exc
            else:
                last_error = None
            if receipt:
                status = receipt.get("status")
                if status is not None and int(status, 16) != 1:
                    raise TransactionFailure(
                        f"transaction {tx_hash} reverted (status {status})", tx_hash=tx_hash
                    )
                return receipt
            if time.monotonic() >= deadline:
                message = f"timed out waiting for transaction {tx_hash} to be mined"
                if last_error is not None:
                    message = f"{message}; last error: {last_error}"
                raise TransactionFailure(message, tx_hash=tx_hash) from last_error
            await asyncio.sleep(self.config.poll_interval)

    async def approve(self, token: TokenDescriptor, spender: str, amount: int) -> JsonDict:
        """Approve ``spender`` and block until the approval is mined."""
        if _is_native(token.address):
            raise ValueError("the native coin does not use allowances")
        tx_hash = await self.send_transaction(token.address, abi.APPROVE.encode(spender, amount))
        return await self.wait_for_receipt(tx_hash)

    async def pay(self, token_address: str, url: str, max_amount: int, hours: int) -> TransactionOutcome:
        """Submit ``sign`` on the zap, wait for it, and decode the ``Signed`` event.

        The native coin is sent as value; ERC-20 tokens rely on a prior allowance.
        """
        value = max_amount if _is_native(token_address) else 0
        data = abi.SIGN.encode(token_address, url, max_amount, hours)
        tx_hash = await self.send_transaction(self.config.zap_contract, data, value=value)
        receipt = await self.wait_for_receipt(tx_hash)
        block_number = _hex_to_int(receipt.get("blockNumber"), field="block number")

        spend: Optional[SpendDetail] = None
        decode_error: Optional[str] = None
        try:
            spend = self.decode_payment_event(receipt)
        except EventDecodeError as exc:
            decode_error = str(exc)
            logger.warning("transaction %s confirmed but event decoding failed: %s", tx_hash, exc)

        return TransactionOutcome(
            tx_hash=tx_hash, block_number=block_number, spend=spend, decode_error=decode_error
        )

    def decode_payment_event(self, receipt: JsonDict) -> SpendDetail:
        return abi.find_signed_event(receipt)
