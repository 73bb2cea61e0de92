"""Fixed contract surface of the Signet registry, the zap and ERC-20 tokens."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Sequence, Tuple

from eth_abi import decode as abi_decode
from eth_abi import encode as abi_encode
from eth_abi.exceptions import DecodingError
from eth_utils import decode_hex, function_signature_to_4byte_selector, keccak, to_checksum_address

from .errors import EventDecodeError
from .models import SpendDetail

SIGNATURE_TUPLE = "(uint48,uint48,address,string,uint96,uint96,uint8)"


@dataclass(frozen=True)
class ContractFunction:
    name: str
    inputs: Tuple[str, ...] = ()
    outputs: Tuple[str, ...] = ()

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(self.inputs)})"

    @property
    def selector(self) -> bytes:
        return function_signature_to_4byte_selector(self.signature)

    def encode(self, *args: Any) -> str:
        if len(args) != len(self.inputs):
            raise ValueError(f"{self.signature} expects {len(self.inputs)} arguments, got {len(args)}")
        return "0x" + (self.selector + abi_encode(list(self.inputs), list(args))).hex()

    def decode(self, data: str | bytes) -> Tuple[Any, ...]:
        raw = decode_hex(data) if isinstance(data, str) else data
        if not raw:
            raise ValueError(f"empty return data for {self.signature}")
        try:
            return tuple(abi_decode(list(self.outputs), raw))
        except DecodingError as exc:
            raise ValueError(f"could not decode {self.signature} result: {exc}") from exc


# Signet registry
GET_SIGNATURE_COUNT = ContractFunction("getSignatureCount", (), ("uint256",))
GET_SIGNATURE_LIST = ContractFunction(
    "getSignatureList", ("uint256", "uint256"), (f"{SIGNATURE_TUPLE}[]",)
)
IS_SPOTLIGHT_AVAILABLE = ContractFunction("isSpotlightAvailable", (), ("bool",))
GET_SPOTLIGHT_REMAINING_TIME = ContractFunction("getSpotlightRemainingTime", (), ("uint256",))

# Zap
ESTIMATE_SIGN = ContractFunction("estimateSign", ("address", "uint8"), ("uint256", "uint256"))
SIGN = ContractFunction("sign", ("address", "string", "uint256", "uint8"), ("uint256",))

# ERC-20
BALANCE_OF = ContractFunction("balanceOf", ("address",), ("uint256",))
ALLOWANCE = ContractFunction("allowance", ("address", "address"), ("uint256",))
APPROVE = ContractFunction("approve", ("address", "uint256"), ("bool",))


@dataclass(frozen=True)
class ContractEvent:
    name: str
    data: Tuple[str, ...]
    # Every argument in ABI order, indexed ones included.
    inputs: Tuple[str, ...]

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(self.inputs)})"

    @property
    def topic(self) -> str:
        return "0x" + keccak(text=self.signature).hex()


SIGNED_EVENT = ContractEvent(
    name="Signed",
    data=("string", "uint256", "uint256", "uint8"),
    inputs=("address", "address", "string", "uint256", "uint256", "uint8"),
)


def _topic_to_address(topic: str | bytes) -> str:
    raw = decode_hex(topic) if isinstance(topic, str) else bytes(topic)
    if len(raw) != 32:
        raise ValueError("indexed address topic must be 32 bytes")
    return to_checksum_address(raw[-20:])


def decode_signed_log(log: Dict[str, Any]) -> SpendDetail:
    topics: Sequence[Any] = log.get("topics") or []
    if len(topics) != 3:
        raise ValueError("Signed event carries exactly three topics")
    topic0 = topics[0] if isinstance(topics[0], str) else "0x" + bytes(topics[0]).hex()
    if topic0.lower() != SIGNED_EVENT.topic.lower():
        raise ValueError("log topic does not match Signed event")
    url, amount_used, secondary_used, hours = abi_decode(
        list(SIGNED_EVENT.data), decode_hex(log.get("data") or "0x")
    )
    return SpendDetail(
        payer=_topic_to_address(topics[1]),
        token=_topic_to_address(topics[2]),
        url=url,
        amount_used=int(amount_used),
        secondary_amount_used=int(secondary_used),
        guarantee_hours=int(hours),
    )


def find_signed_event(receipt: Dict[str, Any]) -> SpendDetail:
    """Decode the first ``Signed`` log of a transaction receipt."""
    last_error = "receipt contains no logs"
    for log in receipt.get("logs") or []:
        try:
            return decode_signed_log(log)
        except (ValueError, TypeError, DecodingError) as exc:
            last_error = str(exc)
            continue
    raise EventDecodeError(f"could not decode Signed event: {last_error}")
