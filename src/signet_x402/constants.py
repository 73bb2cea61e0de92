"""Shared constants for the Signet spotlight integration."""

from __future__ import annotations

from typing import Dict, List, Tuple, TypedDict

from .errors import UnknownToken
from .models import TokenDescriptor


BASE_CHAIN_ID = 8453
BASE_NETWORK = "eip155:8453"

DEFAULT_BASE_URL = "https://signet.sebayaki.com"

DEFAULT_RPC_URLS: List[str] = [
    "https://mainnet.base.org",
    "https://base.llamarpc.com",
    "https://base-rpc.publicnode.com",
]

SIGNET_CONTRACT = "0xd53A6Ff418a5647704032089F64D9f0c5Ac958B0"
ZAP_CONTRACT = "0x7321e0f77F69C6944C45be683b60265C17bd4a73"

NATIVE_TOKEN_ADDRESS = "0x0000000000000000000000000000000000000000"
HUNT_ADDRESS = "0x37f0c2915CeCC7e977183B8543Fc0864d03E064C"
MT_ADDRESS = "0xFf45161474C39cB00699070Dd49582e417b57a7E"
USDC_ADDRESS = "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"

HUNT_DECIMALS = 18
MAX_UINT256 = 2**256 - 1

KNOWN_TOKENS: Dict[str, TokenDescriptor] = {
    "eth": TokenDescriptor(symbol="eth", address=NATIVE_TOKEN_ADDRESS, decimals=18),
    "hunt": TokenDescriptor(symbol="hunt", address=HUNT_ADDRESS, decimals=HUNT_DECIMALS),
    "mt": TokenDescriptor(symbol="mt", address=MT_ADDRESS, decimals=18),
    "usdc": TokenDescriptor(symbol="usdc", address=USDC_ADDRESS, decimals=6),
}

SETTLEMENT_TOKEN = "usdc"
AUTO_TOKEN = "auto"
DEFAULT_TOKEN_PRIORITY: Tuple[str, ...] = ("hunt", "usdc", "eth", "mt")

# Server-side price buffer applied to settlement estimates.
ESTIMATE_BUFFER_BPS = 500

DEFAULT_SLIPPAGE_PERCENT = 5.0
MAX_SLIPPAGE_PERCENT = 50.0

PAYMENT_HEADER = "X-PAYMENT"
PAYMENT_SIGNATURE_HEADER = "PAYMENT-SIGNATURE"

EVM_CHAIN_IDS: Dict[str, int] = {
    "base": BASE_CHAIN_ID,
    "base-sepolia": 84_532,
}


class Eip712Domain(TypedDict):
    name: str
    version: str
    chainId: int
    verifyingContract: str


DEFAULT_USDC_DOMAIN: Eip712Domain = {
    "name": "USD Coin",
    "version": "2",
    "chainId": BASE_CHAIN_ID,
    "verifyingContract": USDC_ADDRESS,
}


def get_token(symbol: str, tokens: Dict[str, TokenDescriptor] | None = None) -> TokenDescriptor:
    table = KNOWN_TOKENS if tokens is None else tokens
    try:
        return table[symbol.strip().lower()]
    except KeyError as exc:
        raise UnknownToken(symbol, sorted(table)) from exc


def find_token_by_address(
    address: str, tokens: Dict[str, TokenDescriptor] | None = None
) -> TokenDescriptor | None:
    table = KNOWN_TOKENS if tokens is None else tokens
    lowered = address.lower()
    for token in table.values():
        if token.address.lower() == lowered:
            return token
    return None


def resolve_chain_id(network: str) -> int:
    """Map a CAIP-2 (``eip155:8453``) or legacy (``base``) network name to a chain id."""
    lowered = network.strip().lower()
    if lowered.startswith("eip155:"):
        try:
            return int(lowered.split(":", 1)[1])
        except ValueError as exc:
            raise ValueError(f"invalid CAIP-2 network identifier {network!r}") from exc
    if lowered not in EVM_CHAIN_IDS:
        raise ValueError(f"unsupported network {network!r}")
    return EVM_CHAIN_IDS[lowered]
