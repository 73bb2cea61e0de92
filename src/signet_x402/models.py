"""Plain data records shared by the chain and HTTP paths."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class TokenDescriptor:
    symbol: str
    address: str
    decimals: int


@dataclass(frozen=True)
class QuoteResult:
    """Amounts returned by the zap contract's ``estimateSign``.

    ``from_token_amount`` is in the paying token's base units,
    ``secondary_token_required`` in HUNT base units (18 decimals).
    """

    from_token_amount: int
    secondary_token_required: int


@dataclass(frozen=True)
class SpendDetail:
    """Decoded ``Signed`` event."""

    payer: str
    token: str
    url: str
    amount_used: int
    secondary_amount_used: int
    guarantee_hours: int


@dataclass(frozen=True)
class TransactionOutcome:
    tx_hash: str
    block_number: int
    spend: Optional[SpendDetail] = None
    decode_error: Optional[str] = None


@dataclass(frozen=True)
class SpotlightStatus:
    available: bool
    remaining_seconds: int


@dataclass(frozen=True)
class SignatureRecord:
    index: int
    timestamp: int
    block_number: int
    user_wallet: str
    url: str
    hunt_amount: int
    signet_amount: int
    guarantee_hours: int
    title: Optional[str] = None
    view_count: Optional[int] = None
    click_count: Optional[int] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "SignatureRecord":
        metadata = payload.get("metadata") or {}
        return cls(
            index=int(payload["signatureIndex"]),
            timestamp=int(payload.get("timestamp") or 0),
            block_number=int(payload.get("blockNumber") or 0),
            user_wallet=str(payload.get("userWallet") or ""),
            url=str(payload.get("url") or ""),
            hunt_amount=int(payload.get("huntAmount") or 0),
            signet_amount=int(payload.get("signetAmount") or 0),
            guarantee_hours=int(payload.get("guaranteeHours") or 0),
            title=metadata.get("title") if isinstance(metadata, dict) else None,
            view_count=_optional_int(payload.get("viewCount")),
            click_count=_optional_int(payload.get("clickCount")),
        )


@dataclass(frozen=True)
class SpotlightEstimate:
    guarantee_hours: int
    settlement_amount: int
    settlement_decimals: int
    available: bool
    remaining_seconds: int


@dataclass(frozen=True)
class SpotlightReceipt:
    """Server acknowledgement of a paid spotlight placement."""

    tx_hash: Optional[str]
    block_number: Optional[int]
    spent_amount: Optional[str]
    url: Optional[str]
    guarantee_hours: Optional[int]
    signature_index: Optional[int] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "SpotlightReceipt":
        def pick(keys, default=None):
            for key in keys:
                if key in payload and payload[key] is not None:
                    return payload[key]
            return default

        spent = pick(["spentAmount", "usdcSpent", "spent_amount"])
        return cls(
            tx_hash=pick(["txHash", "tx_hash", "transaction"]),
            block_number=_optional_int(pick(["blockNumber", "block_number"])),
            spent_amount=str(spent) if spent is not None else None,
            url=pick(["url"]),
            guarantee_hours=_optional_int(pick(["guaranteeHours", "guarantee_hours"])),
            signature_index=_optional_int(pick(["signatureIndex", "signature_index"])),
            raw=dict(payload),
        )


def _optional_int(value: Any) -> Optional[int]:
    """Lenient integer parsing for server payloads; unparseable values become ``None``."""
    if value is None or isinstance(value, bool):
        return None
    try:
        if isinstance(value, str):
            text = value.strip()
            return int(text, 16) if text.lower().startswith("0x") else int(text)
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return None
