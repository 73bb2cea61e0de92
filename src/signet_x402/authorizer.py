"""Payment authorizations for x402 resubmission."""

from __future__ import annotations

import base64
import json
import secrets
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from eth_account import Account
from eth_account.messages import encode_typed_data

from .constants import (
    DEFAULT_USDC_DOMAIN,
    KNOWN_TOKENS,
    PAYMENT_HEADER,
    PAYMENT_SIGNATURE_HEADER,
    Eip712Domain,
    find_token_by_address,
    resolve_chain_id,
)
from .errors import InvalidRequirement, SigningFailed
from .models import TokenDescriptor
from .units import parse_units

JsonDict = Dict[str, Any]

DEFAULT_X402_VERSION = 2
ENVELOPE_DEFAULT_TIMEOUT = 300
TRANSFER_DEFAULT_TIMEOUT = 3600
DEFAULT_ASSET_DECIMALS = 6

TRANSFER_WITH_AUTHORIZATION_TYPES = {
    "EIP712Domain": [
        {"name": "name", "type": "string"},
        {"name": "version", "type": "string"},
        {"name": "chainId", "type": "uint256"},
        {"name": "verifyingContract", "type": "address"},
    ],
    "TransferWithAuthorization": [
        {"name": "from", "type": "address"},
        {"name": "to", "type": "address"},
        {"name": "value", "type": "uint256"},
        {"name": "validAfter", "type": "uint256"},
        {"name": "validBefore", "type": "uint256"},
        {"name": "nonce", "type": "bytes32"},
    ],
}


class AuthorizationEncoding(str, Enum):
    ENVELOPE = "envelope"
    TRANSFER_AUTHORIZATION = "transfer-authorization"


ENCODING_BY_SCHEME: Dict[str, AuthorizationEncoding] = {
    "exact": AuthorizationEncoding.TRANSFER_AUTHORIZATION,
}

HEADER_NAMES: Dict[AuthorizationEncoding, Tuple[str, ...]] = {
    AuthorizationEncoding.ENVELOPE: (PAYMENT_SIGNATURE_HEADER,),
    AuthorizationEncoding.TRANSFER_AUTHORIZATION: (PAYMENT_HEADER, PAYMENT_SIGNATURE_HEADER),
}


@dataclass(frozen=True)
class TransferAuthorization:
    """EIP-3009 ``TransferWithAuthorization`` message."""

    from_address: str
    to_address: str
    value: str
    valid_after: int
    valid_before: int
    nonce: str

    def to_json(self) -> JsonDict:
        return {
            "from": self.from_address,
            "to": self.to_address,
            "value": self.value,
            "validAfter": str(self.valid_after),
            "validBefore": str(self.valid_before),
            "nonce": self.nonce,
        }

    def to_message(self) -> JsonDict:
        return {
            "from": self.from_address,
            "to": self.to_address,
            "value": int(self.value),
            "validAfter": self.valid_after,
            "validBefore": self.valid_before,
            "nonce": self.nonce,
        }


@dataclass(frozen=True)
class SignedPaymentAuthorization:
    """A single-use payment authorization ready to attach to a request."""

    x402_version: int
    scheme: str
    network: str
    encoding: AuthorizationEncoding
    payload: JsonDict
    nonce: str

    def document(self) -> JsonDict:
        if self.encoding is AuthorizationEncoding.ENVELOPE:
            return dict(self.payload)
        return {
            "x402Version": self.x402_version,
            "scheme": self.scheme,
            "network": self.network,
            "payload": self.payload,
        }

    @property
    def header_value(self) -> str:
        encoded = json.dumps(self.document(), separators=(",", ":"), sort_keys=False)
        return base64.b64encode(encoded.encode("utf-8")).decode("utf-8")

    def headers(self) -> Dict[str, str]:
        value = self.header_value
        return {name: value for name in HEADER_NAMES[self.encoding]}


def _requirement_fields(requirement: Any) -> JsonDict:
    if hasattr(requirement, "model_dump"):
        return requirement.model_dump(by_alias=True, exclude_none=True)
    if isinstance(requirement, Mapping):
        return dict(requirement)
    raise TypeError("payment requirement must be a dict or pydantic model")


def _first_present(data: JsonDict, *options: str) -> Optional[Any]:
    for key in options:
        value = data.get(key)
        if value is not None and value != "":
            return value
    return None


class PaymentAuthorizer:
    """Builds payment authorizations for a signing identity.

    The encoding is picked per call: explicitly, or from the requirement's
    scheme (``exact`` signs an EIP-3009 transfer authorization; anything else
    gets the unsigned envelope).
    """

    def __init__(
        self,
        account: Any,
        default_domain: Eip712Domain = DEFAULT_USDC_DOMAIN,
        tokens: Mapping[str, TokenDescriptor] = KNOWN_TOKENS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._account = account
        self._default_domain = default_domain
        self._tokens = dict(tokens)
        self._clock = clock
        self._builders = {
            AuthorizationEncoding.ENVELOPE: self._build_envelope,
            AuthorizationEncoding.TRANSFER_AUTHORIZATION: self._build_transfer_authorization,
        }

    @classmethod
    def from_private_key(cls, private_key: str, **kwargs: Any) -> "PaymentAuthorizer":
        try:
            account = Account.from_key(private_key)
        except Exception as exc:
            raise SigningFailed(f"invalid private key: {exc}") from exc
        return cls(account, **kwargs)

    @property
    def account(self) -> Any:
        return self._account

    @property
    def address(self) -> str:
        return self._account.address

    def authorize(
        self,
        requirement: Any,
        x402_version: int = DEFAULT_X402_VERSION,
        encoding: Optional[AuthorizationEncoding] = None,
    ) -> SignedPaymentAuthorization:
        fields = _requirement_fields(requirement)
        for label, keys in (
            ("network", ("network",)),
            ("amount", ("amount", "maxAmountRequired")),
            ("payTo", ("payTo", "pay_to")),
        ):
            if _first_present(fields, *keys) is None:
                raise InvalidRequirement(f"payment requirement missing {label}")

        if encoding is None:
            scheme = str(fields.get("scheme") or "").lower()
            encoding = ENCODING_BY_SCHEME.get(scheme, AuthorizationEncoding.ENVELOPE)
        return self._builders[AuthorizationEncoding(encoding)](fields, x402_version)

    def prepare_transfer_authorization(self, requirement: Any) -> TransferAuthorization:
        """Unsigned EIP-3009 message for ``requirement``."""
        fields = _requirement_fields(requirement)
        now = int(self._clock())
        timeout = self._timeout(fields, TRANSFER_DEFAULT_TIMEOUT)
        return TransferAuthorization(
            from_address=self.address,
            to_address=str(_first_present(fields, "payTo", "pay_to")),
            value=str(self._amount_base_units(fields)),
            valid_after=0,
            valid_before=now + timeout,
            nonce="0x" + secrets.token_bytes(32).hex(),
        )

    # ------------------------------------------------------------------

    def _build_envelope(self, fields: JsonDict, x402_version: int) -> SignedPaymentAuthorization:
        now = self._clock()
        timeout = self._timeout(fields, ENVELOPE_DEFAULT_TIMEOUT)
        nonce = hex(int(now * 1000))
        record = {
            "x402Version": x402_version,
            "scheme": fields.get("scheme"),
            "network": fields["network"],
            "asset": fields.get("asset"),
            "amount": str(_first_present(fields, "amount", "maxAmountRequired")),
            "payTo": _first_present(fields, "payTo", "pay_to"),
            "from": self.address,
            "maxTimeoutSeconds": fields.get("maxTimeoutSeconds"),
            "deadline": int(now) + timeout,
            "nonce": nonce,
        }
        return SignedPaymentAuthorization(
            x402_version=x402_version,
            scheme=str(fields.get("scheme") or ""),
            network=str(fields["network"]),
            encoding=AuthorizationEncoding.ENVELOPE,
            payload=record,
            nonce=nonce,
        )

    def _build_transfer_authorization(
        self, fields: JsonDict, x402_version: int
    ) -> SignedPaymentAuthorization:
        authorization = self.prepare_transfer_authorization(fields)
        domain = self._domain_for(fields)
        typed_data = {
            "types": TRANSFER_WITH_AUTHORIZATION_TYPES,
            "primaryType": "TransferWithAuthorization",
            "domain": domain,
            "message": authorization.to_message(),
        }
        try:
            signable = encode_typed_data(full_message=typed_data)
            signed = self._account.sign_message(signable)
        except Exception as exc:
            raise SigningFailed(f"could not sign transfer authorization: {exc}") from exc

        return SignedPaymentAuthorization(
            x402_version=x402_version,
            scheme=str(fields.get("scheme") or "exact"),
            network=str(fields["network"]),
            encoding=AuthorizationEncoding.TRANSFER_AUTHORIZATION,
            payload={
                "signature": "0x" + bytes(signed.signature).hex(),
                "authorization": authorization.to_json(),
            },
            nonce=authorization.nonce,
        )

    def _timeout(self, fields: JsonDict, default: int) -> int:
        raw = _first_present(fields, "maxTimeoutSeconds", "max_timeout_seconds")
        try:
            timeout = int(raw) if raw is not None else 0
        except (TypeError, ValueError) as exc:
            raise InvalidRequirement(f"invalid maxTimeoutSeconds: {raw!r}") from exc
        return timeout if timeout > 0 else default

    def _amount_base_units(self, fields: JsonDict) -> int:
        raw = str(_first_present(fields, "amount", "maxAmountRequired")).strip()
        try:
            if "." in raw:
                token = find_token_by_address(str(fields.get("asset") or ""), self._tokens)
                decimals = token.decimals if token else DEFAULT_ASSET_DECIMALS
                return parse_units(raw, decimals)
            amount = int(raw, 16) if raw.lower().startswith("0x") else int(raw)
        except ValueError as exc:
            raise InvalidRequirement(f"invalid payment amount {raw!r}: {exc}") from exc
        if amount < 0:
            raise InvalidRequirement("payment amount must be non-negative")
        return amount

    def _domain_for(self, fields: JsonDict) -> JsonDict:
        extra = fields.get("extra") or {}
        domain = extra.get("eip712Domain")
        try:
            if isinstance(domain, Mapping):
                chain_id = domain["chainId"]
                return {
                    "name": str(domain["name"]),
                    "version": str(domain["version"]),
                    "chainId": int(chain_id, 0) if isinstance(chain_id, str) else int(chain_id),
                    "verifyingContract": str(domain["verifyingContract"]),
                }
            if extra.get("name") and extra.get("version") and fields.get("asset"):
                return {
                    "name": str(extra["name"]),
                    "version": str(extra["version"]),
                    "chainId": resolve_chain_id(str(fields["network"])),
                    "verifyingContract": str(fields["asset"]),
                }
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidRequirement(f"invalid EIP-712 domain in requirement: {exc}") from exc
        return dict(self._default_domain)
