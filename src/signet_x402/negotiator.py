"""x402 challenge/response negotiation for the spotlight endpoint."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

import httpx
from pydantic import ValidationError
from x402.schemas import PaymentRequirements

from .api import SignetApiClient
from .authorizer import SignedPaymentAuthorization
from .errors import (
    AuthorizationReused,
    MalformedRequirement,
    PaymentRejected,
    ProtocolViolation,
)
from .models import SpotlightReceipt
from .units import validate_guarantee_hours

logger = logging.getLogger(__name__)

JsonDict = Dict[str, Any]

PAYMENT_REQUIRED_STATUS = 402
DEFAULT_X402_VERSION = 2
DEFAULT_MAX_TIMEOUT_SECONDS = 300


@dataclass(frozen=True)
class PaymentChallenge:
    """Parsed body of a 402 response."""

    x402_version: int
    accepts: List[PaymentRequirements]
    resource: Optional[JsonDict] = None
    error: Optional[str] = None

    @property
    def requirement(self) -> PaymentRequirements:
        return self.accepts[0]


@dataclass(frozen=True)
class NegotiationOutcome:
    """Either a challenge to pay, or the result of a request that needed no payment."""

    challenge: Optional[PaymentChallenge] = None
    result: Optional[JsonDict] = field(default=None)

    @property
    def payment_required(self) -> bool:
        return self.challenge is not None


def _parse_requirement(raw: Any) -> PaymentRequirements:
    if not isinstance(raw, dict):
        raise MalformedRequirement(f"payment requirement must be an object, got {type(raw).__name__}")
    data = dict(raw)
    if "amount" not in data and "maxAmountRequired" in data:
        data["amount"] = data["maxAmountRequired"]
    if data.get("maxTimeoutSeconds") is None and data.get("max_timeout_seconds") is None:
        data["maxTimeoutSeconds"] = DEFAULT_MAX_TIMEOUT_SECONDS
    if data.get("extra") is None:
        data.pop("extra", None)
    try:
        return PaymentRequirements.model_validate(data)
    except ValidationError as exc:
        raise MalformedRequirement(f"invalid payment requirement: {exc}", body=raw) from exc


def parse_payment_required(body: Any) -> PaymentChallenge:
    """Accept ``{x402Version, accepts}``, a bare list, or a single requirement object."""
    version = DEFAULT_X402_VERSION
    resource = None
    error = None
    if isinstance(body, list):
        raw_accepts: Any = body
    elif isinstance(body, dict) and "accepts" in body:
        raw_accepts = body.get("accepts")
        version = int(body.get("x402Version") or DEFAULT_X402_VERSION)
        resource = body.get("resource") if isinstance(body.get("resource"), dict) else None
        error = body.get("error")
    elif isinstance(body, dict) and ("payTo" in body or "network" in body):
        raw_accepts = [body]
        version = int(body.get("x402Version") or DEFAULT_X402_VERSION)
    else:
        raise MalformedRequirement("402 response does not describe any payment requirement", body=body)

    if not isinstance(raw_accepts, list) or not raw_accepts:
        raise MalformedRequirement("402 response carries no accepted payment options", body=body)

    accepts = [_parse_requirement(item) for item in raw_accepts]
    return PaymentChallenge(x402_version=version, accepts=accepts, resource=resource, error=error)


def _json_or_none(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def _rejection_reason(response: httpx.Response) -> str:
    payload = _json_or_none(response)
    if isinstance(payload, dict) and payload.get("error"):
        return str(payload["error"])
    return response.text or "Unknown error"


class PaymentNegotiator:
    """Drives the 402 handshake for spotlight placements.

    ``negotiate`` only probes and has no side effects. ``resubmit`` sends a
    given authorization exactly once and never loops on a second 402.
    """

    def __init__(self, api: SignetApiClient) -> None:
        self._api = api
        self._submitted: Set[str] = set()

    async def negotiate(self, target_url: str, hours: int) -> NegotiationOutcome:
        validate_guarantee_hours(hours, minimum=0)
        response = await self._api.post_spotlight(target_url, hours)

        if response.is_success:
            logger.info("spotlight accepted without payment (status %d)", response.status_code)
            payload = _json_or_none(response)
            return NegotiationOutcome(result=payload if isinstance(payload, dict) else {})

        if response.status_code != PAYMENT_REQUIRED_STATUS:
            raise ProtocolViolation(
                f"expected 402 Payment Required, got {response.status_code}",
                status=response.status_code,
                body=response.text,
            )

        body = _json_or_none(response)
        if body is None:
            raise MalformedRequirement("402 response body is not JSON", status=402, body=response.text)
        challenge = parse_payment_required(body)
        requirement = challenge.requirement
        logger.info(
            "payment required: %s %s on %s to %s",
            requirement.amount,
            requirement.asset,
            requirement.network,
            requirement.pay_to,
        )
        return NegotiationOutcome(challenge=challenge)

    async def resubmit(
        self, target_url: str, hours: int, authorization: SignedPaymentAuthorization
    ) -> SpotlightReceipt:
        validate_guarantee_hours(hours, minimum=0)
        if authorization.nonce in self._submitted:
            raise AuthorizationReused(f"authorization {authorization.nonce} was already submitted")
        self._submitted.add(authorization.nonce)

        response = await self._api.post_spotlight(
            target_url, hours, headers=authorization.headers()
        )

        if response.status_code == PAYMENT_REQUIRED_STATUS:
            reason = _rejection_reason(response)
            logger.warning("payment rejected by server: %s", reason)
            raise PaymentRejected(reason)

        if not response.is_success:
            raise ProtocolViolation(
                f"payment submission failed with status {response.status_code}",
                status=response.status_code,
                body=response.text,
            )

        payload = _json_or_none(response)
        if not isinstance(payload, dict):
            raise ProtocolViolation(
                "payment accepted but response body is not a JSON object",
                status=response.status_code,
                body=response.text,
            )
        return SpotlightReceipt.from_payload(payload)
