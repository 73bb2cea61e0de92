"""End-to-end spotlight operations composed from the core components."""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from .api import SignetApiClient
from .authorizer import AuthorizationEncoding, PaymentAuthorizer
from .errors import NetworkError
from .gateway import ChainGateway
from .models import SignatureRecord, SpotlightEstimate, SpotlightReceipt
from .negotiator import PaymentNegotiator
from .units import apply_bps, validate_guarantee_hours

logger = logging.getLogger(__name__)


async def estimate_spotlight(gateway: ChainGateway, hours: int) -> SpotlightEstimate:
    """Buffered settlement-token cost of a placement plus the current slot status."""
    validate_guarantee_hours(hours)
    config = gateway.config
    settlement = config.settlement
    quote, status = await asyncio.gather(
        gateway.estimate(settlement.address, hours),
        gateway.get_spotlight_status(),
    )
    return SpotlightEstimate(
        guarantee_hours=hours,
        settlement_amount=apply_bps(quote.from_token_amount, config.estimate_buffer_bps),
        settlement_decimals=settlement.decimals,
        available=status.available,
        remaining_seconds=status.remaining_seconds,
    )


async def post_spotlight(
    negotiator: PaymentNegotiator,
    authorizer: PaymentAuthorizer,
    url: str,
    hours: int,
    encoding: Optional[AuthorizationEncoding] = None,
) -> SpotlightReceipt:
    """Probe, authorize the first accepted requirement, and resubmit once."""
    outcome = await negotiator.negotiate(url, hours)
    if not outcome.payment_required:
        return SpotlightReceipt.from_payload(outcome.result or {})

    challenge = outcome.challenge
    authorization = authorizer.authorize(
        challenge.requirement, x402_version=challenge.x402_version, encoding=encoding
    )
    logger.info("submitting %s authorization for %s", authorization.encoding.value, url)
    return await negotiator.resubmit(url, hours, authorization)


async def recent_signatures(
    gateway: ChainGateway, api: SignetApiClient, count: int = 5
) -> List[SignatureRecord]:
    """The last ``count`` signatures, newest first.

    Records come from the Signet API, which carries titles and view counts;
    the registry itself is read when the API is unreachable.
    """
    if count < 1:
        raise ValueError("count must be at least 1")
    total = await gateway.get_signature_count()
    if total == 0:
        return []

    end = total - 1
    start = max(0, end - count + 1)
    try:
        payload = await api.fetch_signatures(start, end)
        records = [SignatureRecord.from_payload(item) for item in payload.get("signatures") or []]
    except (NetworkError, AttributeError, KeyError, TypeError, ValueError) as exc:
        logger.warning("signature list API failed, reading the registry instead: %s", exc)
        records = await gateway.get_signature_list(start, end)

    return sorted(records, key=lambda record: record.index, reverse=True)
