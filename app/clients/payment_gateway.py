# app/clients/payment_gateway.py

import hashlib
import hmac
import logging
import time
from dataclasses import dataclass
from typing import Dict

import httpx

from app.core.config import settings
from app.core.exceptions import PaymentGatewayError
from app.models.payment import PaymentOutcome

logger = logging.getLogger(__name__)

# Intent statuses of the payment provider
INTENT_STATUS_MAP = {
    "succeeded": PaymentOutcome.SUCCEEDED,
    "canceled": PaymentOutcome.FAILED,
    "requires_payment_method": PaymentOutcome.PENDING,
    "requires_confirmation": PaymentOutcome.PENDING,
    "requires_action": PaymentOutcome.PENDING,
    "processing": PaymentOutcome.PENDING,
    "requires_capture": PaymentOutcome.PENDING,
}


@dataclass(frozen=True)
class PaymentIntent:
    intent_id: str
    client_secret: str | None
    status: PaymentOutcome


class PaymentGatewayClient:
    """
    Async client for the card payment provider's REST API
    (payment intents, form-encoded requests, bearer secret key).
    """
    def __init__(self, base_url: str, secret_key: str, currency: str = "usd"):
        self.currency = currency
        timeouts = httpx.Timeout(15.0, read=30.0)
        self.async_client = httpx.AsyncClient(
            base_url=base_url,
            headers={"Authorization": f"Bearer {secret_key}"},
            timeout=timeouts,
        )

    async def _request(self, method: str, endpoint: str, data: dict | None = None) -> dict:
        try:
            response = await self.async_client.request(method, endpoint, data=data)
            response.raise_for_status()
            return response.json()
        except httpx.RequestError as e:
            logger.error(f"Network error during {method} request to {e.request.url!r}.", exc_info=True)
            raise PaymentGatewayError() from e
        except httpx.HTTPStatusError as e:
            logger.error(f"HTTP error during {method} request to {e.request.url!r}: {e.response.text}", exc_info=True)
            raise PaymentGatewayError() from e

    async def create_intent(self, amount_cents: int, metadata: Dict[str, str]) -> PaymentIntent:
        """Creates a payment intent. Metadata is echoed back in webhook events."""
        data = {
            "amount": str(amount_cents),
            "currency": self.currency,
            "automatic_payment_methods[enabled]": "true",
        }
        for key, value in metadata.items():
            data[f"metadata[{key}]"] = str(value)

        payload = await self._request("POST", "/v1/payment_intents", data=data)
        return PaymentIntent(
            intent_id=payload["id"],
            client_secret=payload.get("client_secret"),
            status=INTENT_STATUS_MAP.get(payload.get("status"), PaymentOutcome.PENDING),
        )

    async def get_intent_status(self, intent_id: str) -> PaymentOutcome:
        payload = await self._request("GET", f"/v1/payment_intents/{intent_id}")
        status = INTENT_STATUS_MAP.get(payload.get("status"), PaymentOutcome.PENDING)
        logger.info(f"Payment intent {intent_id} status: {payload.get('status')} -> {status.value}")
        return status

    async def close(self):
        await self.async_client.aclose()


def compute_signature(secret: str, timestamp: str, raw_body: bytes) -> str:
    signed_payload = f"{timestamp}.".encode("utf-8") + raw_body
    return hmac.new(secret.encode("utf-8"), signed_payload, hashlib.sha256).hexdigest()


def verify_signature(
    raw_body: bytes,
    signature_header: str | None,
    secret: str,
    tolerance_seconds: int,
    now: float | None = None,
) -> bool:
    """
    Validates a `t=<unix>,v1=<hex>` signature header over "{t}.{body}".
    Old timestamps are refused to limit replays.
    """
    if not signature_header:
        return False

    parts: Dict[str, list] = {}
    for item in signature_header.split(","):
        key, _, value = item.strip().partition("=")
        parts.setdefault(key, []).append(value)

    timestamps = parts.get("t")
    signatures = parts.get("v1", [])
    if not timestamps or not signatures:
        return False

    timestamp = timestamps[0]
    try:
        issued_at = int(timestamp)
    except ValueError:
        return False
    if abs((now if now is not None else time.time()) - issued_at) > tolerance_seconds:
        return False

    expected = compute_signature(secret, timestamp, raw_body)
    return any(hmac.compare_digest(expected, candidate) for candidate in signatures)


payment_client = PaymentGatewayClient(
    base_url=settings.PAYMENT_API_URL,
    secret_key=settings.PAYMENT_SECRET_KEY,
    currency=settings.PAYMENT_CURRENCY,
)


def get_payment_client() -> PaymentGatewayClient:
    """FastAPI dependency; overridden in tests."""
    return payment_client
