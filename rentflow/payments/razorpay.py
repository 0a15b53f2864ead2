from __future__ import annotations

import hashlib
import hmac
import logging

import httpx

from rentflow.exceptions import PaymentGatewayError, PaymentGatewayUnavailableError
from rentflow.settings import Settings

logger = logging.getLogger(__name__)


class RazorpayGateway:
    """Creates Razorpay orders and checks checkout signatures."""

    name = "razorpay"

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None) -> None:
        self.settings = settings
        self._client = client

    @property
    def configured(self) -> bool:
        return self.settings.razorpay_configured

    @property
    def key_id(self) -> str:
        return self.settings.razorpay_key_id

    async def create_order(self, amount: int, currency: str, receipt: str, notes: dict[str, str]) -> str:
        """Create an order for ``amount`` paise and return its id."""
        if not self.configured:
            raise PaymentGatewayUnavailableError("Payment provider not configured")

        s = self.settings
        url = f"{s.razorpay_api_url.rstrip('/')}/orders"
        payload = {"amount": amount, "currency": currency, "receipt": receipt[:40], "notes": notes}
        try:
            if self._client is not None:
                response = await self._client.post(url, json=payload, auth=(s.razorpay_key_id, s.razorpay_key_secret))
            else:
                async with httpx.AsyncClient(timeout=s.provider_timeout) as client:
                    response = await client.post(url, json=payload, auth=(s.razorpay_key_id, s.razorpay_key_secret))
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise PaymentGatewayError(
                f"razorpay returned {exc.response.status_code}: {exc.response.text[:200]}"
            ) from exc
        except httpx.HTTPError as exc:
            raise PaymentGatewayError(f"razorpay request failed: {exc}") from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise PaymentGatewayError(f"razorpay returned a non-JSON body: {response.text[:200]}") from exc
        order_id = data.get("id") if isinstance(data, dict) else None
        if not order_id:
            raise PaymentGatewayError(f"razorpay returned no order id: {response.text[:200]}")

        logger.info("Razorpay order %s created for %s (%d paise)", order_id, receipt, amount)
        return order_id

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        """HMAC-SHA256 of 'order_id|payment_id' keyed with the API secret."""
        if not self.configured:
            return False
        expected = hmac.new(
            self.settings.razorpay_key_secret.encode(),
            f"{order_id}|{payment_id}".encode(),
            hashlib.sha256,
        ).hexdigest()
        return hmac.compare_digest(expected, signature)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()


def build_payment_gateway(settings: Settings) -> RazorpayGateway:
    return RazorpayGateway(settings, httpx.AsyncClient(timeout=settings.provider_timeout))
