"""
Midtrans payment gateway client.

Snap API creates checkout tokens; the Core API status endpoint lets us
confirm a payment server-side. Both authenticate with HTTP Basic
(server key as username, empty password).
"""
import hashlib
import hmac
import logging
from typing import Any, Dict, Optional

import httpx

from app.config import settings
from app.exceptions import PaymentGatewayError
from app.models.settings import MidtransConfig

logger = logging.getLogger(__name__)

SNAP_BASE_URLS = {
    True: "https://app.midtrans.com",
    False: "https://app.sandbox.midtrans.com",
}
API_BASE_URLS = {
    True: "https://api.midtrans.com",
    False: "https://api.sandbox.midtrans.com",
}


def compute_signature(order_id: str, status_code: str, gross_amount: str, server_key: str) -> str:
    """SHA-512 of order_id + status_code + gross_amount + server_key (hex)."""
    payload = f"{order_id}{status_code}{gross_amount}{server_key}"
    return hashlib.sha512(payload.encode("utf-8")).hexdigest()


def verify_signature(
    order_id: str,
    status_code: str,
    gross_amount: str,
    server_key: str,
    signature: str
) -> bool:
    expected = compute_signature(order_id, status_code, gross_amount, server_key)
    return hmac.compare_digest(expected, signature.strip().lower())


class MidtransClient:
    """Thin async client over the Midtrans Snap and Core APIs."""

    def __init__(self, config: MidtransConfig, http_client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self._http_client = http_client

    @property
    def snap_base_url(self) -> str:
        return SNAP_BASE_URLS[self.config.is_production]

    @property
    def api_base_url(self) -> str:
        return API_BASE_URLS[self.config.is_production]

    async def _request(
        self,
        method: str,
        url: str,
        extra_headers: Optional[Dict[str, str]] = None,
        **kwargs
    ) -> Dict[str, Any]:
        auth = httpx.BasicAuth(self.config.server_key, "")
        headers = {"Accept": "application/json", **(extra_headers or {})}
        try:
            if self._http_client is not None:
                response = await self._http_client.request(method, url, auth=auth, headers=headers, **kwargs)
            else:
                async with httpx.AsyncClient(timeout=settings.midtrans_timeout) as client:
                    response = await client.request(method, url, auth=auth, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Midtrans request failed: {method} {url}: {e}")
            raise PaymentGatewayError(f"Payment gateway unreachable: {e}") from e

        if response.status_code >= 400:
            logger.error(f"Midtrans API error {response.status_code}: {response.text[:300]}")
            raise PaymentGatewayError(f"Payment gateway error ({response.status_code})")
        return response.json()

    async def create_snap_transaction(
        self,
        order_id: str,
        gross_amount: int,
        item_id: str,
        item_name: str,
        customer_email: str
    ) -> Dict[str, Any]:
        """
        Create a Snap checkout.

        Returns:
            Dict with `token` and `redirect_url`
        """
        base = settings.public_base_url.rstrip("/")
        payload = {
            "transaction_details": {"order_id": order_id, "gross_amount": gross_amount},
            "item_details": [
                {"id": item_id, "price": gross_amount, "quantity": 1, "name": item_name}
            ],
            "customer_details": {"email": customer_email},
            "callbacks": {
                "finish": f"{base}/topup/success",
                "error": f"{base}/topup/error",
                "pending": f"{base}/topup/pending",
            },
        }
        result = await self._request(
            "POST",
            f"{self.snap_base_url}/snap/v1/transactions",
            json=payload,
            extra_headers={"X-Override-Notification": f"{base}/api/midtrans/callback"}
        )
        if not result.get("token"):
            raise PaymentGatewayError("Payment gateway returned no token")
        logger.info(f"Snap transaction created for order {order_id}")
        return result

    async def get_status(self, order_id: str) -> Dict[str, Any]:
        """Current gateway status of an order (transaction_status, fraud_status, ...)."""
        return await self._request("GET", f"{self.api_base_url}/v2/{order_id}/status")
