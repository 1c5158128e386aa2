"""
Khalti wallet gateway

Redirect-based ePayment flow: ``initiate`` returns a ``pidx`` and a payment
page URL; after the customer pays, Khalti redirects to our callback with the
``pidx``, which must be confirmed with ``lookup`` before it is trusted.
"""

import logging
import os
from dataclasses import dataclass
from typing import Any

from karya.shared.base_client import BaseAPIClient
from karya.shared.errors import ExternalProviderError

logger = logging.getLogger(__name__)

KHALTI_DEFAULT_BASE = "https://dev.khalti.com/api/v2"
LOOKUP_COMPLETED = "Completed"
LOOKUP_PENDING = "Pending"
# Khalti treats these as still in flight
LOOKUP_IN_PROGRESS = {LOOKUP_PENDING, "Initiated"}


@dataclass
class WalletInitiation:
    transaction_id: str
    redirect_url: str


class KhaltiClient(BaseAPIClient):
    """Wallet payments through the Khalti ePayment API."""

    provider_name = "khalti"

    def __init__(
        self,
        secret_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
    ):
        super().__init__(
            base_url=base_url or os.getenv("KHALTI_BASE_URL", KHALTI_DEFAULT_BASE),
            timeout=timeout or float(os.getenv("EXTERNAL_TIMEOUT_SECONDS", "15")),
        )
        self.secret_key = secret_key or os.getenv("KHALTI_SECRET_KEY")

    def _get_headers(self) -> dict[str, str]:
        if not self.secret_key:
            raise ExternalProviderError(self.provider_name, "secret key not configured")
        return {"Authorization": f"Key {self.secret_key}", "Content-Type": "application/json"}

    def initiate(
        self,
        amount_minor: int,
        order_id: str,
        order_name: str,
        return_url: str,
        website_url: str,
        customer_info: dict[str, Any],
    ) -> WalletInitiation:
        """Start a wallet payment of ``amount_minor`` paisa."""
        payload = {
            "return_url": return_url,
            "website_url": website_url,
            "amount": amount_minor,
            "purchase_order_id": order_id,
            "purchase_order_name": order_name,
            "customer_info": customer_info,
            "amount_breakdown": [{"label": "Base Price", "amount": amount_minor}],
            "product_details": [
                {
                    "identity": order_id,
                    "name": order_name,
                    "total_price": amount_minor,
                    "quantity": 1,
                    "unit_price": amount_minor,
                }
            ],
        }
        data = self._request("POST", "/epayment/initiate/", json=payload)
        if not data.get("pidx") or not data.get("payment_url"):
            logger.error(f"Khalti initiate response missing pidx/payment_url: keys={sorted(data)}")
            raise ExternalProviderError(self.provider_name, "initiate response incomplete")

        logger.info(f"Initiated wallet payment pidx={data['pidx']}")
        return WalletInitiation(transaction_id=data["pidx"], redirect_url=data["payment_url"])

    def lookup(self, transaction_id: str) -> dict[str, Any]:
        """
        Server-side status check for a ``pidx``.

        Returns the lookup body; ``status`` is one of Completed, Pending,
        Initiated, Refunded, Expired, User canceled.
        """
        return self._request("POST", "/epayment/lookup/", json={"pidx": transaction_id})
