"""
Stripe card gateway

Talks to the Stripe REST API directly (form-encoded requests, bearer secret
key). Amounts are sent in minor units.
"""

import logging
import os
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from karya.shared.base_client import BaseAPIClient
from karya.shared.errors import ExternalProviderError
from karya.shared.money import to_minor_units

logger = logging.getLogger(__name__)

STRIPE_API_BASE = "https://api.stripe.com/v1"


@dataclass
class CardIntent:
    client_secret: str
    transaction_id: str
    status: str


class StripeClient(BaseAPIClient):
    """Card payment intents."""

    provider_name = "stripe"

    def __init__(
        self,
        secret_key: str | None = None,
        currency: str | None = None,
        timeout: float | None = None,
        base_url: str = STRIPE_API_BASE,
    ):
        super().__init__(
            base_url=base_url,
            timeout=timeout or float(os.getenv("EXTERNAL_TIMEOUT_SECONDS", "15")),
        )
        self.secret_key = secret_key or os.getenv("STRIPE_SECRET_KEY")
        self.currency = (currency or os.getenv("CARD_CURRENCY", "usd")).lower()

    def _get_headers(self) -> dict[str, str]:
        if not self.secret_key:
            raise ExternalProviderError(self.provider_name, "secret key not configured")
        return {"Authorization": f"Bearer {self.secret_key}"}

    def create_intent(self, amount: Decimal, metadata: dict[str, Any]) -> CardIntent:
        """
        Create a payment intent for ``amount`` major units.

        Args:
            amount: Validated positive amount
            metadata: Flat key/value pairs stored with the intent

        Returns:
            CardIntent with the client secret the browser confirms with
        """
        form = {
            "amount": to_minor_units(amount),
            "currency": self.currency,
            "automatic_payment_methods[enabled]": "true",
        }
        for key, value in metadata.items():
            form[f"metadata[{key}]"] = str(value)

        data = self._request("POST", "/payment_intents", data=form)
        if not data.get("id") or not data.get("client_secret"):
            raise ExternalProviderError(self.provider_name, "intent response incomplete")

        logger.info(f"Created payment intent {data['id']}")
        return CardIntent(
            client_secret=data["client_secret"],
            transaction_id=data["id"],
            status=data.get("status", ""),
        )

    def retrieve_intent(self, transaction_id: str) -> dict[str, Any]:
        """Fetch an intent by id; callers check ``status == "succeeded"``."""
        return self._request("GET", f"/payment_intents/{transaction_id}")
