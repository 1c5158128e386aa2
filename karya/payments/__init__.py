"""Project payments through the card and wallet gateways."""

from .khalti_client import KhaltiClient, WalletInitiation
from .payment_service import PaymentService
from .stripe_client import CardIntent, StripeClient

__all__ = ["CardIntent", "KhaltiClient", "PaymentService", "StripeClient", "WalletInitiation"]
