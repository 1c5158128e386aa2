"""
Payment service

Runs milestone payments for a project through the card gateway (Stripe) or
the wallet gateway (Khalti), and finalizes the project when a payment lands.

A Payment row moves pending -> completed | failed exactly once: the settle
write is conditional on ``status = 'pending'``, so a second callback or a
concurrent confirm finds the row already settled and becomes a no-op.
"""

from __future__ import annotations

import logging
import os
from typing import Any

from karya.lifecycle.states import PaymentProvider, PaymentStatus, ProjectStatus
from karya.shared.errors import (
    ExternalProviderError,
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
    ProviderTimeoutError,
    ValidationError,
)
from karya.shared.money import parse_amount, to_minor_units
from karya.shared.structured_logging import get_structured_logger

from .khalti_client import LOOKUP_COMPLETED, LOOKUP_IN_PROGRESS
from .stripe_client import StripeClient

logger = logging.getLogger(__name__)

WALLET_CURRENCY = "NPR"
WALLET_MINIMUM_MINOR = 1000
CARD_SUCCEEDED = "succeeded"
CARD_CANCELED = "canceled"


class PaymentService:
    """Initiate, confirm and reconcile project payments."""

    def __init__(
        self,
        store,
        dispatcher,
        card_gateway: StripeClient | None = None,
        wallet_gateway=None,
        public_api_url: str | None = None,
        frontend_url: str | None = None,
    ):
        """
        Initialize the payment service.

        Args:
            store: Entity store
            dispatcher: NotificationDispatcher for payment notifications
            card_gateway: Card client (StripeClient or compatible)
            wallet_gateway: Wallet client (KhaltiClient or compatible)
            public_api_url: Base URL the wallet provider redirects back to.
                If None, reads PUBLIC_API_URL.
            frontend_url: Website URL shown by the wallet provider.
                If None, reads FRONTEND_URL.
        """
        if not store:
            raise ValueError("Store is required")
        self.store = store
        self.dispatcher = dispatcher
        self.card_gateway = card_gateway
        self.wallet_gateway = wallet_gateway
        self.public_api_url = (
            public_api_url or os.getenv("PUBLIC_API_URL", "http://localhost:5000")
        ).rstrip("/")
        self.frontend_url = (
            frontend_url or os.getenv("FRONTEND_URL", "http://localhost:5173")
        ).rstrip("/")

    # Shared guards

    def _payable_project(self, project_id: int, hirer_id: int) -> dict[str, Any]:
        project = self.store.get_project(project_id)
        if not project:
            raise NotFoundError("Project", project_id)
        if project["hirer_id"] != hirer_id:
            raise PermissionDeniedError("Only the project's hirer can pay for it")
        if project["status"] != ProjectStatus.ONGOING.value:
            raise InvalidStateError(f"Project {project_id} is already {project['status']}")
        return project

    def _hirer_payment(self, payment_id: int, hirer_id: int) -> dict[str, Any]:
        payment = self.store.get_payment(payment_id)
        if not payment:
            raise NotFoundError("Payment", payment_id)
        if payment["hirer_id"] != hirer_id:
            raise PermissionDeniedError("Only the paying hirer can confirm this payment")
        return payment

    # Card flow

    def initiate_card_payment(self, hirer_id: int, project_id: int, amount) -> dict[str, Any]:
        """
        Create a card payment intent and a pending Payment.

        Returns:
            Dictionary with payment_id, client_secret and transaction_id

        Raises:
            ValidationError: If the amount is not a positive two-decimal number
        """
        value = parse_amount(amount)
        project = self._payable_project(project_id, hirer_id)
        if self.card_gateway is None:
            raise ExternalProviderError("stripe", "card payments are not configured")

        intent = self.card_gateway.create_intent(
            value, metadata={"project_id": project_id, "hirer_id": hirer_id}
        )
        payment = self.store.insert_payment(
            hirer_id=hirer_id,
            freelancer_id=project["freelancer_id"],
            project_id=project_id,
            amount=value,
            currency=self.card_gateway.currency.upper(),
            provider=PaymentProvider.CARD,
            transaction_id=intent.transaction_id,
            wallet_id=None,
            status=PaymentStatus.PENDING,
        )
        logger.info(f"Card payment {payment['payment_id']} pending for project {project_id}")
        return {
            "payment_id": payment["payment_id"],
            "client_secret": intent.client_secret,
            "transaction_id": intent.transaction_id,
        }

    def confirm_card_payment(self, hirer_id: int, payment_id: int) -> dict[str, Any]:
        """
        Mark a card payment completed after checking the intent with Stripe.

        Confirming an already completed payment returns it unchanged.

        Raises:
            InvalidStateError: If the payment failed or the intent has not succeeded
        """
        payment = self._hirer_payment(payment_id, hirer_id)
        if payment["provider"] != PaymentProvider.CARD.value:
            raise ValidationError("Only card payments can be confirmed here")
        if payment["status"] == PaymentStatus.COMPLETED.value:
            return payment
        if payment["status"] == PaymentStatus.FAILED.value:
            raise InvalidStateError(f"Payment {payment_id} has failed")
        if self.card_gateway is None:
            raise ExternalProviderError("stripe", "card payments are not configured")

        intent = self.card_gateway.retrieve_intent(payment["transaction_id"])
        intent_status = intent.get("status")
        if intent_status == CARD_CANCELED:
            self.store.settle_payment(payment_id, PaymentStatus.FAILED)
            raise InvalidStateError(f"Payment {payment_id} was canceled at the card provider")
        if intent_status != CARD_SUCCEEDED:
            raise InvalidStateError(
                f"Payment {payment_id} has not succeeded yet (provider status: {intent_status})"
            )

        return self._complete(payment)

    # Wallet flow

    def initiate_wallet_payment(self, hirer_id: int, project_id: int, amount) -> dict[str, Any]:
        """
        Start a wallet payment and return the provider's payment page URL.

        The pending Payment is stored before the provider call so the callback
        can always be matched to it. A provider rejection marks it failed; a
        timeout leaves it pending for the callback or a retry to settle.

        Raises:
            ValidationError: Bad amount, below the wallet minimum, or the
                freelancer has no wallet id on file
        """
        value = parse_amount(amount)
        amount_minor = to_minor_units(value)
        if amount_minor < WALLET_MINIMUM_MINOR:
            raise ValidationError(
                f"Amount must be at least {WALLET_MINIMUM_MINOR} paisa (10 {WALLET_CURRENCY})"
            )
        project = self._payable_project(project_id, hirer_id)
        if self.wallet_gateway is None:
            raise ExternalProviderError("khalti", "wallet payments are not configured")

        freelancer = self.store.get_user(project["freelancer_id"]) or {}
        wallet_id = freelancer.get("wallet_id")
        if not wallet_id:
            raise ValidationError("Freelancer has not provided a wallet id")
        hirer = self.store.get_user(hirer_id) or {}

        payment = self.store.insert_payment(
            hirer_id=hirer_id,
            freelancer_id=project["freelancer_id"],
            project_id=project_id,
            amount=value,
            currency=WALLET_CURRENCY,
            provider=PaymentProvider.WALLET,
            transaction_id=None,
            wallet_id=wallet_id,
            status=PaymentStatus.PENDING,
        )
        payment_id = payment["payment_id"]
        log = get_structured_logger(__name__, payment_id=payment_id, project_id=project_id)

        try:
            initiation = self.wallet_gateway.initiate(
                amount_minor=amount_minor,
                order_id=str(project_id),
                order_name=project["title"],
                return_url=f"{self.public_api_url}/api/payments/wallet/callback?payment_id={payment_id}",
                website_url=self.frontend_url,
                customer_info={
                    "name": f"{hirer.get('first_name', '')} {hirer.get('last_name', '')}".strip(),
                    "email": hirer.get("email"),
                },
            )
        except ProviderTimeoutError:
            log.warning("Wallet initiation timed out; payment left pending")
            raise
        except ExternalProviderError:
            log.error("Wallet initiation rejected; marking payment failed")
            self.store.settle_payment(payment_id, PaymentStatus.FAILED)
            raise

        self.store.update_payment_transaction(payment_id, initiation.transaction_id)
        log.info(f"Wallet payment initiated pidx={initiation.transaction_id}")
        return {
            "payment_id": payment_id,
            "transaction_id": initiation.transaction_id,
            "redirect_url": initiation.redirect_url,
            "amount": amount_minor,
        }

    def handle_wallet_callback(
        self, transaction_id: str | None, payment_id: int | None = None
    ) -> dict[str, Any]:
        """
        Reconcile a wallet payment after the provider redirects back.

        Query parameters of the redirect are untrusted: the payment status is
        taken only from a server-side lookup of ``transaction_id``.

        Returns:
            Dictionary with ``outcome`` (completed, already_completed, pending,
            failed) and the current ``payment``
        """
        if not transaction_id:
            raise ValidationError("Transaction reference is required")

        if payment_id is not None:
            payment = self.store.get_payment(payment_id)
        else:
            payment = self.store.find_payment_by_transaction(PaymentProvider.WALLET, transaction_id)
        if not payment or payment["provider"] != PaymentProvider.WALLET.value:
            raise NotFoundError("Payment", payment_id or transaction_id)
        if payment.get("transaction_id"):
            if payment["transaction_id"] != transaction_id:
                raise ValidationError("Transaction reference does not match this payment")
        else:
            # Initiation timed out before the reference was stored
            owner = self.store.find_payment_by_transaction(PaymentProvider.WALLET, transaction_id)
            if owner and owner["payment_id"] != payment["payment_id"]:
                raise ValidationError("Transaction reference belongs to another payment")

        log = get_structured_logger(
            __name__, payment_id=payment["payment_id"], project_id=payment["project_id"]
        )
        if payment["status"] == PaymentStatus.COMPLETED.value:
            log.info("Duplicate wallet callback ignored")
            return {"outcome": "already_completed", "payment": payment}
        if payment["status"] == PaymentStatus.FAILED.value:
            return {"outcome": "failed", "payment": payment}
        if self.wallet_gateway is None:
            raise ExternalProviderError("khalti", "wallet payments are not configured")

        lookup = self.wallet_gateway.lookup(transaction_id)
        lookup_status = lookup.get("status")
        log.info(f"Wallet lookup status: {lookup_status}")

        if lookup_status == LOOKUP_COMPLETED:
            if lookup.get("total_amount") != to_minor_units(payment["amount"]):
                log.error(
                    f"Wallet amount mismatch: provider={lookup.get('total_amount')} "
                    f"expected={to_minor_units(payment['amount'])}"
                )
                failed = self.store.settle_payment(
                    payment["payment_id"], PaymentStatus.FAILED, transaction_id
                )
                return {"outcome": "failed", "payment": failed or payment}
            completed = self._complete(payment, transaction_id)
            return {"outcome": "completed", "payment": completed}

        if lookup_status in LOOKUP_IN_PROGRESS:
            return {"outcome": "pending", "payment": payment}

        failed = self.store.settle_payment(payment["payment_id"], PaymentStatus.FAILED, transaction_id)
        return {"outcome": "failed", "payment": failed or payment}

    # Completion

    def _complete(self, payment: dict[str, Any], transaction_id: str | None = None) -> dict[str, Any]:
        """Settle ``payment`` as completed, complete its project, notify the freelancer."""
        payment_id = payment["payment_id"]
        settled = self.store.settle_payment(payment_id, PaymentStatus.COMPLETED, transaction_id)
        if settled is None:
            current = self.store.get_payment(payment_id)
            if current and current["status"] == PaymentStatus.COMPLETED.value:
                logger.info(f"Payment {payment_id} was completed concurrently")
                return current
            raise InvalidStateError(f"Payment {payment_id} is no longer pending")

        project = self.store.update_project_status(
            settled["project_id"], ProjectStatus.COMPLETED, expected=ProjectStatus.ONGOING
        )
        if project is None:
            project = self.store.get_project(settled["project_id"]) or {}
            logger.info(f"Project {settled['project_id']} was already completed")

        title = project.get("title", "your project")
        message = (
            f"Payment of {settled['amount']} {settled['currency']} for \"{title}\" has been "
            f"completed. You can now leave a review."
        )
        self.dispatcher.notify(
            settled["freelancer_id"],
            message,
            event="paymentCompleted",
            email_subject=f"Payment received for {title}",
            project_id=settled["project_id"],
            payment_id=payment_id,
        )
        logger.info(f"Payment {payment_id} completed for project {settled['project_id']}")
        return settled

    # Read views

    def get_payment(self, payment_id: int, user_id: int) -> dict[str, Any]:
        payment = self.store.get_payment(payment_id)
        if not payment:
            raise NotFoundError("Payment", payment_id)
        if user_id not in (payment["hirer_id"], payment["freelancer_id"]):
            raise PermissionDeniedError("You are not a party to this payment")
        return payment

    def list_sent(self, hirer_id: int) -> list[dict[str, Any]]:
        return self.store.list_payments(hirer_id=hirer_id)

    def list_received(self, freelancer_id: int) -> list[dict[str, Any]]:
        return self.store.list_payments(freelancer_id=freelancer_id)
