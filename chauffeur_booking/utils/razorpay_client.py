"""Thin adapter over the Razorpay SDK.

Payment links play the role of payment intents: the link's ``reference_id``
is our tx_ref, echoed back in the payment's notes so a captured payment can be
traced to exactly one booking or extension.
"""

import uuid
from dataclasses import dataclass
from decimal import Decimal

import razorpay
import requests
from razorpay.errors import BadRequestError, GatewayError, ServerError, SignatureVerificationError

from chauffeur_booking.core.config import (
    PAYMENT_CURRENCY,
    RAZORPAY_KEY_ID,
    RAZORPAY_KEY_SECRET,
    RAZORPAY_WEBHOOK_SECRET,
)
from chauffeur_booking.core.errors import PaymentIntentError, TransientInfraError
from chauffeur_booking.core.logging_config import get_logger

logger = get_logger("payment")

razorpay_client = razorpay.Client(auth=(RAZORPAY_KEY_ID, RAZORPAY_KEY_SECRET))

# link states that mean money already moved under the reference
SETTLED_LINK_STATUSES = ("paid", "partially_paid")

TRANSACTION_TITLES = {
    "booking_creation": "Payment for car booking",
    "booking_extension": "Payment for booking extension",
}


@dataclass(frozen=True)
class PaymentIntent:
    payment_intent_id: str
    checkout_url: str


@dataclass(frozen=True)
class VerifiedTransaction:
    id: str
    status: str  # "successful" | "failed"
    tx_ref: str | None
    amount: Decimal
    currency: str
    payment_method: str | None = None


def new_tx_ref(prefix: str, entity_id) -> str:
    # Razorpay caps reference_id at 40 chars
    return f"{prefix}-{entity_id}-{uuid.uuid4().hex[:12]}"


def to_minor_units(amount: Decimal) -> int:
    return int((Decimal(amount) * 100).to_integral_value())


class RazorpayGateway:
    def __init__(self, client=razorpay_client, currency: str = PAYMENT_CURRENCY):
        self.client = client
        self.currency = currency

    def create_payment_intent(
        self,
        amount: Decimal,
        tx_ref: str,
        customer: dict,
        transaction_type: str,
        metadata: dict | None = None,
        callback_url: str | None = None,
    ) -> PaymentIntent:
        payload = {
            "amount": to_minor_units(amount),
            "currency": self.currency,
            "reference_id": tx_ref,
            "description": TRANSACTION_TITLES.get(transaction_type, "Payment"),
            "customer": {
                "name": customer.get("name") or "Customer",
                "email": customer.get("email"),
            },
            "notes": {
                **(metadata or {}),
                "tx_ref": tx_ref,
                "transaction_type": transaction_type,
            },
        }
        if callback_url:
            payload["callback_url"] = callback_url
            payload["callback_method"] = "get"

        logger.info(f"Creating payment intent | tx_ref={tx_ref} | amount={amount} | type={transaction_type}")

        try:
            link = self.client.payment_link.create(payload)
        except (BadRequestError, GatewayError, ServerError, requests.RequestException) as e:
            logger.error(f"Failed to create payment intent | tx_ref={tx_ref} | error={e}")
            raise PaymentIntentError("Failed to create payment intent. Please try again.") from e

        checkout_url = link.get("short_url")
        if not checkout_url:
            raise PaymentIntentError("Payment provider returned no checkout link")

        return PaymentIntent(payment_intent_id=tx_ref, checkout_url=checkout_url)

    def cancel_payment_intent(self, tx_ref: str) -> bool:
        """Cancel every live checkout link issued under tx_ref.

        Returns False when a link was already paid (or could not be cancelled
        because payment is in flight): that money belongs to tx_ref, so the
        caller must not move the entity to a new reference.
        """
        try:
            found = self.client.payment_link.all({"reference_id": tx_ref})
        except (BadRequestError, GatewayError, ServerError, requests.RequestException) as e:
            logger.error(f"Failed to look up payment intent | tx_ref={tx_ref} | error={e}")
            raise PaymentIntentError("Could not reach payment provider. Please try again.") from e

        for link in found.get("payment_links", []):
            status = link.get("status")
            if status in SETTLED_LINK_STATUSES:
                logger.info(f"Payment intent already paid | tx_ref={tx_ref} | link={link.get('id')}")
                return False
            if status != "created":
                continue  # cancelled or expired

            try:
                self.client.payment_link.cancel(link["id"])
            except BadRequestError as e:
                logger.warning(f"Payment intent could not be cancelled | tx_ref={tx_ref} | error={e}")
                return False
            except (GatewayError, ServerError, requests.RequestException) as e:
                logger.error(f"Failed to cancel payment intent | tx_ref={tx_ref} | error={e}")
                raise PaymentIntentError("Could not reach payment provider. Please try again.") from e

            logger.info(f"Payment intent cancelled | tx_ref={tx_ref} | link={link['id']}")

        return True

    def verify_transaction(self, provider_charge_id: str) -> VerifiedTransaction | None:
        """Fetch the charge from the provider. None means it cannot be verified."""
        try:
            payment = self.client.payment.fetch(provider_charge_id)
        except BadRequestError as e:
            logger.warning(f"Transaction verification rejected | charge={provider_charge_id} | error={e}")
            return None
        except (GatewayError, ServerError, requests.RequestException) as e:
            raise TransientInfraError(f"Could not reach payment provider: {e}") from e

        if not payment or payment.get("id") != provider_charge_id:
            return None

        notes = payment.get("notes") or {}
        return VerifiedTransaction(
            id=payment["id"],
            status="successful" if payment.get("status") == "captured" else "failed",
            tx_ref=notes.get("tx_ref"),
            amount=Decimal(payment.get("amount", 0)) / 100,
            currency=payment.get("currency", self.currency),
            payment_method=payment.get("method"),
        )

    def verify_webhook_signature(self, body: str, signature: str) -> bool:
        try:
            self.client.utility.verify_webhook_signature(body, signature, RAZORPAY_WEBHOOK_SECRET)
            return True
        except SignatureVerificationError:
            return False
