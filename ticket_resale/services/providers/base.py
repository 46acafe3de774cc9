"""
Payment provider interface.

The purchase, settlement and payout flows only talk to gateways through this
interface, so the escrow state machine has one implementation whichever
gateway handled the money.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

PAYMENT_SUCCEEDED = 'payment.succeeded'
PAYMENT_FAILED = 'payment.failed'          # one attempt failed; the buyer may retry
PAYMENT_CANCELED = 'payment.canceled'      # the order / intent can no longer be paid


@dataclass
class OrderResult:
    order_id: str                 # razorpay order id / stripe payment intent id
    amount_minor: int
    currency: str
    client_params: Dict[str, Any] = field(default_factory=dict)


@dataclass
class VerifiedPayment:
    order_id: str
    payment_id: str


@dataclass
class WebhookEvent:
    provider: str
    event_type: str               # PAYMENT_* constant or raw provider type
    order_id: Optional[str]
    payment_id: Optional[str]
    raw: Dict[str, Any]


@dataclass
class PayoutResult:
    payout_id: str
    status: str


class PaymentProvider(ABC):
    name = None

    @abstractmethod
    def create_order(self, *, amount, currency: str, receipt: str,
                     metadata: Dict[str, str], customer_email: Optional[str] = None,
                     description: Optional[str] = None) -> OrderResult:
        """Create an order / payment intent for ``amount`` (major units)."""

    @abstractmethod
    def verify_payment(self, **params) -> VerifiedPayment:
        """
        Establish that a payment really happened.
        Raise SignatureError (or ValidationError) instead of returning when it did not.
        """

    @abstractmethod
    def parse_webhook(self, payload: bytes, headers) -> WebhookEvent:
        """Verify the webhook signature and normalise the event."""

    @abstractmethod
    def create_payout(self, *, amount, currency: str, destination: str, reference: str) -> PayoutResult:
        """
        Move ``amount`` to the seller's destination. ``reference`` is stable
        per payout and doubles as the gateway idempotency key.
        Raise PermanentGatewayError when retrying cannot succeed, PaymentGatewayError otherwise.
        """
