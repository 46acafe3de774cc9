"""
Stripe gateway: payment intents, server-side confirmation, webhooks and
transfers to connected accounts.
"""

import json
import logging
import stripe

from ticket_resale.errors import (
    PaymentGatewayError,
    PermanentGatewayError,
    SignatureError,
    ValidationError,
)
from ticket_resale.services.fees import to_minor_units
from ticket_resale.services.providers.base import (
    PAYMENT_CANCELED,
    PAYMENT_FAILED,
    PAYMENT_SUCCEEDED,
    OrderResult,
    PaymentProvider,
    PayoutResult,
    VerifiedPayment,
    WebhookEvent,
)

logger = logging.getLogger(__name__)

EVENT_TYPES = {
    'payment_intent.succeeded': PAYMENT_SUCCEEDED,
    'payment_intent.payment_failed': PAYMENT_FAILED,
    'payment_intent.canceled': PAYMENT_CANCELED,
}

# Errors where sending the same request again cannot work
PERMANENT_ERRORS = (stripe.InvalidRequestError, stripe.CardError, stripe.PermissionError)


def _gateway_error(e):
    if isinstance(e, PERMANENT_ERRORS):
        logger.error("Stripe rejected request: %s", e)
        return PermanentGatewayError(detail=str(e))
    logger.warning("Stripe request failed: %s", e)
    return PaymentGatewayError(detail=str(e))


def _charge_id(intent):
    # latest_charge is an id, or a Charge when expanded; missing before the first attempt
    charge = getattr(intent, 'latest_charge', None)
    if not charge:
        return intent.id
    return charge if isinstance(charge, str) else charge.id


class StripeProvider(PaymentProvider):
    name = 'stripe'

    def __init__(self, secret_key, webhook_secret=None):
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret

    @classmethod
    def from_config(cls, config):
        return cls(
            secret_key=config['STRIPE_SECRET_KEY'],
            webhook_secret=config.get('STRIPE_WEBHOOK_SECRET'),
        )

    def _ensure_credentials(self):
        if not self.secret_key:
            logger.error("STRIPE_SECRET_KEY not configured")
            raise PaymentGatewayError()

    def _customer_id(self, email):
        customers = stripe.Customer.list(email=email, limit=1, api_key=self.secret_key)
        if customers.data:
            return customers.data[0].id
        return stripe.Customer.create(email=email, api_key=self.secret_key).id

    def create_order(self, *, amount, currency, receipt, metadata, customer_email=None, description=None):
        self._ensure_credentials()
        try:
            params = {
                'amount': to_minor_units(amount),
                'currency': currency.lower(),
                'metadata': metadata,
                'description': description or receipt,
                'api_key': self.secret_key,
            }
            if customer_email:
                params['customer'] = self._customer_id(customer_email)
            intent = stripe.PaymentIntent.create(**params)
        except stripe.StripeError as e:
            raise _gateway_error(e)

        return OrderResult(
            order_id=intent.id,
            amount_minor=intent.amount,
            currency=intent.currency,
            client_params={
                'client_secret': intent.client_secret,
                'payment_intent_id': intent.id,
            },
        )

    def verify_payment(self, *, payment_intent_id=None):
        """Ask Stripe directly; whatever the client claims about the intent is ignored."""
        if not payment_intent_id:
            raise ValidationError('Missing payment_intent_id')
        self._ensure_credentials()
        try:
            intent = stripe.PaymentIntent.retrieve(payment_intent_id, api_key=self.secret_key)
        except stripe.StripeError as e:
            raise _gateway_error(e)

        if intent.status != 'succeeded':
            raise ValidationError('Payment not successful', error_code='PAYMENT_NOT_COMPLETED')
        return VerifiedPayment(order_id=intent.id, payment_id=_charge_id(intent))

    def parse_webhook(self, payload, headers):
        sig_header = headers.get('Stripe-Signature')
        if not sig_header or not self.webhook_secret:
            raise SignatureError('Missing signature or webhook secret')

        try:
            event = stripe.Webhook.construct_event(payload, sig_header, self.webhook_secret)
        except ValueError:
            raise ValidationError('Invalid payload')
        except stripe.SignatureVerificationError:
            raise SignatureError('Invalid signature')

        intent = event.data.object
        return WebhookEvent(
            provider=self.name,
            event_type=EVENT_TYPES.get(event.type, event.type),
            order_id=intent.id,
            payment_id=_charge_id(intent),
            raw=json.loads(payload),
        )

    def create_payout(self, *, amount, currency, destination, reference):
        """``destination`` is the seller's connected account id (acct_...)."""
        self._ensure_credentials()
        try:
            transfer = stripe.Transfer.create(
                amount=to_minor_units(amount),
                currency=currency.lower(),
                destination=destination,
                transfer_group=reference,
                idempotency_key=reference,
                api_key=self.secret_key,
            )
        except stripe.StripeError as e:
            raise _gateway_error(e)
        return PayoutResult(payout_id=transfer.id, status='processed')
