"""
Razorpay gateway: orders, checkout signature check, webhooks and UPI payouts.
Orders and signatures go through the razorpay SDK; payouts (RazorpayX) have
no SDK resource and are posted to the REST API directly.
"""

import json
import logging
import razorpay
import requests

from ticket_resale.errors import (
    PaymentGatewayError,
    PermanentGatewayError,
    SignatureError,
    ValidationError,
)
from ticket_resale.services.fees import to_minor_units
from ticket_resale.services.providers.base import (
    PAYMENT_FAILED,
    PAYMENT_SUCCEEDED,
    OrderResult,
    PaymentProvider,
    PayoutResult,
    VerifiedPayment,
    WebhookEvent,
)

logger = logging.getLogger(__name__)

SUCCESS_EVENTS = {'payment.captured', 'order.paid'}
FAILURE_EVENTS = {'payment.failed'}
REJECTED_PAYOUT_STATUSES = {'rejected', 'cancelled', 'failed', 'reversed'}

# SDK errors a retry can fix; BadRequestError is the permanent one
RETRYABLE_ERRORS = (razorpay.errors.ServerError, razorpay.errors.GatewayError, requests.RequestException, ValueError)


class RazorpayProvider(PaymentProvider):
    name = 'razorpay'

    def __init__(self, key_id, key_secret, webhook_secret=None,
                 api_url='https://api.razorpay.com/v1', payout_account_number=None, timeout=10):
        self.key_id = key_id
        self.key_secret = key_secret
        self.webhook_secret = webhook_secret
        self.api_url = api_url.rstrip('/')
        self.payout_account_number = payout_account_number
        self.timeout = timeout
        self.client = razorpay.Client(auth=(key_id, key_secret))

    @classmethod
    def from_config(cls, config):
        return cls(
            key_id=config['RAZORPAY_KEY_ID'],
            key_secret=config['RAZORPAY_KEY_SECRET'],
            webhook_secret=config.get('RAZORPAY_WEBHOOK_SECRET'),
            api_url=config['RAZORPAY_API_URL'],
            payout_account_number=config.get('RAZORPAY_PAYOUT_ACCOUNT_NUMBER'),
            timeout=config['GATEWAY_TIMEOUT_SECONDS'],
        )

    def _ensure_credentials(self):
        if not self.key_id or not self.key_secret:
            logger.error("Razorpay credentials not configured")
            raise PaymentGatewayError()

    def create_order(self, *, amount, currency, receipt, metadata, customer_email=None, description=None):
        self._ensure_credentials()
        try:
            order = self.client.order.create({
                'amount': to_minor_units(amount),
                'currency': currency,
                'receipt': receipt,
                'notes': metadata,
            }, timeout=self.timeout)
        except razorpay.errors.BadRequestError as e:
            logger.error("Razorpay rejected order %s: %s", receipt, e)
            raise PermanentGatewayError(detail=str(e))
        except RETRYABLE_ERRORS as e:
            logger.warning("Razorpay order %s failed: %s", receipt, e)
            raise PaymentGatewayError(detail=str(e))

        return OrderResult(
            order_id=order['id'],
            amount_minor=order['amount'],
            currency=order['currency'],
            client_params={
                'order_id': order['id'],
                'amount': order['amount'],
                'currency': order['currency'],
                'razorpay_key_id': self.key_id,
            },
        )

    def verify_payment(self, *, order_id=None, payment_id=None, signature=None):
        """Checkout callback: signature is HMAC-SHA256(key_secret, "order_id|payment_id")."""
        if not order_id or not payment_id or not signature:
            raise ValidationError('Missing razorpay_order_id, razorpay_payment_id or razorpay_signature')
        self._ensure_credentials()

        try:
            self.client.utility.verify_payment_signature({
                'razorpay_order_id': order_id,
                'razorpay_payment_id': payment_id,
                'razorpay_signature': signature,
            })
        except (razorpay.errors.SignatureVerificationError, TypeError):
            logger.warning("Signature mismatch for razorpay order %s", order_id)
            raise SignatureError()
        return VerifiedPayment(order_id=order_id, payment_id=payment_id)

    def parse_webhook(self, payload, headers):
        signature = headers.get('X-Razorpay-Signature')
        if not signature or not self.webhook_secret:
            raise SignatureError('Missing signature or webhook secret')

        try:
            body = payload.decode('utf-8') if isinstance(payload, bytes) else payload
        except UnicodeDecodeError:
            raise ValidationError('Invalid payload')

        try:
            self.client.utility.verify_webhook_signature(body, signature, self.webhook_secret)
        except (razorpay.errors.SignatureVerificationError, TypeError):
            raise SignatureError()

        try:
            event = json.loads(body)
        except ValueError:
            raise ValidationError('Invalid payload')

        event_type = event.get('event', '')
        entities = event.get('payload', {})
        payment = entities.get('payment', {}).get('entity', {})
        order = entities.get('order', {}).get('entity', {})

        if event_type in SUCCESS_EVENTS:
            normalised = PAYMENT_SUCCEEDED
        elif event_type in FAILURE_EVENTS:
            normalised = PAYMENT_FAILED
        else:
            normalised = event_type

        return WebhookEvent(
            provider=self.name,
            event_type=normalised,
            order_id=payment.get('order_id') or order.get('id'),
            payment_id=payment.get('id'),
            raw=event,
        )

    def _post(self, path, body, headers=None):
        self._ensure_credentials()
        try:
            resp = requests.post(
                f"{self.api_url}{path}",
                json=body,
                auth=(self.key_id, self.key_secret),
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning("Razorpay %s unreachable: %s", path, e)
            raise PaymentGatewayError(detail=str(e))

        if resp.status_code == 429 or resp.status_code >= 500:
            logger.warning("Razorpay %s returned %s: %s", path, resp.status_code, resp.text)
            raise PaymentGatewayError(detail=resp.text)
        if resp.status_code >= 400:
            logger.error("Razorpay %s rejected request (%s): %s", path, resp.status_code, resp.text)
            raise PermanentGatewayError(detail=resp.text)
        return resp.json()

    def create_payout(self, *, amount, currency, destination, reference):
        if not self.payout_account_number:
            logger.error("RAZORPAY_PAYOUT_ACCOUNT_NUMBER not configured")
            raise PaymentGatewayError()

        # Same key on every retry of this payout, so RazorpayX creates it once
        result = self._post('/payouts', {
            'account_number': self.payout_account_number,
            'amount': to_minor_units(amount),
            'currency': currency,
            'mode': 'UPI',
            'purpose': 'payout',
            'fund_account': {
                'account_type': 'vpa',
                'vpa': {'address': destination},
            },
            'queue_if_low_balance': True,
            'reference_id': reference,
            'narration': 'Bus ticket sale payment',
        }, headers={'X-Payout-Idempotency': reference})

        status = result.get('status', '')
        if status in REJECTED_PAYOUT_STATUSES:
            reason = (result.get('status_details') or {}).get('description') or status
            logger.error("Razorpay payout %s %s: %s", result.get('id'), status, reason)
            raise PermanentGatewayError(detail=reason)
        return PayoutResult(payout_id=result['id'], status=status)
