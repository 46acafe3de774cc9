from flask import Blueprint, request, jsonify
import logging
from ticket_resale.services import settlement_service
from ticket_resale.services.providers import get_provider
from ticket_resale.services.providers.base import PAYMENT_CANCELED, PAYMENT_FAILED, PAYMENT_SUCCEEDED

logger = logging.getLogger(__name__)

webhooks_bp = Blueprint('webhooks', __name__)


def handle_event(event):
    """Gateways redeliver webhooks, so every branch here must tolerate replays."""
    if event.event_type == PAYMENT_SUCCEEDED:
        settlement_service.settle_payment(
            event.order_id, event.payment_id, source=f"{event.provider}_webhook"
        )
    elif event.event_type == PAYMENT_FAILED:
        settlement_service.record_failed_attempt(event.order_id, event.payment_id)
    elif event.event_type == PAYMENT_CANCELED:
        settlement_service.mark_payment_failed(event.order_id, reason="payment_canceled")
    else:
        logger.info("Unhandled %s webhook event: %s", event.provider, event.event_type)


def _receive(gateway):
    # Signature is checked against the raw body, before anything is parsed
    event = get_provider(gateway).parse_webhook(request.get_data(), request.headers)
    logger.info("Processing %s webhook event: %s (order=%s)", gateway, event.event_type, event.order_id)
    handle_event(event)
    return jsonify({'received': True}), 200


@webhooks_bp.route('/stripe', methods=['POST'])
def stripe_webhook():
    """
    Handle Stripe Webhooks
    ---
    tags:
      - Webhooks
    responses:
      200:
        description: Event processed
      400:
        description: Invalid payload or signature
      409:
        description: Payment does not match any transaction
    """
    return _receive('stripe')


@webhooks_bp.route('/razorpay', methods=['POST'])
def razorpay_webhook():
    """
    Handle Razorpay Webhooks
    ---
    tags:
      - Webhooks
    responses:
      200:
        description: Event processed
      400:
        description: Invalid payload or signature
      409:
        description: Payment does not match any transaction
    """
    return _receive('razorpay')
