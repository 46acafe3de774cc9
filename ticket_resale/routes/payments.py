"""
Payment Routes
Open a purchase with either gateway, then confirm it from the client side.
Both gateways settle through the same settlement service.
"""

from flask import Blueprint, jsonify, request
from flask_jwt_extended import current_user, jwt_required

from ticket_resale.services import purchase_service, settlement_service
from ticket_resale.services.common import parse_uuid
from ticket_resale.services.providers import get_provider

payments_bp = Blueprint('payments', __name__)


def _open_purchase(gateway):
    data = request.get_json(silent=True) or {}
    transaction, order = purchase_service.create_purchase_order(
        current_user, data.get('ticket_id'), data.get('amount'), gateway
    )
    return jsonify({
        "success": True,
        "transaction_id": str(transaction.id),
        **order.client_params,
    }), 200


def _settlement_response(result):
    transaction = result.transaction
    return jsonify({
        "success": True,
        "transaction_id": str(transaction.id),
        "payment_id": transaction.gateway_payment_id,
        "already_settled": result.already_settled,
        "ticket": transaction.ticket.to_dict(),
    }), 200


@payments_bp.route('/razorpay/order', methods=['POST'])
@jwt_required()
def create_razorpay_order():
    """
    Create a Razorpay order for a ticket
    ---
    tags:
      - Payments
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - ticket_id
            - amount
          properties:
            ticket_id:
              type: string
            amount:
              type: number
              description: Must equal the ticket's selling price
    responses:
      200:
        description: order_id, amount (paise), currency, razorpay_key_id
      400:
        description: Invalid input or own ticket
      403:
        description: Email not verified
      409:
        description: Ticket not available
      502:
        description: Payment could not be initiated
    """
    return _open_purchase('razorpay')


@payments_bp.route('/razorpay/verify', methods=['POST'])
@jwt_required()
def verify_razorpay_payment():
    """
    Verify a Razorpay checkout and settle the purchase
    ---
    tags:
      - Payments
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - razorpay_order_id
            - razorpay_payment_id
            - razorpay_signature
          properties:
            razorpay_order_id:
              type: string
            razorpay_payment_id:
              type: string
            razorpay_signature:
              type: string
            ticket_id:
              type: string
    responses:
      200:
        description: Purchase settled (or already settled)
      400:
        description: Invalid signature
      409:
        description: No matching transaction
    """
    data = request.get_json(silent=True) or {}
    payment = get_provider('razorpay').verify_payment(
        order_id=data.get('razorpay_order_id'),
        payment_id=data.get('razorpay_payment_id'),
        signature=data.get('razorpay_signature'),
    )
    ticket_id = parse_uuid(data['ticket_id'], 'ticket_id') if data.get('ticket_id') else None
    result = settlement_service.settle_payment(
        payment.order_id,
        payment.payment_id,
        buyer_id=current_user.user_id,
        ticket_id=ticket_id,
        source='razorpay_verify',
    )
    return _settlement_response(result)


@payments_bp.route('/stripe/intent', methods=['POST'])
@jwt_required()
def create_stripe_intent():
    """
    Create a Stripe payment intent for a ticket
    ---
    tags:
      - Payments
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - ticket_id
            - amount
          properties:
            ticket_id:
              type: string
            amount:
              type: number
    responses:
      200:
        description: client_secret and payment_intent_id
      409:
        description: Ticket not available
      502:
        description: Payment could not be initiated
    """
    return _open_purchase('stripe')


@payments_bp.route('/stripe/confirm', methods=['POST'])
@jwt_required()
def confirm_stripe_payment():
    """
    Confirm a Stripe payment (looked up server-side) and settle the purchase
    ---
    tags:
      - Payments
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - payment_intent_id
          properties:
            payment_intent_id:
              type: string
    responses:
      200:
        description: Purchase settled (or already settled)
      400:
        description: Payment not successful
      409:
        description: No matching transaction
    """
    data = request.get_json(silent=True) or {}
    payment = get_provider('stripe').verify_payment(payment_intent_id=data.get('payment_intent_id'))
    result = settlement_service.settle_payment(
        payment.order_id,
        payment.payment_id,
        buyer_id=current_user.user_id,
        source='stripe_confirm',
    )
    return _settlement_response(result)
