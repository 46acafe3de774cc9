from flask import Blueprint, jsonify, request
from flask_jwt_extended import current_user, jwt_required
from ticket_resale.services import payout_service

payouts_bp = Blueprint('payouts', __name__)


@payouts_bp.route('', methods=['POST'])
@jwt_required()
def create_payout():
    """
    Pay out a completed sale to the seller's UPI address
    ---
    tags:
      - Payouts
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - payout_id
          properties:
            payout_id:
              type: string
            upi_id:
              type: string
            phone_number:
              type: string
              description: Used as a phone-linked UPI alias when upi_id is absent
    responses:
      200:
        description: Payout processed
      404:
        description: Payout not found
      409:
        description: Payout already processed or failed
      422:
        description: Payout rejected by the provider; marked failed
      502:
        description: Provider unavailable; payout still pending, retry later
    """
    data = request.get_json(silent=True) or {}
    payout = payout_service.issue_payout(
        current_user,
        data.get('payout_id'),
        upi_id=data.get('upi_id'),
        phone_number=data.get('phone_number'),
    )
    return jsonify({
        "success": True,
        "payout_id": str(payout.id),
        "external_payout_id": payout.external_payout_id,
        "amount": float(payout.amount),
        "status": payout.status,
    }), 200


@payouts_bp.route('', methods=['GET'])
@jwt_required()
def list_my_payouts():
    """
    The current seller's payouts
    ---
    tags:
      - Payouts
    security:
      - Bearer: []
    responses:
      200:
        description: Payouts, newest first
    """
    payouts = payout_service.payouts_for_seller(current_user.user_id)
    return jsonify({"success": True, "data": [p.to_dict() for p in payouts]}), 200
