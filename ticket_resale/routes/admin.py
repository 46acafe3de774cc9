"""
Admin Routes
KYC decisions, ticket moderation and payout oversight.
"""

from flask import Blueprint, jsonify, request
from flask_jwt_extended import current_user

from ticket_resale.routes.decorators import admin_required
from ticket_resale.services import kyc_service, listing_service, payout_service

admin_bp = Blueprint('admin', __name__)


@admin_bp.route('/kyc', methods=['GET'])
@admin_required
def list_kyc_submissions():
    """
    KYC submissions awaiting a decision
    ---
    tags:
      - Admin
    security:
      - Bearer: []
    responses:
      200:
        description: Uploaded and in-review submissions, oldest first
    """
    submissions = kyc_service.open_submissions()
    return jsonify({"success": True, "data": [s.to_dict() for s in submissions]}), 200


@admin_bp.route('/kyc/<uuid:submission_id>/review', methods=['POST'])
@admin_required
def start_kyc_review(submission_id):
    """
    Start reviewing a submission (video verification session opened)
    ---
    tags:
      - Admin
    security:
      - Bearer: []
    responses:
      200:
        description: Submission in review
      409:
        description: Submission not in uploaded state
    """
    submission = kyc_service.start_review(current_user, submission_id)
    return jsonify({"success": True, "data": submission.to_dict()}), 200


@admin_bp.route('/kyc/<uuid:submission_id>/decision', methods=['POST'])
@admin_required
def decide_kyc(submission_id):
    """
    Approve or reject a submission under review
    ---
    tags:
      - Admin
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - decision
          properties:
            decision:
              type: string
              enum: [verified, rejected]
            reason:
              type: string
    responses:
      200:
        description: Decision recorded and user notified
      409:
        description: Submission not in review
    """
    data = request.get_json(silent=True) or {}
    submission = kyc_service.decide(current_user, submission_id, data.get('decision'), data.get('reason'))
    return jsonify({"success": True, "data": submission.to_dict()}), 200


@admin_bp.route('/tickets/<uuid:ticket_id>/verify', methods=['POST'])
@admin_required
def verify_ticket(ticket_id):
    """
    Mark a listing as verified
    ---
    tags:
      - Admin
    security:
      - Bearer: []
    responses:
      200:
        description: Ticket verified
    """
    ticket = listing_service.verify_ticket(current_user, ticket_id)
    return jsonify({"success": True, "data": ticket.to_dict()}), 200


@admin_bp.route('/tickets/<uuid:ticket_id>/reject', methods=['POST'])
@admin_required
def reject_ticket(ticket_id):
    """
    Reject a listing and take it off sale
    ---
    tags:
      - Admin
    security:
      - Bearer: []
    responses:
      200:
        description: Ticket rejected
      409:
        description: Ticket is being purchased or already sold
    """
    ticket = listing_service.reject_ticket(current_user, ticket_id)
    return jsonify({"success": True, "data": ticket.to_dict()}), 200


@admin_bp.route('/tickets/<uuid:ticket_id>/cancel', methods=['POST'])
@admin_required
def cancel_ticket(ticket_id):
    """
    Cancel an available listing
    ---
    tags:
      - Admin
    security:
      - Bearer: []
    responses:
      200:
        description: Ticket cancelled
      409:
        description: Ticket is not available
    """
    ticket = listing_service.cancel_ticket(current_user, ticket_id)
    return jsonify({"success": True, "data": ticket.to_dict()}), 200


@admin_bp.route('/payouts', methods=['GET'])
@admin_required
def list_payouts():
    """
    All payouts, optionally filtered by status
    ---
    tags:
      - Admin
    security:
      - Bearer: []
    parameters:
      - name: status
        in: query
        type: string
        enum: [pending, processed, failed]
    responses:
      200:
        description: Payouts, newest first
    """
    payouts = payout_service.list_payouts(request.args.get('status'))
    return jsonify({"success": True, "data": [p.to_admin_dict() for p in payouts]}), 200
