from flask import Blueprint, jsonify, request
from flask_jwt_extended import current_user, jwt_required
from ticket_resale.services import kyc_service

kyc_bp = Blueprint('kyc', __name__)


@kyc_bp.route('', methods=['POST'])
@jwt_required()
def submit_kyc():
    """
    Submit identity documents for KYC
    ---
    tags:
      - KYC
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - document_type
            - document_number
          properties:
            document_type:
              type: string
              enum: [aadhaar, pan, passport, driving_license, voter_id]
            document_number:
              type: string
            document_path:
              type: string
              description: Storage key of the uploaded document image
    responses:
      201:
        description: Submission recorded
      409:
        description: Already verified or a submission is awaiting review
    """
    submission = kyc_service.submit_kyc(current_user, request.get_json(silent=True) or {})
    return jsonify({"success": True, "data": submission.to_dict()}), 201


@kyc_bp.route('', methods=['GET'])
@jwt_required()
def kyc_status():
    """
    Current KYC status and latest submission
    ---
    tags:
      - KYC
    security:
      - Bearer: []
    responses:
      200:
        description: KYC status
    """
    submission = kyc_service.latest_submission(current_user.user_id)
    return jsonify({
        "success": True,
        "kyc_status": current_user.kyc_status,
        "submission": submission.to_dict() if submission else None,
    }), 200
