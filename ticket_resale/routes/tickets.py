from flask import Blueprint, jsonify, request
from flask_jwt_extended import current_user, get_current_user, jwt_required
from ticket_resale.services import listing_service

tickets_bp = Blueprint('tickets', __name__)


@tickets_bp.route('', methods=['GET'])
def list_tickets():
    """
    Search available tickets
    ---
    tags:
      - Tickets
    parameters:
      - name: from
        in: query
        type: string
      - name: to
        in: query
        type: string
      - name: date
        in: query
        type: string
        description: YYYY-MM-DD
      - name: page
        in: query
        type: integer
        default: 1
      - name: per_page
        in: query
        type: integer
        default: 20
    responses:
      200:
        description: Available tickets
    """
    page = request.args.get('page', 1, type=int)
    per_page = min(request.args.get('per_page', 20, type=int), 100)

    result = listing_service.list_available_tickets(
        from_location=request.args.get('from'),
        to_location=request.args.get('to'),
        departure_date=request.args.get('date'),
        page=page,
        per_page=per_page,
    )
    return jsonify({
        "success": True,
        "data": result['data'],
        "pagination": result['pagination']
    }), 200


@tickets_bp.route('', methods=['POST'])
@jwt_required()
def create_ticket():
    """
    List a ticket for resale
    ---
    tags:
      - Tickets
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - pnr_number
            - from_location
            - to_location
            - departure_date
            - ticket_price
            - selling_price
          properties:
            pnr_number:
              type: string
            bus_operator:
              type: string
            passenger_name:
              type: string
            from_location:
              type: string
            to_location:
              type: string
            departure_date:
              type: string
            departure_time:
              type: string
            seat_number:
              type: string
            ticket_price:
              type: number
            selling_price:
              type: number
              description: Must not exceed ticket_price
    responses:
      201:
        description: Ticket listed
      400:
        description: Invalid input or selling price above face value
      403:
        description: Email or KYC not verified
    """
    ticket = listing_service.create_listing(current_user, request.get_json(silent=True) or {})
    return jsonify({"success": True, "data": ticket.to_dict()}), 201


@tickets_bp.route('/mine', methods=['GET'])
@jwt_required()
def my_tickets():
    """
    Tickets the current user listed or bought
    ---
    tags:
      - Tickets
    security:
      - Bearer: []
    responses:
      200:
        description: Listed and purchased tickets
    """
    return jsonify({"success": True, "data": listing_service.tickets_for_user(current_user.user_id)}), 200


@tickets_bp.route('/<uuid:ticket_id>', methods=['GET'])
@jwt_required(optional=True)
def get_ticket(ticket_id):
    """
    Get a single ticket
    ---
    tags:
      - Tickets
    parameters:
      - name: ticket_id
        in: path
        type: string
        required: true
    responses:
      200:
        description: Ticket details
      404:
        description: Ticket not found
    """
    ticket = listing_service.get_ticket(ticket_id)
    return jsonify({"success": True, "data": listing_service.ticket_view(ticket, get_current_user())}), 200


@tickets_bp.route('/<uuid:ticket_id>/cancel', methods=['POST'])
@jwt_required()
def cancel_ticket(ticket_id):
    """
    Withdraw a listing
    ---
    tags:
      - Tickets
    security:
      - Bearer: []
    parameters:
      - name: ticket_id
        in: path
        type: string
        required: true
    responses:
      200:
        description: Listing cancelled
      409:
        description: Ticket is being purchased or already sold
    """
    ticket = listing_service.cancel_ticket(current_user, ticket_id)
    return jsonify({"success": True, "data": ticket.to_dict()}), 200
