from flask import Blueprint, jsonify, request
from flask_jwt_extended import current_user, jwt_required
from ticket_resale.errors import ValidationError
from ticket_resale.routes.decorators import admin_required
from ticket_resale.services import notification_service
from ticket_resale.services.common import parse_uuid
from ticket_resale.services.email_service import TEMPLATES
from ticket_resale.services.notification_service import NOTIFICATION_TYPES

notifications_bp = Blueprint('notifications', __name__)


@notifications_bp.route('', methods=['POST'])
@admin_required
def send_notification():
    """
    Send a notification to a user (internal / admin)
    ---
    tags:
      - Notifications
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - user_id
            - title
            - message
          properties:
            user_id:
              type: string
            title:
              type: string
            message:
              type: string
            type:
              type: string
              enum: [general, ticket, payment, kyc, message]
            data:
              type: object
            send_email:
              type: boolean
            email_template:
              type: string
    responses:
      201:
        description: Notification created
      404:
        description: User not found
    """
    data = request.get_json(silent=True) or {}
    if not data.get('user_id') or not data.get('title') or not data.get('message'):
        raise ValidationError("Missing fields: user_id, title, message")

    notification_type = data.get('type', 'general')
    if notification_type not in NOTIFICATION_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(NOTIFICATION_TYPES)}")
    email_template = data.get('email_template')
    if email_template and email_template not in TEMPLATES:
        raise ValidationError(f"Unknown email_template: {email_template}")

    notification = notification_service.send_notification(
        parse_uuid(data['user_id'], 'user_id'),
        data['title'],
        data['message'],
        type=notification_type,
        data=data.get('data'),
        send_email=bool(data.get('send_email')),
        email_template=email_template,
    )
    return jsonify({
        "success": True,
        "notification": notification.to_dict(),
        "message": "Notification sent successfully",
    }), 201


@notifications_bp.route('', methods=['GET'])
@jwt_required()
def list_notifications():
    """
    The current user's notifications
    ---
    tags:
      - Notifications
    security:
      - Bearer: []
    parameters:
      - name: unread
        in: query
        type: boolean
    responses:
      200:
        description: Notifications, newest first
    """
    unread_only = request.args.get('unread', '').lower() in ('1', 'true', 'yes')
    notifications = notification_service.notifications_for_user(current_user.user_id, unread_only)
    return jsonify({"success": True, "data": [n.to_dict() for n in notifications]}), 200


@notifications_bp.route('/<uuid:notification_id>/read', methods=['POST'])
@jwt_required()
def mark_read(notification_id):
    """
    Mark a notification as read
    ---
    tags:
      - Notifications
    security:
      - Bearer: []
    responses:
      200:
        description: Marked read
      404:
        description: Notification not found
    """
    notification = notification_service.mark_read(current_user.user_id, notification_id)
    return jsonify({"success": True, "data": notification.to_dict()}), 200
