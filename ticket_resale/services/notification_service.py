"""
Notification Service
Notifications are observational: losing one never changes marketplace state.
"""

import logging

from ticket_resale.extensions import db
from ticket_resale.errors import NotFoundError
from ticket_resale.models import Notification, User
from ticket_resale.services import email_service

logger = logging.getLogger(__name__)

NOTIFICATION_TYPES = ('general', 'ticket', 'payment', 'kyc', 'message')


def build_notification(user_id, title, message, type='general', data=None):
    """Add a notification to the current unit of work without committing it."""
    notification = Notification(user_id=user_id, title=title, message=message, type=type, data=data)
    db.session.add(notification)
    return notification


def send_notification(user_id, title, message, type='general', data=None,
                      send_email=False, email_template=None):
    """
    Create and commit a notification, optionally mirrored by e-mail.
    """
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError('User not found')

    notification = build_notification(user.user_id, title, message, type=type, data=data)
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    if send_email and user.email:
        template_data = {
            'name': user.full_name or 'User',
            'dashboardUrl': email_service.dashboard_url(),
            **(data or {}),
        }
        if email_template:
            email_service.send_email(user.email, template=email_template, template_data=template_data)
        else:
            email_service.send_email(
                user.email,
                subject=title,
                html=email_service.render_generic(title, template_data['name'], message),
            )

    return notification


def notifications_for_user(user_id, unread_only=False):
    query = Notification.query.filter_by(user_id=user_id)
    if unread_only:
        query = query.filter_by(is_read=False)
    return query.order_by(Notification.created_at.desc()).all()


def mark_read(user_id, notification_id):
    notification = Notification.query.filter_by(id=notification_id, user_id=user_id).first()
    if not notification:
        raise NotFoundError('Notification not found')
    notification.is_read = True
    db.session.commit()
    return notification
