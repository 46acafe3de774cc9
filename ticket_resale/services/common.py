import uuid
from datetime import datetime, timezone

from ticket_resale.errors import (
    EmailNotVerifiedError,
    ForbiddenError,
    ValidationError,
)


def utcnow():
    return datetime.now(timezone.utc)


def parse_uuid(value, field):
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {field}")


def require_email_verified(user):
    if not user.email_verified:
        raise EmailNotVerifiedError()


def require_kyc_verified(user):
    if user.kyc_status != 'verified':
        raise ForbiddenError('Complete KYC verification first', error_code='KYC_NOT_VERIFIED')


def require_admin(user):
    if not user.is_admin:
        raise ForbiddenError('Admin access required')
