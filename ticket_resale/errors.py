"""
Error taxonomy for the marketplace.

Every error carries the HTTP status it maps to, a stable ``error_code`` and a
message that is safe to show to the caller. Gateway detail is never put in the
message; it goes to the log.
"""

from flask import jsonify


class MarketplaceError(Exception):
    status_code = 400
    error_code = 'BAD_REQUEST'
    message = 'The request could not be processed.'

    def __init__(self, message=None, error_code=None):
        super().__init__(message or self.message)
        if message:
            self.message = message
        if error_code:
            self.error_code = error_code

    def to_dict(self):
        return {
            'success': False,
            'error_code': self.error_code,
            'message': self.message,
        }


class AuthenticationError(MarketplaceError):
    status_code = 401
    error_code = 'AUTHENTICATION_FAILED'
    message = 'Authentication required.'


class EmailNotVerifiedError(MarketplaceError):
    status_code = 403
    error_code = 'EMAIL_NOT_VERIFIED'
    message = 'Please verify your email address first.'


class ForbiddenError(MarketplaceError):
    status_code = 403
    error_code = 'FORBIDDEN'
    message = 'You are not allowed to perform this action.'


class ValidationError(MarketplaceError):
    status_code = 400
    error_code = 'VALIDATION_ERROR'
    message = 'Invalid input.'


class NotFoundError(MarketplaceError):
    status_code = 404
    error_code = 'NOT_FOUND'
    message = 'The requested resource could not be found.'


class TicketUnavailableError(MarketplaceError):
    status_code = 409
    error_code = 'TICKET_UNAVAILABLE'
    message = 'Ticket not found or not available.'


class SelfPurchaseError(MarketplaceError):
    status_code = 400
    error_code = 'SELF_PURCHASE'
    message = 'Cannot purchase your own ticket.'


class PaymentGatewayError(MarketplaceError):
    """Gateway call failed. ``retryable`` tells the caller whether trying again may help."""
    status_code = 502
    error_code = 'PAYMENT_GATEWAY_ERROR'
    message = 'The payment could not be processed. Please try again.'
    retryable = True

    def __init__(self, message=None, error_code=None, detail=None):
        super().__init__(message, error_code)
        self.detail = detail


class PermanentGatewayError(PaymentGatewayError):
    status_code = 422
    error_code = 'PAYMENT_REJECTED'
    message = 'The payment provider rejected the request.'
    retryable = False


class SignatureError(MarketplaceError):
    status_code = 400
    error_code = 'INVALID_SIGNATURE'
    message = 'Invalid payment signature.'


class InconsistencyError(MarketplaceError):
    status_code = 409
    error_code = 'TRANSACTION_INCONSISTENT'
    message = 'Transaction not found. Our team has been notified.'


class PayoutNotPendingError(MarketplaceError):
    status_code = 409
    error_code = 'PAYOUT_NOT_PENDING'
    message = 'Payout already processed.'


class InvalidStateError(MarketplaceError):
    status_code = 409
    error_code = 'INVALID_STATE'
    message = 'The resource is not in a state that allows this action.'


def register_error_handlers(app):
    @app.errorhandler(MarketplaceError)
    def handle_marketplace_error(error):
        return jsonify(error.to_dict()), error.status_code
