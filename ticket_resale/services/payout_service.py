"""
Payout Service
Pays a seller's share of a completed sale out through the payout gateway.

The payout row stays locked (SELECT ... FOR UPDATE) while the gateway is
called, so two requests for the same payout cannot both transfer money.
"""

import logging

from flask import current_app

from ticket_resale.extensions import db
from ticket_resale.errors import (
    MarketplaceError,
    NotFoundError,
    PaymentGatewayError,
    PayoutNotPendingError,
    PermanentGatewayError,
    ValidationError,
)
from ticket_resale.models import Payout
from ticket_resale.services.common import parse_uuid, require_email_verified, utcnow
from ticket_resale.services.notification_service import build_notification
from ticket_resale.services.providers import get_provider

logger = logging.getLogger(__name__)


def resolve_destination(upi_id=None, phone_number=None):
    if upi_id:
        return upi_id.strip()
    if phone_number:
        return f"{phone_number.strip()}{current_app.config['PHONE_VPA_SUFFIX']}"
    raise ValidationError("Missing required fields: payout_id and (upi_id or phone_number)")


def issue_payout(seller, payout_id, upi_id=None, phone_number=None):
    """
    pending -> processed on success.
    pending -> failed when the gateway rejects the request for good.
    Stays pending on retryable gateway errors.
    """
    require_email_verified(seller)
    payout_id = parse_uuid(payout_id, "payout_id")
    destination = resolve_destination(upi_id, phone_number)

    try:
        payout = Payout.query.filter_by(id=payout_id).with_for_update().first()
        if not payout or payout.seller_id != seller.user_id:
            raise NotFoundError("Payout not found")
        if payout.status != "pending":
            raise PayoutNotPendingError(f"Payout already {payout.status}")

        provider = get_provider(current_app.config["PAYOUT_PROVIDER"])
        try:
            result = provider.create_payout(
                amount=payout.amount,
                currency=current_app.config["CURRENCY"],
                destination=destination,
                reference=f"payout_{payout.id.hex}",
            )
        except PermanentGatewayError as e:
            payout.status = "failed"
            payout.failure_reason = e.detail or e.message
            payout.destination = destination
            payout.upi_id = upi_id
            payout.phone_number = phone_number
            build_notification(
                seller.user_id,
                "Payout Failed",
                "We could not send your payout. Our team will review it and get in touch.",
                type="payment",
                data={"payout_id": str(payout.id)},
            )
            db.session.commit()
            logger.error("Payout %s failed permanently: %s", payout.id, payout.failure_reason)
            raise
        except PaymentGatewayError:
            db.session.rollback()
            logger.warning("Payout %s left pending after retryable gateway error", payout_id)
            raise

        payout.status = "processed"
        payout.external_payout_id = result.payout_id
        payout.destination = destination
        payout.upi_id = upi_id
        payout.phone_number = phone_number
        payout.processed_at = utcnow()
        build_notification(
            seller.user_id,
            "Payment Sent!",
            f"₹{payout.amount} has been sent to {destination}. It may take 1-2 hours to reflect.",
            type="payment",
            data={"payout_id": str(payout.id)},
        )
        db.session.commit()
    except PaymentGatewayError:
        raise
    except MarketplaceError:
        db.session.rollback()
        raise
    except Exception:
        db.session.rollback()
        logger.error("RECONCILE: payout %s may have been sent but was not recorded", payout_id)
        raise

    logger.info("Payout %s processed: %s -> %s (%s)", payout.id, payout.amount, destination, result.payout_id)
    return payout


def payouts_for_seller(seller_id):
    return Payout.query.filter_by(seller_id=seller_id).order_by(Payout.created_at.desc()).all()


def list_payouts(status=None):
    query = Payout.query
    if status:
        if status not in ("pending", "processed", "failed"):
            raise ValidationError("status must be pending, processed or failed")
        query = query.filter_by(status=status)
    return query.order_by(Payout.created_at.desc()).all()
