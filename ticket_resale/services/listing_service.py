"""
Listing Service
Creates listings and answers ticket queries. Moderation transitions are
conditional updates so they cannot clobber an in-flight purchase.
"""

import logging
from datetime import date
from decimal import InvalidOperation

from sqlalchemy import update

from ticket_resale.extensions import db
from ticket_resale.errors import InvalidStateError, NotFoundError, ValidationError
from ticket_resale.models import Ticket
from ticket_resale.services.common import (
    parse_uuid,
    require_admin,
    require_email_verified,
    require_kyc_verified,
    utcnow,
)
from ticket_resale.services.fees import to_decimal

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ["pnr_number", "from_location", "to_location", "departure_date", "ticket_price", "selling_price"]


def _price(data, field):
    try:
        value = to_decimal(data[field])
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"Invalid {field}")
    if not value.is_finite() or value <= 0:
        raise ValidationError(f"{field} must be greater than zero")
    return value


def create_listing(seller, data):
    require_email_verified(seller)
    require_kyc_verified(seller)

    missing = [f for f in REQUIRED_FIELDS if data.get(f) in (None, "")]
    if missing:
        raise ValidationError(f"Missing fields: {', '.join(missing)}")

    ticket_price = _price(data, "ticket_price")
    selling_price = _price(data, "selling_price")
    if selling_price > ticket_price:
        raise ValidationError(
            "Selling price cannot be higher than original ticket price",
            error_code="PRICE_ABOVE_FACE_VALUE",
        )

    try:
        departure_date = date.fromisoformat(str(data["departure_date"]))
    except ValueError:
        raise ValidationError("departure_date must be YYYY-MM-DD")

    already_listed = Ticket.query.filter(
        Ticket.pnr_number == data["pnr_number"],
        Ticket.status.in_(("available", "pending_purchase", "sold")),
    ).first()
    if already_listed:
        raise InvalidStateError("This ticket is already listed", error_code="DUPLICATE_LISTING")

    ticket = Ticket(
        seller_id=seller.user_id,
        pnr_number=data["pnr_number"],
        bus_operator=data.get("bus_operator"),
        passenger_name=data.get("passenger_name"),
        from_location=data["from_location"],
        to_location=data["to_location"],
        departure_date=departure_date,
        departure_time=data.get("departure_time"),
        seat_number=data.get("seat_number"),
        ticket_price=ticket_price,
        selling_price=selling_price,
        status="available",
        verification_status="pending",
    )
    try:
        db.session.add(ticket)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info("Ticket %s listed by %s", ticket.id, seller.user_id)
    return ticket


def list_available_tickets(from_location=None, to_location=None, departure_date=None, page=1, per_page=20):
    query = Ticket.query.filter(
        Ticket.status == "available",
        Ticket.verification_status != "rejected",
    )
    if from_location:
        query = query.filter(Ticket.from_location.ilike(f"%{from_location}%"))
    if to_location:
        query = query.filter(Ticket.to_location.ilike(f"%{to_location}%"))
    if departure_date:
        try:
            query = query.filter(Ticket.departure_date == date.fromisoformat(departure_date))
        except ValueError:
            raise ValidationError("departure_date must be YYYY-MM-DD")

    pagination = query.order_by(Ticket.departure_date, Ticket.selling_price).paginate(
        page=page, per_page=per_page, error_out=False
    )
    return {
        "data": [t.to_public_dict() for t in pagination.items],
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": pagination.total,
            "total_pages": pagination.pages,
        },
    }


def get_ticket(ticket_id):
    ticket = db.session.get(Ticket, parse_uuid(ticket_id, "ticket_id"))
    if not ticket:
        raise NotFoundError("Ticket not found")
    return ticket


def ticket_view(ticket, viewer):
    """Full detail for the seller, the buyer and admins; listing view for everyone else."""
    if viewer is not None and (viewer.is_admin or viewer.user_id in (ticket.seller_id, ticket.buyer_id)):
        return ticket.to_dict()
    return ticket.to_public_dict()


def tickets_for_user(user_id):
    listed = Ticket.query.filter_by(seller_id=user_id).order_by(Ticket.created_at.desc()).all()
    purchased = Ticket.query.filter_by(buyer_id=user_id).order_by(Ticket.sold_at.desc()).all()
    return {
        "listed": [t.to_dict() for t in listed],
        "purchased": [t.to_dict() for t in purchased],
    }


def _conditional_update(ticket_id, expected_statuses, **values):
    result = db.session.execute(
        update(Ticket)
        .where(Ticket.id == ticket_id, Ticket.status.in_(expected_statuses))
        .values(**values)
    )
    return result.rowcount == 1


def cancel_ticket(actor, ticket_id):
    """Seller withdraws, or an admin takes down, a listing nobody is paying for."""
    ticket = get_ticket(ticket_id)
    if not actor.is_admin and actor.user_id != ticket.seller_id:
        raise NotFoundError("Ticket not found")

    if not _conditional_update(ticket.id, ("available",), status="cancelled"):
        db.session.rollback()
        raise InvalidStateError(f"Cannot cancel a ticket that is {ticket.status}")
    db.session.commit()
    db.session.refresh(ticket)
    logger.info("Ticket %s cancelled by %s", ticket.id, actor.user_id)
    return ticket


def verify_ticket(admin, ticket_id):
    require_admin(admin)
    ticket = get_ticket(ticket_id)
    if ticket.verification_status != "pending":
        raise InvalidStateError(f"Ticket verification is already {ticket.verification_status}")
    ticket.verification_status = "verified"
    ticket.verified_at = utcnow()
    db.session.commit()
    return ticket


def reject_ticket(admin, ticket_id):
    """Moderation: mark the listing rejected and pull it off sale if still available."""
    require_admin(admin)
    ticket = get_ticket(ticket_id)
    if not _conditional_update(
        ticket.id, ("available", "cancelled"), status="cancelled", verification_status="rejected"
    ):
        db.session.rollback()
        raise InvalidStateError(f"Cannot reject a ticket that is {ticket.status}")
    db.session.commit()
    db.session.refresh(ticket)
    logger.info("Ticket %s rejected by admin %s", ticket.id, admin.user_id)
    return ticket
