"""
Purchase Service
Opens a purchase: gateway order first, then the local rows.

A gateway failure therefore leaves nothing behind locally. The reverse gap
remains: if the process dies after the gateway created the order but before
the commit below, the gateway holds an orphan order that nobody can pay
against our records.
"""

import logging
from decimal import InvalidOperation

from flask import current_app
from sqlalchemy import update

from ticket_resale.extensions import db
from ticket_resale.errors import (
    SelfPurchaseError,
    TicketUnavailableError,
    ValidationError,
)
from ticket_resale.models import Ticket, Transaction
from ticket_resale.services.common import parse_uuid, require_email_verified
from ticket_resale.services.fees import compute_fees, to_decimal
from ticket_resale.services.providers import get_provider

logger = logging.getLogger(__name__)


def create_purchase_order(buyer, ticket_id, amount, gateway):
    """
    Validate the purchase, create the gateway order and reserve the ticket.
    Returns (transaction, order_result).
    """
    require_email_verified(buyer)
    ticket_id = parse_uuid(ticket_id, "ticket_id")
    if amount in (None, ""):
        raise ValidationError("Missing required fields: ticket_id, amount")
    try:
        amount = to_decimal(amount)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError("Invalid amount")

    ticket = db.session.get(Ticket, ticket_id)
    if not ticket or ticket.status != "available":
        raise TicketUnavailableError()
    if ticket.seller_id == buyer.user_id:
        raise SelfPurchaseError()
    if amount != ticket.selling_price:
        raise ValidationError("Amount does not match the ticket price", error_code="AMOUNT_MISMATCH")

    platform_fee, seller_amount = compute_fees(ticket.selling_price, current_app.config["PLATFORM_FEE_RATE"])
    provider = get_provider(gateway)

    # Raises PaymentGatewayError; nothing has been written yet
    order = provider.create_order(
        amount=ticket.selling_price,
        currency=current_app.config["CURRENCY"],
        receipt=f"tkt_{ticket.id.hex}",
        metadata={
            "ticket_id": str(ticket.id),
            "buyer_id": str(buyer.user_id),
            "seller_id": str(ticket.seller_id),
            "platform_fee": str(platform_fee),
            "type": "ticket_purchase",
        },
        customer_email=buyer.email,
        description=f"Bus ticket from {ticket.from_location} to {ticket.to_location}",
    )

    try:
        # Only the request that flips available -> pending_purchase gets a transaction
        claimed = db.session.execute(
            update(Ticket)
            .where(Ticket.id == ticket.id, Ticket.status == "available")
            .values(status="pending_purchase")
        ).rowcount == 1

        if claimed:
            transaction = Transaction(
                ticket_id=ticket.id,
                buyer_id=buyer.user_id,
                seller_id=ticket.seller_id,
                gateway=provider.name,
                amount=ticket.selling_price,
                platform_fee=platform_fee,
                gateway_order_id=order.order_id,
                status="pending",
                escrow_status="held",
            )
            db.session.add(transaction)
            db.session.commit()
    except Exception:
        db.session.rollback()
        logger.error("Failed to persist purchase of ticket %s; gateway order %s is orphaned",
                     ticket.id, order.order_id)
        raise

    if not claimed:
        db.session.rollback()
        logger.warning("Ticket %s taken concurrently; gateway order %s left unpaid", ticket.id, order.order_id)
        raise TicketUnavailableError()

    logger.info("Purchase opened: ticket=%s buyer=%s order=%s fee=%s seller_amount=%s",
                ticket.id, buyer.user_id, order.order_id, platform_fee, seller_amount)
    return transaction, order
