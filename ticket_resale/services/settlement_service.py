"""
Settlement Service
Commits a verified payment, and records failed ones.

Callers must have established authenticity (signature, signed webhook or a
server-side gateway lookup) before calling in here. Everything a settlement
writes happens in one database transaction, and the pending -> completed
update on the transaction row is the single point that decides whether this
call settles or is a replay.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import update

from ticket_resale.extensions import db
from ticket_resale.errors import InconsistencyError, ValidationError
from ticket_resale.models import Payout, Ticket, Transaction, User
from ticket_resale.services import email_service
from ticket_resale.services.common import utcnow
from ticket_resale.services.notification_service import build_notification

logger = logging.getLogger(__name__)


@dataclass
class SettlementResult:
    transaction: Transaction
    payout: Optional[Payout]
    already_settled: bool = False


def _find_transaction(order_id):
    return Transaction.query.filter_by(gateway_order_id=order_id).first()


def settle_payment(order_id, payment_id, buyer_id=None, ticket_id=None, source="verify"):
    """
    Mark the transaction completed, the ticket sold and queue the seller payout.
    ``buyer_id`` restricts the lookup to the authenticated buyer (client path);
    ``ticket_id``, when the client sends one, must match the transaction.
    Replays of an already settled payment return ``already_settled=True``.
    """
    transaction = _find_transaction(order_id)
    if not transaction or (buyer_id is not None and transaction.buyer_id != buyer_id):
        logger.error(
            "RECONCILE: verified payment without matching transaction "
            "(source=%s order=%s payment=%s buyer=%s)", source, order_id, payment_id, buyer_id
        )
        raise InconsistencyError()
    if ticket_id is not None and transaction.ticket_id != ticket_id:
        raise ValidationError("ticket_id does not match this payment")

    now = utcnow()
    try:
        completed = db.session.execute(
            update(Transaction)
            .where(Transaction.id == transaction.id, Transaction.status == "pending")
            .values(
                status="completed",
                escrow_status="released",
                gateway_payment_id=payment_id,
                completed_at=now,
            )
        ).rowcount == 1

        if not completed:
            db.session.rollback()
            db.session.refresh(transaction)
            if transaction.status == "completed":
                logger.info("Duplicate settlement ignored (source=%s order=%s)", source, order_id)
                return SettlementResult(transaction, transaction.payout, already_settled=True)
            logger.error(
                "RECONCILE: payment %s captured for %s transaction %s (source=%s order=%s)",
                payment_id, transaction.status, transaction.id, source, order_id
            )
            raise InconsistencyError()

        sold = db.session.execute(
            update(Ticket)
            .where(Ticket.id == transaction.ticket_id, Ticket.status == "pending_purchase")
            .values(status="sold", buyer_id=transaction.buyer_id, sold_at=now)
        ).rowcount == 1
        if not sold:
            logger.error(
                "RECONCILE: ticket %s not pending_purchase while settling transaction %s (order=%s)",
                transaction.ticket_id, transaction.id, order_id
            )
            raise InconsistencyError()

        payout = Payout(
            transaction_id=transaction.id,
            seller_id=transaction.seller_id,
            amount=transaction.amount - transaction.platform_fee,
            status="pending",
        )
        db.session.add(payout)
        db.session.flush()

        db.session.execute(
            update(User)
            .where(User.user_id == transaction.buyer_id)
            .values(
                successful_purchases=User.successful_purchases + 1,
                total_transactions=User.total_transactions + 1,
            )
        )
        db.session.execute(
            update(User)
            .where(User.user_id == transaction.seller_id)
            .values(
                successful_sales=User.successful_sales + 1,
                total_transactions=User.total_transactions + 1,
            )
        )

        build_notification(
            transaction.seller_id,
            "Ticket Sold!",
            f"Your ticket has been sold. ₹{payout.amount} will be paid out once you request the payout.",
            type="payment",
            data={"transaction_id": str(transaction.id), "payout_id": str(payout.id)},
        )
        build_notification(
            transaction.buyer_id,
            "Purchase Successful!",
            "Your ticket purchase is confirmed. Check your email for ticket details.",
            type="payment",
            data={"transaction_id": str(transaction.id), "ticket_id": str(transaction.ticket_id)},
        )

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    db.session.refresh(transaction)
    logger.info("Settled transaction %s (source=%s order=%s payment=%s)",
                transaction.id, source, order_id, payment_id)
    _send_confirmation_email(transaction)
    return SettlementResult(transaction, payout)


def _send_confirmation_email(transaction):
    buyer = db.session.get(User, transaction.buyer_id)
    ticket = transaction.ticket
    if not buyer or not ticket:
        return
    email_service.send_email(
        buyer.email,
        template="ticket_confirmation",
        template_data={
            "buyerName": buyer.full_name,
            "fromLocation": ticket.from_location,
            "toLocation": ticket.to_location,
            "departureDate": ticket.departure_date.isoformat(),
            "departureTime": ticket.departure_time,
            "busOperator": ticket.bus_operator,
            "seatNumber": ticket.seat_number,
            "pnrNumber": ticket.pnr_number,
            "amount": transaction.amount,
        },
    )


def fail_transaction(transaction, reason):
    """
    pending -> failed, and put the ticket back on sale.
    Returns False when the transaction was no longer pending.
    """
    try:
        failed = db.session.execute(
            update(Transaction)
            .where(Transaction.id == transaction.id, Transaction.status == "pending")
            .values(status="failed")
        ).rowcount == 1
        if not failed:
            db.session.rollback()
            return False

        db.session.execute(
            update(Ticket)
            .where(Ticket.id == transaction.ticket_id, Ticket.status == "pending_purchase")
            .values(status="available", buyer_id=None)
        )
        build_notification(
            transaction.buyer_id,
            "Payment Failed",
            "Your payment could not be completed. The ticket has been released.",
            type="payment",
            data={"transaction_id": str(transaction.id), "reason": reason},
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info("Transaction %s failed (%s); ticket %s released", transaction.id, reason, transaction.ticket_id)
    return True


def mark_payment_failed(order_id, reason="payment_failed"):
    transaction = _find_transaction(order_id)
    if not transaction:
        logger.warning("Payment failure for unknown order %s ignored", order_id)
        return None
    fail_transaction(transaction, reason)
    db.session.refresh(transaction)
    return transaction


def record_failed_attempt(order_id, payment_id=None):
    """
    One payment attempt failed. The buyer can retry on the same order or
    intent, so the transaction stays pending and the ticket stays reserved;
    a cancellation event or the stale-purchase sweep releases it.
    """
    transaction = _find_transaction(order_id)
    if not transaction:
        logger.warning("Failed payment attempt for unknown order %s ignored", order_id)
        return None
    if transaction.status != "pending":
        logger.info("Failed attempt %s on %s transaction %s ignored", payment_id, transaction.status, transaction.id)
        return transaction

    logger.info("Payment attempt %s failed for transaction %s (order=%s)", payment_id, transaction.id, order_id)
    build_notification(
        transaction.buyer_id,
        "Payment Attempt Failed",
        "Your payment did not go through. You can try again to complete the purchase.",
        type="payment",
        data={"transaction_id": str(transaction.id), "payment_id": payment_id},
    )
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return transaction
