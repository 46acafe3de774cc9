"""
Reconciliation Service
Releases tickets whose purchase was opened but never paid or failed.
There is no built-in timeout: the operator chooses the age.
"""

import logging
from datetime import timedelta

from ticket_resale.errors import ValidationError
from ticket_resale.models import Transaction
from ticket_resale.services.common import utcnow
from ticket_resale.services.settlement_service import fail_transaction

logger = logging.getLogger(__name__)


def release_stale_purchases(older_than_minutes):
    if older_than_minutes is None or older_than_minutes <= 0:
        raise ValidationError("older_than_minutes must be a positive number of minutes")

    cutoff = utcnow() - timedelta(minutes=older_than_minutes)
    stale = (
        Transaction.query
        .filter(Transaction.status == "pending", Transaction.created_at < cutoff)
        .order_by(Transaction.created_at)
        .all()
    )

    released = []
    for transaction in stale:
        # A concurrent settlement wins; fail_transaction then returns False
        if fail_transaction(transaction, "abandoned"):
            released.append(transaction.id)

    logger.info("Released %d of %d stale purchases older than %d minutes",
                len(released), len(stale), older_than_minutes)
    return released
