"""
Payout Model
Status: pending | processed | failed
"""

import uuid
from datetime import datetime, timezone
from ticket_resale.extensions import db

PAYOUT_STATUSES = ('pending', 'processed', 'failed')


class Payout(db.Model):
    __tablename__ = "seller_payouts"

    id = db.Column(db.Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    # One payout per completed transaction
    transaction_id = db.Column(
        db.Uuid(as_uuid=True), db.ForeignKey('transactions.id'), nullable=False, unique=True
    )
    seller_id = db.Column(db.Uuid(as_uuid=True), db.ForeignKey('users.user_id'), nullable=False, index=True)
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    status = db.Column(
        db.Enum(*PAYOUT_STATUSES, name="payout_status"),
        nullable=False,
        default="pending"
    )
    external_payout_id = db.Column(db.String(255), nullable=True)
    destination = db.Column(db.String(255), nullable=True)
    upi_id = db.Column(db.String(255), nullable=True)
    phone_number = db.Column(db.String(20), nullable=True)
    failure_reason = db.Column(db.Text, nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )
    processed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    transaction = db.relationship('Transaction', backref=db.backref('payout', uselist=False))

    def to_dict(self):
        return {
            "id":                 str(self.id),
            "transaction_id":     str(self.transaction_id),
            "seller_id":          str(self.seller_id),
            "amount":             float(self.amount),
            "status":             self.status,
            "external_payout_id": self.external_payout_id,
            "destination":        self.destination,
            "created_at":         self.created_at.isoformat(),
            "processed_at":       self.processed_at.isoformat() if self.processed_at else None,
        }

    def to_admin_dict(self):
        data = self.to_dict()
        data["failure_reason"] = self.failure_reason
        data["upi_id"] = self.upi_id
        data["phone_number"] = self.phone_number
        return data
