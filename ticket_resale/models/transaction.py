"""
Transaction Model
Status: pending | completed | failed | refunded
Escrow: held | released
"""

import uuid
from datetime import datetime, timezone
from ticket_resale.extensions import db

TRANSACTION_STATUSES = ('pending', 'completed', 'failed', 'refunded')
ESCROW_STATUSES = ('held', 'released')
GATEWAYS = ('razorpay', 'stripe')


class Transaction(db.Model):
    __tablename__ = "transactions"

    id = db.Column(db.Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    ticket_id = db.Column(db.Uuid(as_uuid=True), db.ForeignKey('tickets.id'), nullable=False, index=True)
    buyer_id = db.Column(db.Uuid(as_uuid=True), db.ForeignKey('users.user_id'), nullable=False)
    seller_id = db.Column(db.Uuid(as_uuid=True), db.ForeignKey('users.user_id'), nullable=False)
    gateway = db.Column(db.Enum(*GATEWAYS, name="payment_gateway"), nullable=False)
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    platform_fee = db.Column(db.Numeric(10, 2), nullable=False)
    # Razorpay order id or Stripe payment intent id
    gateway_order_id = db.Column(db.String(255), nullable=False, unique=True)
    gateway_payment_id = db.Column(db.String(255), nullable=True)
    status = db.Column(
        db.Enum(*TRANSACTION_STATUSES, name="transaction_status"),
        nullable=False,
        default="pending"
    )
    escrow_status = db.Column(
        db.Enum(*ESCROW_STATUSES, name="escrow_status"),
        nullable=False,
        default="held"
    )
    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    ticket = db.relationship('Ticket', backref=db.backref('transactions', lazy=True))

    @property
    def seller_amount(self):
        return self.amount - self.platform_fee

    def to_dict(self):
        return {
            "id":                 str(self.id),
            "ticket_id":          str(self.ticket_id),
            "buyer_id":           str(self.buyer_id),
            "seller_id":          str(self.seller_id),
            "gateway":            self.gateway,
            "amount":             float(self.amount),
            "platform_fee":       float(self.platform_fee),
            "seller_amount":      float(self.seller_amount),
            "gateway_order_id":   self.gateway_order_id,
            "gateway_payment_id": self.gateway_payment_id,
            "status":             self.status,
            "escrow_status":      self.escrow_status,
            "created_at":         self.created_at.isoformat(),
            "completed_at":       self.completed_at.isoformat() if self.completed_at else None,
        }
