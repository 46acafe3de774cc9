"""
Ticket Model
Status: available | pending_purchase | sold | cancelled
Verification: pending | verified | rejected
"""

import uuid
from datetime import datetime, timezone
from ticket_resale.extensions import db

TICKET_STATUSES = ('available', 'pending_purchase', 'sold', 'cancelled')
VERIFICATION_STATUSES = ('pending', 'verified', 'rejected')


class Ticket(db.Model):
    __tablename__ = 'tickets'

    id = db.Column(db.Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    seller_id = db.Column(db.Uuid(as_uuid=True), db.ForeignKey('users.user_id'), nullable=False, index=True)
    buyer_id = db.Column(db.Uuid(as_uuid=True), db.ForeignKey('users.user_id'), nullable=True)
    pnr_number = db.Column(db.String(50), nullable=False)
    bus_operator = db.Column(db.String(255))
    passenger_name = db.Column(db.String(255))
    from_location = db.Column(db.String(255), nullable=False)
    to_location = db.Column(db.String(255), nullable=False)
    departure_date = db.Column(db.Date, nullable=False)
    departure_time = db.Column(db.String(10))
    seat_number = db.Column(db.String(20))
    ticket_price = db.Column(db.Numeric(10, 2), nullable=False)
    selling_price = db.Column(db.Numeric(10, 2), nullable=False)
    status = db.Column(
        db.Enum(*TICKET_STATUSES, name='ticket_status'),
        nullable=False,
        default='available',
        index=True,
    )
    verification_status = db.Column(
        db.Enum(*VERIFICATION_STATUSES, name='ticket_verification_status'),
        nullable=False,
        default='pending',
    )
    verified_at = db.Column(db.DateTime(timezone=True), nullable=True)
    sold_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )

    def to_dict(self):
        return {
            "id":                  str(self.id),
            "seller_id":           str(self.seller_id),
            "buyer_id":            str(self.buyer_id) if self.buyer_id else None,
            "pnr_number":          self.pnr_number,
            "bus_operator":        self.bus_operator,
            "passenger_name":      self.passenger_name,
            "from_location":       self.from_location,
            "to_location":         self.to_location,
            "departure_date":      self.departure_date.isoformat(),
            "departure_time":      self.departure_time,
            "seat_number":         self.seat_number,
            "ticket_price":        float(self.ticket_price),
            "selling_price":       float(self.selling_price),
            "status":              self.status,
            "verification_status": self.verification_status,
            "sold_at":             self.sold_at.isoformat() if self.sold_at else None,
            "created_at":          self.created_at.isoformat(),
        }

    def to_public_dict(self):
        """Listing view: hides the PNR and passenger until the ticket is bought."""
        data = self.to_dict()
        data.pop("pnr_number")
        data.pop("passenger_name")
        return data
