"""
KYC Submission Model
Status: uploaded | in_review | verified | rejected
"""

import uuid
from datetime import datetime, timezone
from ticket_resale.extensions import db

SUBMISSION_STATUSES = ('uploaded', 'in_review', 'verified', 'rejected')
DOCUMENT_TYPES = ('aadhaar', 'pan', 'passport', 'driving_license', 'voter_id')


class KycSubmission(db.Model):
    __tablename__ = 'kyc_submissions'

    id = db.Column(db.Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = db.Column(db.Uuid(as_uuid=True), db.ForeignKey('users.user_id'), nullable=False, index=True)
    document_type = db.Column(db.String(50), nullable=False)
    document_number = db.Column(db.String(100), nullable=False)
    # Object storage key of the uploaded document, managed outside this service
    document_path = db.Column(db.Text, nullable=True)
    status = db.Column(
        db.Enum(*SUBMISSION_STATUSES, name='kyc_submission_status'),
        nullable=False,
        default='uploaded'
    )
    reviewer_id = db.Column(db.Uuid(as_uuid=True), db.ForeignKey('users.user_id'), nullable=True)
    rejection_reason = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    reviewed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self):
        return {
            'id': str(self.id),
            'user_id': str(self.user_id),
            'document_type': self.document_type,
            'document_number': self.document_number,
            'document_path': self.document_path,
            'status': self.status,
            'reviewer_id': str(self.reviewer_id) if self.reviewer_id else None,
            'rejection_reason': self.rejection_reason,
            'created_at': self.created_at.isoformat(),
            'reviewed_at': self.reviewed_at.isoformat() if self.reviewed_at else None,
        }
