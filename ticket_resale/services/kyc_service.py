"""
KYC Service
uploaded -> in_review -> verified | rejected

A submission enters review when an admin opens the video verification
session; only an explicit admin decision finishes it. The profile's
kyc_status mirrors the decision.
"""

import logging

from sqlalchemy import update

from ticket_resale.extensions import db
from ticket_resale.errors import InvalidStateError, NotFoundError, ValidationError
from ticket_resale.models import KycSubmission, User
from ticket_resale.models.kyc import DOCUMENT_TYPES
from ticket_resale.services.common import parse_uuid, require_admin, utcnow
from ticket_resale.services.notification_service import send_notification

logger = logging.getLogger(__name__)

OPEN_STATUSES = ("uploaded", "in_review")
DECISIONS = ("verified", "rejected")


def submit_kyc(user, data):
    document_type = (data.get("document_type") or "").lower()
    document_number = (data.get("document_number") or "").strip()
    if document_type not in DOCUMENT_TYPES:
        raise ValidationError(f"document_type must be one of: {', '.join(DOCUMENT_TYPES)}")
    if not document_number:
        raise ValidationError("Missing document_number")

    if user.kyc_status == "verified":
        raise InvalidStateError("KYC already verified")
    open_submission = KycSubmission.query.filter(
        KycSubmission.user_id == user.user_id,
        KycSubmission.status.in_(OPEN_STATUSES),
    ).first()
    if open_submission:
        raise InvalidStateError("A KYC submission is already awaiting review")

    submission = KycSubmission(
        user_id=user.user_id,
        document_type=document_type,
        document_number=document_number,
        document_path=data.get("document_path"),
        status="uploaded",
    )
    user.kyc_status = "pending"
    try:
        db.session.add(submission)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return submission


def latest_submission(user_id):
    return (
        KycSubmission.query.filter_by(user_id=user_id)
        .order_by(KycSubmission.created_at.desc())
        .first()
    )


def open_submissions():
    return (
        KycSubmission.query.filter(KycSubmission.status.in_(OPEN_STATUSES))
        .order_by(KycSubmission.created_at)
        .all()
    )


def _get_submission(submission_id):
    submission = db.session.get(KycSubmission, parse_uuid(submission_id, "submission_id"))
    if not submission:
        raise NotFoundError("KYC submission not found")
    return submission


def start_review(admin, submission_id):
    require_admin(admin)
    submission = _get_submission(submission_id)
    started = db.session.execute(
        update(KycSubmission)
        .where(KycSubmission.id == submission.id, KycSubmission.status == "uploaded")
        .values(status="in_review", reviewer_id=admin.user_id)
    ).rowcount == 1
    if not started:
        db.session.rollback()
        raise InvalidStateError(f"Submission is {submission.status}")
    db.session.commit()
    db.session.refresh(submission)
    return submission


def decide(admin, submission_id, decision, reason=None):
    require_admin(admin)
    if decision not in DECISIONS:
        raise ValidationError("decision must be 'verified' or 'rejected'")
    submission = _get_submission(submission_id)

    try:
        decided = db.session.execute(
            update(KycSubmission)
            .where(KycSubmission.id == submission.id, KycSubmission.status == "in_review")
            .values(
                status=decision,
                reviewer_id=admin.user_id,
                rejection_reason=reason if decision == "rejected" else None,
                reviewed_at=utcnow(),
            )
        ).rowcount == 1
        if not decided:
            db.session.rollback()
            raise InvalidStateError(f"Submission is {submission.status}, not in review")

        db.session.execute(
            update(User).where(User.user_id == submission.user_id).values(kyc_status=decision)
        )
        db.session.commit()
    except InvalidStateError:
        raise
    except Exception:
        db.session.rollback()
        raise

    db.session.refresh(submission)
    logger.info("KYC submission %s %s by admin %s", submission.id, decision, admin.user_id)

    if decision == "verified":
        send_notification(
            submission.user_id,
            "KYC Verification Approved",
            "Your identity has been verified. You can now buy and sell tickets.",
            type="kyc",
            send_email=True,
            email_template="kyc_approved",
        )
    else:
        send_notification(
            submission.user_id,
            "KYC Verification - Action Required",
            reason or "Please resubmit your documents with clearer images.",
            type="kyc",
            data={"reason": reason} if reason else None,
            send_email=True,
            email_template="kyc_rejected",
        )
    return submission
