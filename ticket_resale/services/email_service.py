"""
Email Service
Renders the transactional templates and hands them to the configured
HTTP e-mail API. Every attempt is recorded in email_logs.
"""

import logging
from html import escape

import requests
from flask import current_app

from ticket_resale.extensions import db
from ticket_resale.models import EmailLog

logger = logging.getLogger(__name__)

FOOTER = "<p>Best regards,<br>Ticket Marketplace Team</p>"


def _button(url, label, colour):
    return (
        f'<div style="text-align: center; margin: 30px 0;">'
        f'<a href="{escape(url)}" style="background-color: {colour}; color: white; padding: 12px 24px; '
        f'text-decoration: none; border-radius: 6px; display: inline-block;">{label}</a></div>'
    )


def _wrap(body):
    return f'<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">{body}{FOOTER}</div>'


def _verification(data):
    url = data.get('verificationUrl', '')
    return 'Verify Your Email - Ticket Marketplace', _wrap(
        f'<h2 style="color: #2563eb;">Verify Your Email Address</h2>'
        f'<p>Hello {escape(data.get("name") or "User")},</p>'
        f'<p>Thank you for signing up! Please verify your email address by clicking the button below:</p>'
        f'{_button(url, "Verify Email Address", "#2563eb")}'
        f'<p>If the button doesn\'t work, copy and paste this link into your browser:</p>'
        f'<p>{escape(url)}</p><p>This link will expire in 24 hours.</p>'
    )


def _ticket_confirmation(data):
    rows = [
        ('Route', f'{data.get("fromLocation", "")} → {data.get("toLocation", "")}'),
        ('Date', data.get('departureDate', '')),
        ('Time', data.get('departureTime', '')),
        ('Bus Operator', data.get('busOperator', '')),
        ('Seat Number', data.get('seatNumber', '')),
        ('PNR', data.get('pnrNumber', '')),
        ('Amount Paid', f'₹{data.get("amount", "")}'),
    ]
    details = ''.join(f'<p><strong>{label}:</strong> {escape(str(value))}</p>' for label, value in rows)
    return 'Ticket Purchase Confirmation', _wrap(
        f'<h2 style="color: #16a34a;">Ticket Purchase Confirmed!</h2>'
        f'<p>Hello {escape(data.get("buyerName") or "User")},</p>'
        f'<p>Your ticket purchase has been confirmed. Here are the details:</p>'
        f'<div style="background-color: #f3f4f6; padding: 20px; border-radius: 8px; margin: 20px 0;">'
        f'<h3>Journey Details</h3>{details}</div>'
        f'<p>The seller will contact you soon with further details.</p>'
    )


def _kyc_approved(data):
    return 'KYC Verification Approved', _wrap(
        f'<h2 style="color: #16a34a;">KYC Verification Approved!</h2>'
        f'<p>Hello {escape(data.get("name") or "User")},</p>'
        f'<p>Congratulations! Your KYC verification has been approved.</p>'
        f'<p>You can now:</p><ul><li>List tickets for sale</li>'
        f'<li>Purchase tickets from other users</li></ul>'
        f'{_button(data.get("dashboardUrl", ""), "Go to Dashboard", "#16a34a")}'
    )


def _kyc_rejected(data):
    reason = data.get('reason') or 'Please resubmit your documents with clearer images.'
    return 'KYC Verification - Additional Information Required', _wrap(
        f'<h2 style="color: #dc2626;">KYC Verification - Action Required</h2>'
        f'<p>Hello {escape(data.get("name") or "User")},</p>'
        f'<p>We need some additional information to complete your KYC verification.</p>'
        f'<div style="background-color: #fef2f2; padding: 20px; border-radius: 8px; margin: 20px 0; '
        f'border-left: 4px solid #dc2626;"><h3>Reason for rejection:</h3><p>{escape(reason)}</p></div>'
        f'<p>Please resubmit your documents through your dashboard.</p>'
        f'{_button(data.get("dashboardUrl", ""), "Resubmit Documents", "#dc2626")}'
    )


TEMPLATES = {
    'verification': _verification,
    'ticket_confirmation': _ticket_confirmation,
    'kyc_approved': _kyc_approved,
    'kyc_rejected': _kyc_rejected,
}


def render_template(template, data):
    renderer = TEMPLATES.get(template)
    if renderer is None:
        return 'Notification', data.get('html') or data.get('text') or ''
    return renderer(data)


def render_generic(title, name, message):
    return _wrap(
        f'<h2>{escape(title)}</h2><p>Hello {escape(name)},</p><p>{escape(message)}</p>'
        f'{_button(dashboard_url(), "Go to Dashboard", "#2563eb")}'
    )


def dashboard_url():
    return f"{current_app.config['SITE_URL'].rstrip('/')}/dashboard"


def send_email(to, subject=None, html=None, template=None, template_data=None):
    """
    Send one e-mail. Returns True when it was handed off (or logged, when no
    e-mail API is configured). Failures are logged and recorded, never raised.
    """
    if template:
        subject, html = render_template(template, template_data or {})

    status = 'sent'
    api_url = current_app.config.get('EMAIL_API_URL')
    if api_url:
        try:
            resp = requests.post(
                api_url,
                json={
                    'from': current_app.config['EMAIL_FROM'],
                    'to': to,
                    'subject': subject,
                    'html': html,
                },
                headers={'Authorization': f"Bearer {current_app.config.get('EMAIL_API_KEY')}"},
                timeout=current_app.config['GATEWAY_TIMEOUT_SECONDS'],
            )
            if not resp.ok:
                logger.error("Email API returned %s for %s: %s", resp.status_code, to, resp.text)
                status = 'failed'
        except requests.RequestException as e:
            logger.error("Email API unreachable for %s: %s", to, e)
            status = 'failed'
    else:
        logger.info("Email not dispatched (EMAIL_API_URL unset): to=%s subject=%s", to, subject)
        status = 'skipped'

    try:
        db.session.add(EmailLog(recipient=to, subject=subject, template=template, status=status))
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.error("Could not record email log for %s: %s", to, e)

    return status != 'failed'
