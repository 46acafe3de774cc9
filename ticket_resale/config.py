"""
Configuration, read from the environment (and a local .env when present).
"""

import os
from dotenv import load_dotenv

load_dotenv()


def _database_uri():
    if os.environ.get('DATABASE_URL'):
        return os.environ['DATABASE_URL']
    db_user = os.environ.get('DB_USER', 'resale_svc_user')
    db_pass = os.environ.get('DB_PASS', 'password')
    db_host = os.environ.get('DB_HOST', 'resale-db')
    db_name = os.environ.get('DB_NAME', 'resale_db')
    return f"postgresql://{db_user}:{db_pass}@{db_host}/{db_name}"


def _optional_int(name):
    value = os.environ.get(name)
    return int(value) if value else None


class Config:
    SQLALCHEMY_DATABASE_URI = _database_uri()
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JWT_SECRET_KEY = os.environ.get('JWT_SECRET', 'dev-secret-change-me')
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    # Marketplace
    PLATFORM_FEE_RATE = os.environ.get('PLATFORM_FEE_RATE', '0.05')
    CURRENCY = os.environ.get('CURRENCY', 'INR')
    SITE_URL = os.environ.get('SITE_URL', 'http://localhost:3000')
    # Abandoned purchases are only released when an operator picks a TTL.
    PENDING_PURCHASE_TTL_MINUTES = _optional_int('PENDING_PURCHASE_TTL_MINUTES')

    # Razorpay
    RAZORPAY_API_URL = os.environ.get('RAZORPAY_API_URL', 'https://api.razorpay.com/v1')
    RAZORPAY_KEY_ID = os.environ.get('RAZORPAY_KEY_ID')
    RAZORPAY_KEY_SECRET = os.environ.get('RAZORPAY_KEY_SECRET')
    RAZORPAY_WEBHOOK_SECRET = os.environ.get('RAZORPAY_WEBHOOK_SECRET')
    RAZORPAY_PAYOUT_ACCOUNT_NUMBER = os.environ.get('RAZORPAY_PAYOUT_ACCOUNT_NUMBER')
    PHONE_VPA_SUFFIX = os.environ.get('PHONE_VPA_SUFFIX', '@paytm')

    # Stripe
    STRIPE_SECRET_KEY = os.environ.get('STRIPE_SECRET_KEY')
    STRIPE_WEBHOOK_SECRET = os.environ.get('STRIPE_WEBHOOK_SECRET')

    PAYOUT_PROVIDER = os.environ.get('PAYOUT_PROVIDER', 'razorpay')
    GATEWAY_TIMEOUT_SECONDS = float(os.environ.get('GATEWAY_TIMEOUT_SECONDS', '10'))

    # Outbound e-mail (Resend-compatible HTTP API). Unset means log only.
    EMAIL_API_URL = os.environ.get('EMAIL_API_URL')
    EMAIL_API_KEY = os.environ.get('EMAIL_API_KEY')
    EMAIL_FROM = os.environ.get('EMAIL_FROM', 'noreply@ticketmarketplace.com')
