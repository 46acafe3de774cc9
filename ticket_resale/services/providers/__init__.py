from flask import current_app

from ticket_resale.errors import ValidationError
from ticket_resale.services.providers.razorpay import RazorpayProvider
from ticket_resale.services.providers.stripe_gateway import StripeProvider

PROVIDERS = {
    RazorpayProvider.name: RazorpayProvider,
    StripeProvider.name: StripeProvider,
}


def get_provider(name):
    """Build the named gateway from the current app's config."""
    provider_cls = PROVIDERS.get(name)
    if provider_cls is None:
        raise ValidationError(f"Unsupported payment gateway: {name}")
    return provider_cls.from_config(current_app.config)
