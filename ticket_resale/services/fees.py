from decimal import Decimal, ROUND_HALF_UP

WHOLE_UNIT = Decimal('1')


def to_decimal(value):
    # Floats go through str() so 799.99 stays 799.99
    return value if isinstance(value, Decimal) else Decimal(str(value))


def compute_fees(amount, fee_rate):
    """
    Split a sale amount into (platform_fee, seller_amount).
    The fee is rounded half-up to whole currency units.
    """
    amount = to_decimal(amount)
    platform_fee = (amount * to_decimal(fee_rate)).quantize(WHOLE_UNIT, rounding=ROUND_HALF_UP)
    return platform_fee, amount - platform_fee


def to_minor_units(amount):
    """Rupees to paise (or dollars to cents) for gateway APIs."""
    return int((to_decimal(amount) * 100).quantize(WHOLE_UNIT, rounding=ROUND_HALF_UP))
