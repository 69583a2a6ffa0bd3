from decimal import Decimal, ROUND_HALF_EVEN, InvalidOperation

from config.env import CURRENCY_LABEL, CURRENCY_MINOR_DIGITS

MINOR_UNIT_FACTOR = Decimal(10) ** CURRENCY_MINOR_DIGITS
MAJOR_QUANTUM = Decimal(1).scaleb(-CURRENCY_MINOR_DIGITS)


def to_minor_units(amount) -> int:
    """
    Converts a major-unit amount (e.g. 12.50) into integer minor units (1250).
    Sub-minor precision is rounded half-to-even.
    """
    try:
        value = Decimal(str(amount)) * MINOR_UNIT_FACTOR
    except InvalidOperation:
        raise ValueError(f"Invalid money amount: {amount!r}")
    if not value.is_finite():
        raise ValueError(f"Invalid money amount: {amount!r}")
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_EVEN))


def from_minor_units(amount_minor: int) -> Decimal:
    return (Decimal(amount_minor) / MINOR_UNIT_FACTOR).quantize(MAJOR_QUANTUM)


def round_minor(value: Decimal) -> int:
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_EVEN))


def net_of_commission(gross_minor: int, commission_rate: Decimal) -> Decimal:
    # exact; rounding happens once per seller in the settlement engine
    return Decimal(gross_minor) * (Decimal(1) - commission_rate)


def format_amount(amount_minor: int) -> str:
    return f"{from_minor_units(amount_minor):,} {CURRENCY_LABEL}"
