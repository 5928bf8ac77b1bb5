"""Line-item calculator — per-line discount, VAT and gross amounts.

Every figure is computed with ``Decimal`` and rounded half-up to cents, so
results never drift the way binary floats do. The line discount is applied
before VAT: tax is always computed on the discounted net amount.

    subtotal        = unit_price × quantity
    discount_amount = subtotal × discount_rate / 100
    net_amount      = subtotal − discount_amount
    tax_amount      = net_amount × vat_rate / 100
    gross_amount    = net_amount + tax_amount
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from protean.exceptions import ValidationError

from sales.config import settings

CENT = Decimal("0.01")
HUNDRED = Decimal("100")
ZERO = Decimal("0.00")


def to_decimal(value, field: str = "value") -> Decimal:
    """Convert ints, floats, strings and Decimals to an exact Decimal.

    Floats go through ``str`` so that ``0.1`` becomes ``Decimal("0.1")``
    rather than its binary expansion.
    """
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool):
        raise ValidationError({field: ["Must be a number"]})
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError):
            raise ValidationError({field: ["Must be a number"]}) from None

    if not result.is_finite():
        raise ValidationError({field: ["Must be a finite number"]})
    return result


def to_amount(value) -> Decimal:
    """Round a monetary value half-up to two decimal places."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def to_percentage(value, field: str, default) -> Decimal:
    """Validate a percentage in [0, 100] with at most two decimal places."""
    if value is None:
        value = default

    rate = to_decimal(value, field)
    if rate < 0 or rate > HUNDRED:
        raise ValidationError({field: ["Must be between 0 and 100"]})
    if rate.as_tuple().exponent < -2:
        raise ValidationError({field: ["Must have at most two decimal places"]})
    return rate


def percent_of(amount: Decimal, rate: Decimal) -> Decimal:
    """``amount × rate / 100``, rounded to cents; zero when the rate is not positive."""
    if rate <= 0:
        return ZERO
    return to_amount(amount * rate / HUNDRED)


@dataclass(frozen=True)
class LineTotals:
    """Computed amounts of one order or invoice line."""

    subtotal: Decimal
    discount_amount: Decimal
    net_amount: Decimal
    tax_amount: Decimal
    gross_amount: Decimal


def calculate_line(quantity, unit_price, discount_rate=None, vat_rate=None) -> LineTotals:
    """Compute a line's amounts.

    Args:
        quantity: Number of units, an integer of at least 1.
        unit_price: Price of one unit before discount and tax, must be positive.
        discount_rate: Line discount percentage. Defaults to 0 when missing.
        vat_rate: VAT percentage. Defaults to the configured rate (20) when missing.

    Raises:
        ValidationError: On a non-positive quantity or price, or a malformed percentage.
    """
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError({"quantity": ["Quantity must be a whole number"]})
    if quantity < 1:
        raise ValidationError({"quantity": ["Quantity must be at least 1"]})

    price = to_decimal(unit_price, "unit_price")
    if price <= 0:
        raise ValidationError({"unit_price": ["Unit price must be greater than 0"]})

    discount = to_percentage(discount_rate, "discount_rate", default=0)
    vat = to_percentage(vat_rate, "vat_rate", default=settings.default_vat_rate)

    subtotal = to_amount(price * quantity)
    discount_amount = percent_of(subtotal, discount)
    net_amount = subtotal - discount_amount
    tax_amount = percent_of(net_amount, vat)

    return LineTotals(
        subtotal=subtotal,
        discount_amount=discount_amount,
        net_amount=net_amount,
        tax_amount=tax_amount,
        gross_amount=net_amount + tax_amount,
    )


def unit_price_after_discount(unit_price, discount_rate=None) -> Decimal:
    """Unit price once the line discount is taken off."""
    price = to_amount(unit_price)
    return price - percent_of(price, to_percentage(discount_rate, "discount_rate", default=0))
