"""Document totals aggregator — sums lines into order or invoice totals.

The document discount is taken from the sum of line net amounts before any
document discount, so it is never applied twice. Shipping is added after tax
and is not itself taxed.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from protean.exceptions import ValidationError

from sales.pricing.calculator import ZERO, percent_of, to_amount, to_percentage


@dataclass(frozen=True)
class DocumentTotals:
    """Computed totals of an order or invoice."""

    subtotal: Decimal  # Σ line net amounts, before the document discount
    discount_amount: Decimal
    net_total: Decimal
    tax_total: Decimal
    shipping_cost: Decimal
    grand_total: Decimal


def calculate_document_totals(lines: Iterable, discount_rate=None, shipping_cost=None) -> DocumentTotals:
    """Aggregate line amounts into document totals.

    Args:
        lines: Objects exposing ``net_amount`` and ``tax_amount`` (``LineTotals``,
            ``OrderItem`` or ``InvoiceItem``). Order does not matter.
        discount_rate: Document-level discount percentage, 0 when missing.
        shipping_cost: Flat shipping amount, 0 when missing.

    An empty collection yields zero net, tax and discount; shipping still
    counts toward the grand total.
    """
    rate = to_percentage(discount_rate, "discount_rate", default=0)
    shipping = to_amount(shipping_cost if shipping_cost is not None else 0)
    if shipping < 0:
        raise ValidationError({"shipping_cost": ["Shipping cost cannot be negative"]})

    subtotal = ZERO
    tax_total = ZERO
    for line in lines:
        subtotal += to_amount(line.net_amount or 0)
        tax_total += to_amount(line.tax_amount or 0)

    discount_amount = percent_of(subtotal, rate)
    net_total = subtotal - discount_amount

    return DocumentTotals(
        subtotal=subtotal,
        discount_amount=discount_amount,
        net_total=net_total,
        tax_total=tax_total,
        shipping_cost=shipping,
        grand_total=net_total + tax_total + shipping,
    )
