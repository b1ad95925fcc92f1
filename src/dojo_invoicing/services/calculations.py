"""Line item and invoice total calculations.

Everything here is pure: results depend only on the arguments, including
the tax-rate snapshot passed in, so the functions are safe to call from
concurrent requests.

Order of operations for a line item:

    line_total      = unit_price * quantity
    discount_amount = line_total * discount_rate / 100
    taxable base    = line_total - discount_amount
    tax_amount      = sum(taxable base * rate for every applied rate)

Values are carried at full ``Decimal`` precision and rounded to the
currency's minor unit once, when the result is built. ``final_amount`` is
derived from the rounded components so that summing line items top-down
always agrees with the per-line figures.
"""

from collections.abc import Iterable, Sequence
from decimal import Decimal, InvalidOperation
from typing import Protocol
from uuid import UUID

from dojo_invoicing.domain.invoices import (
    InvoiceCalculations,
    InvoiceLineItemTax,
    LineItemCalculations,
    LineItemDraft,
)
from dojo_invoicing.domain.tax_rates import TaxRate
from dojo_invoicing.domain.value_objects import Currency, Money
from dojo_invoicing.exceptions import (
    CurrencyMismatchError,
    InvoiceValidationError,
    UnknownTaxRateError,
)
from dojo_invoicing.logging_config import get_logger

logger = get_logger(__name__)

_HUNDRED = Decimal("100")


class CalculatedLine(Protocol):
    line_total: Money
    tax_amount: Money
    discount_amount: Money


def _validate_quantity(quantity: int) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvoiceValidationError(
            f"Quantity must be a whole number, got {quantity!r}", field="quantity"
        )
    if quantity < 1:
        raise InvoiceValidationError(
            f"Quantity must be at least 1, got {quantity}", field="quantity"
        )


def _validate_discount_rate(discount_rate: Decimal | int | str) -> Decimal:
    if isinstance(discount_rate, float):
        raise InvoiceValidationError(
            "Discount rate must be a Decimal, not float", field="discount_rate"
        )
    try:
        rate = (
            discount_rate if isinstance(discount_rate, Decimal) else Decimal(str(discount_rate))
        )
    except InvalidOperation:
        rate = None
    if rate is None or not rate.is_finite() or rate < 0 or rate > _HUNDRED:
        raise InvoiceValidationError(
            f"Discount rate must be between 0 and 100, got {discount_rate}",
            field="discount_rate",
        )
    return rate


def resolve_tax_rates(
    tax_rate_ids: Iterable[UUID], tax_rates: Sequence[TaxRate]
) -> list[TaxRate]:
    """Look up every id in the snapshot, keeping snapshot order.

    Raises:
        UnknownTaxRateError: If any id is missing from the snapshot.
    """
    by_id = {rate.id: rate for rate in tax_rates}
    wanted = frozenset(tax_rate_ids)
    for tax_rate_id in sorted(wanted, key=str):
        if tax_rate_id not in by_id:
            logger.warning("unknown_tax_rate", tax_rate_id=str(tax_rate_id))
            raise UnknownTaxRateError(tax_rate_id)
    return [rate for rate_id, rate in by_id.items() if rate_id in wanted]


def _taxable_base(
    quantity: int, unit_price: Money, discount_rate: Decimal | int | str
) -> tuple[Money, Money, Money]:
    _validate_quantity(quantity)
    percent = _validate_discount_rate(discount_rate)
    line_total = unit_price * quantity
    discount = line_total * (percent / _HUNDRED)
    return line_total, discount, line_total - discount


def calculate_line_item(
    quantity: int,
    unit_price: Money,
    tax_rate_ids: Iterable[UUID],
    tax_rates: Sequence[TaxRate],
    discount_rate: Decimal | int | str = Decimal("0"),
) -> LineItemCalculations:
    """Compute subtotal, discount, tax and final amount for one line.

    Args:
        quantity: Number of units, at least 1.
        unit_price: Price of a single unit.
        tax_rate_ids: Ids of the rates that apply; order and duplicates are ignored.
        tax_rates: Tax-rate snapshot the ids are resolved against.
        discount_rate: Percentage between 0 and 100.

    Raises:
        InvoiceValidationError: For a non-positive quantity or out-of-range discount.
        UnknownTaxRateError: If an id is not in ``tax_rates``.
    """
    line_total, discount, base = _taxable_base(quantity, unit_price, discount_rate)
    applied = resolve_tax_rates(tax_rate_ids, tax_rates)
    tax = Money.total((base * rate.rate for rate in applied), unit_price.currency)

    line_total = line_total.quantize()
    discount = discount.quantize()
    tax = tax.quantize()
    return LineItemCalculations(
        line_total=line_total,
        tax_amount=tax,
        discount_amount=discount,
        final_amount=line_total - discount + tax,
    )


def calculate_tax_breakdown(
    quantity: int,
    unit_price: Money,
    tax_rate_ids: Iterable[UUID],
    tax_rates: Sequence[TaxRate],
    discount_rate: Decimal | int | str = Decimal("0"),
) -> list[tuple[TaxRate, Money]]:
    """Split a line's tax into one rounded amount per applied rate.

    Each contribution is rounded on its own; any minor unit lost or gained
    in doing so goes to the largest contribution, so the parts always sum
    to ``calculate_line_item(...).tax_amount``.
    """
    _, _, base = _taxable_base(quantity, unit_price, discount_rate)
    applied = resolve_tax_rates(tax_rate_ids, tax_rates)
    if not applied:
        return []

    exact = [(rate, base * rate.rate) for rate in applied]
    rounded = [amount.quantize() for _, amount in exact]
    target = Money.total((amount for _, amount in exact), unit_price.currency).quantize()
    residual = target - Money.total(rounded, unit_price.currency)
    if not residual.is_zero:
        largest = max(range(len(exact)), key=lambda i: abs(exact[i][1].amount))
        rounded[largest] = rounded[largest] + residual

    return [(rate, amount) for (rate, _), amount in zip(exact, rounded, strict=True)]


def build_tax_associations(
    line_item_id: UUID,
    tax_rate_ids: Iterable[UUID],
    draft: LineItemDraft,
    tax_rates: Sequence[TaxRate],
) -> list[InvoiceLineItemTax]:
    """Snapshot the applied tax rates for a persisted line item.

    Names, rates and descriptions are copied as they are now, so later edits
    to a ``TaxRate`` never change what an issued invoice reports.

    Raises:
        UnknownTaxRateError: If any id is missing; no records are produced.
    """
    breakdown = calculate_tax_breakdown(
        draft.quantity,
        draft.unit_price,
        tax_rate_ids,
        tax_rates,
        draft.discount_rate,
    )
    return [
        InvoiceLineItemTax(
            invoice_line_item_id=line_item_id,
            tax_rate_id=rate.id,
            tax_name_snapshot=rate.name,
            tax_rate_snapshot=rate.rate,
            tax_description_snapshot=rate.description,
            tax_amount=amount,
        )
        for rate, amount in breakdown
    ]


def calculate_invoice_totals(
    line_items: Iterable[CalculatedLine], currency: Currency | str
) -> InvoiceCalculations:
    """Sum already-computed line items into invoice totals.

    Tax and discount are never recomputed here. An empty collection yields
    all-zero totals in ``currency``.

    Raises:
        CurrencyMismatchError: If a line item is not in ``currency``.
    """
    subtotal = Money.zero(currency)
    tax = Money.zero(currency)
    discount = Money.zero(currency)
    for item in line_items:
        if item.line_total.currency != subtotal.currency:
            raise CurrencyMismatchError(
                subtotal.currency.value, item.line_total.currency.value
            )
        subtotal = subtotal + item.line_total
        tax = tax + item.tax_amount
        discount = discount + item.discount_amount

    return InvoiceCalculations(
        subtotal=subtotal,
        tax_amount=tax,
        discount_amount=discount,
        total_amount=subtotal + tax - discount,
    )


__all__ = [
    "build_tax_associations",
    "calculate_invoice_totals",
    "calculate_line_item",
    "calculate_tax_breakdown",
    "resolve_tax_rates",
]
