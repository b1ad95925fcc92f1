from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from decimal import Decimal, InvalidOperation
from uuid import UUID, uuid4

from dojo_invoicing.domain.value_objects import (
    Currency,
    InvoiceStatus,
    ItemType,
    Money,
    PaymentMethod,
    PaymentTerms,
)
from dojo_invoicing.exceptions import InvoiceValidationError


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class LineItemDraft:
    """Caller-supplied line item before any totals are computed.

    ``discount_rate`` is a percentage (10 means 10%).
    """

    item_type: ItemType
    description: str
    quantity: int
    unit_price: Money
    tax_rate_ids: frozenset[UUID] = frozenset()
    discount_rate: Decimal = Decimal("0")
    enrollment_id: UUID | None = None
    product_id: UUID | None = None
    service_period_start: date | None = None
    service_period_end: date | None = None
    sort_order: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "item_type", ItemType(self.item_type))
        object.__setattr__(self, "tax_rate_ids", frozenset(self.tax_rate_ids))
        if isinstance(self.discount_rate, float):
            raise TypeError("discount_rate must be Decimal, int or str, not float")
        if not isinstance(self.discount_rate, Decimal):
            try:
                rate = Decimal(str(self.discount_rate))
            except InvalidOperation:
                raise InvoiceValidationError(
                    f"Discount rate must be a number, got {self.discount_rate!r}",
                    field="discount_rate",
                ) from None
            object.__setattr__(self, "discount_rate", rate)


@dataclass(frozen=True)
class LineItemCalculations:
    line_total: Money
    tax_amount: Money
    discount_amount: Money
    final_amount: Money


@dataclass(frozen=True)
class InvoiceLineItemTax:
    """Immutable record of one tax applied to one line item, as it was at issue time."""

    invoice_line_item_id: UUID
    tax_rate_id: UUID
    tax_name_snapshot: str
    tax_rate_snapshot: Decimal
    tax_description_snapshot: str
    tax_amount: Money
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=_utc_now)


@dataclass
class InvoiceLineItem:
    invoice_id: UUID
    item_type: ItemType
    description: str
    quantity: int
    unit_price: Money
    line_total: Money
    tax_amount: Money
    discount_rate: Decimal
    discount_amount: Money
    id: UUID = field(default_factory=uuid4)
    enrollment_id: UUID | None = None
    product_id: UUID | None = None
    service_period_start: date | None = None
    service_period_end: date | None = None
    sort_order: int = 0
    created_at: datetime = field(default_factory=_utc_now)
    taxes: list[InvoiceLineItemTax] = field(default_factory=list)

    @property
    def final_amount(self) -> Money:
        return self.line_total - self.discount_amount + self.tax_amount

    @property
    def tax_rate_ids(self) -> frozenset[UUID]:
        return frozenset(tax.tax_rate_id for tax in self.taxes)

    @classmethod
    def from_draft(
        cls,
        invoice_id: UUID,
        draft: LineItemDraft,
        calculations: LineItemCalculations,
        sort_order: int,
    ) -> "InvoiceLineItem":
        return cls(
            invoice_id=invoice_id,
            item_type=draft.item_type,
            description=draft.description,
            quantity=draft.quantity,
            unit_price=draft.unit_price,
            line_total=calculations.line_total,
            tax_amount=calculations.tax_amount,
            discount_rate=draft.discount_rate,
            discount_amount=calculations.discount_amount,
            enrollment_id=draft.enrollment_id,
            product_id=draft.product_id,
            service_period_start=draft.service_period_start,
            service_period_end=draft.service_period_end,
            sort_order=draft.sort_order if draft.sort_order is not None else sort_order,
        )


@dataclass(frozen=True)
class InvoiceCalculations:
    subtotal: Money
    tax_amount: Money
    discount_amount: Money
    total_amount: Money


@dataclass(frozen=True)
class InvoiceDraft:
    """Header fields and line items for creating or replacing an invoice."""

    entity_id: UUID
    issue_date: date
    line_items: tuple[LineItemDraft, ...]
    due_date: date | None = None
    family_id: UUID | None = None
    currency: Currency | None = None
    payment_terms: PaymentTerms | None = None
    service_period_start: date | None = None
    service_period_end: date | None = None
    notes: str | None = None
    terms: str | None = None
    footer_text: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "line_items", tuple(self.line_items))
        if self.currency is not None:
            object.__setattr__(self, "currency", Currency(self.currency))


@dataclass
class Invoice:
    entity_id: UUID
    issue_date: date
    due_date: date
    currency: Currency
    subtotal: Money
    tax_amount: Money
    discount_amount: Money
    total_amount: Money
    amount_paid: Money
    id: UUID = field(default_factory=uuid4)
    invoice_number: str = ""
    family_id: UUID | None = None
    status: InvoiceStatus = InvoiceStatus.DRAFT
    service_period_start: date | None = None
    service_period_end: date | None = None
    notes: str | None = None
    terms: str | None = None
    footer_text: str | None = None
    sent_at: datetime | None = None
    viewed_at: datetime | None = None
    paid_at: datetime | None = None
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)
    line_items: list[InvoiceLineItem] = field(default_factory=list)

    @property
    def amount_due(self) -> Money:
        return self.total_amount - self.amount_paid

    @property
    def is_editable(self) -> bool:
        return self.status == InvoiceStatus.DRAFT

    def is_overdue(self, as_of: date) -> bool:
        return self.status not in (InvoiceStatus.PAID, InvoiceStatus.CANCELLED) and (
            self.due_date < as_of
        )

    def apply_totals(self, totals: InvoiceCalculations) -> None:
        self.subtotal = totals.subtotal
        self.tax_amount = totals.tax_amount
        self.discount_amount = totals.discount_amount
        self.total_amount = totals.total_amount
        self.updated_at = _utc_now()

    def transition_to(self, status: InvoiceStatus) -> None:
        """Set the status and stamp the matching lifecycle timestamp."""
        now = _utc_now()
        self.status = status
        if status == InvoiceStatus.SENT and self.sent_at is None:
            self.sent_at = now
        elif status == InvoiceStatus.VIEWED and self.viewed_at is None:
            self.viewed_at = now
        elif status == InvoiceStatus.PAID:
            self.paid_at = now
        self.updated_at = now


@dataclass
class InvoicePayment:
    invoice_id: UUID
    amount: Money
    payment_method: PaymentMethod
    payment_date: date
    id: UUID = field(default_factory=uuid4)
    reference_number: str | None = None
    notes: str | None = None
    created_at: datetime = field(default_factory=_utc_now)


@dataclass
class InvoiceStatusHistory:
    invoice_id: UUID
    new_status: InvoiceStatus
    old_status: InvoiceStatus | None = None
    notes: str | None = None
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=_utc_now)


@dataclass
class InvoiceFilters:
    statuses: Iterable[InvoiceStatus] | None = None
    entity_id: UUID | None = None
    family_id: UUID | None = None
    date_from: date | None = None
    date_to: date | None = None


@dataclass(frozen=True)
class InvoiceStatistics:
    total_invoices: int
    total_amount: Money
    paid_amount: Money
    outstanding_amount: Money
    overdue_count: int


__all__ = [
    "Invoice",
    "InvoiceCalculations",
    "InvoiceDraft",
    "InvoiceFilters",
    "InvoiceLineItem",
    "InvoiceLineItemTax",
    "InvoicePayment",
    "InvoiceStatistics",
    "InvoiceStatusHistory",
    "LineItemCalculations",
    "LineItemDraft",
]
