"""Pydantic v2 schemas for invoice wire formats.

Money crosses the boundary as ``{"amount": <int minor units>, "currency": "CAD"}``;
floats are refused everywhere an amount or a rate is accepted.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from dojo_invoicing.domain.invoices import (
    Invoice,
    InvoiceDraft,
    InvoiceLineItem,
    InvoiceLineItemTax,
    LineItemDraft,
)
from dojo_invoicing.domain.value_objects import (
    Currency,
    InvoiceStatus,
    ItemType,
    Money,
    PaymentTerms,
)


def _reject_float(value: Any) -> Any:
    if isinstance(value, float):
        raise ValueError("must be an exact decimal string or integer, not a float")
    return value


# Money Schemas
class MoneySchema(BaseModel):
    """Money in integer minor units (cents for CAD)."""

    model_config = ConfigDict(frozen=True)

    amount: int = Field(..., strict=True)
    currency: Currency

    def to_money(self) -> Money:
        return Money.from_minor_units(self.amount, self.currency)

    @classmethod
    def from_money(cls, money: Money) -> "MoneySchema":
        return cls(amount=money.minor_units, currency=money.currency)


# Line Item Schemas
class LineItemDraftSchema(BaseModel):
    """Schema for one line item of an invoice create/update request."""

    model_config = ConfigDict(str_strip_whitespace=True)

    item_type: ItemType
    description: str = Field(..., min_length=1, max_length=500)
    quantity: int = Field(..., ge=1, strict=True)
    unit_price: MoneySchema
    tax_rate_ids: list[UUID] = Field(default_factory=list)
    discount_rate: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    enrollment_id: UUID | None = None
    product_id: UUID | None = None
    service_period_start: date | None = None
    service_period_end: date | None = None
    sort_order: int | None = None

    @field_validator("discount_rate", mode="before")
    @classmethod
    def reject_float_discount(cls, v: Any) -> Any:
        return _reject_float(v)

    def to_domain(self) -> LineItemDraft:
        return LineItemDraft(
            item_type=self.item_type,
            description=self.description,
            quantity=self.quantity,
            unit_price=self.unit_price.to_money(),
            tax_rate_ids=frozenset(self.tax_rate_ids),
            discount_rate=self.discount_rate,
            enrollment_id=self.enrollment_id,
            product_id=self.product_id,
            service_period_start=self.service_period_start,
            service_period_end=self.service_period_end,
            sort_order=self.sort_order,
        )


# Invoice Schemas
class InvoiceCreateSchema(BaseModel):
    """Schema for creating, or replacing the contents of, an invoice."""

    model_config = ConfigDict(str_strip_whitespace=True)

    entity_id: UUID
    family_id: UUID | None = None
    issue_date: date
    due_date: date | None = None
    currency: Currency | None = None
    payment_terms: PaymentTerms | None = None
    service_period_start: date | None = None
    service_period_end: date | None = None
    notes: str | None = None
    terms: str | None = None
    footer_text: str | None = None
    line_items: list[LineItemDraftSchema] = Field(..., min_length=1)

    @model_validator(mode="after")
    def check_line_item_currencies(self) -> "InvoiceCreateSchema":
        currencies = {item.unit_price.currency for item in self.line_items}
        if self.currency is not None:
            currencies.add(self.currency)
        if len(currencies) > 1:
            codes = ", ".join(sorted(c.value for c in currencies))
            raise ValueError(f"All amounts on an invoice must share one currency: {codes}")
        return self

    def to_domain(self) -> InvoiceDraft:
        currency = self.currency or self.line_items[0].unit_price.currency
        return InvoiceDraft(
            entity_id=self.entity_id,
            family_id=self.family_id,
            issue_date=self.issue_date,
            due_date=self.due_date,
            currency=currency,
            payment_terms=self.payment_terms,
            service_period_start=self.service_period_start,
            service_period_end=self.service_period_end,
            notes=self.notes,
            terms=self.terms,
            footer_text=self.footer_text,
            line_items=tuple(item.to_domain() for item in self.line_items),
        )


class LineItemTaxResponse(BaseModel):
    id: UUID
    tax_rate_id: UUID
    tax_name_snapshot: str
    tax_rate_snapshot: Decimal
    tax_description_snapshot: str
    tax_amount: MoneySchema

    @classmethod
    def from_domain(cls, tax: InvoiceLineItemTax) -> "LineItemTaxResponse":
        return cls(
            id=tax.id,
            tax_rate_id=tax.tax_rate_id,
            tax_name_snapshot=tax.tax_name_snapshot,
            tax_rate_snapshot=tax.tax_rate_snapshot,
            tax_description_snapshot=tax.tax_description_snapshot,
            tax_amount=MoneySchema.from_money(tax.tax_amount),
        )


class LineItemResponse(BaseModel):
    id: UUID
    item_type: ItemType
    description: str
    quantity: int
    unit_price: MoneySchema
    line_total: MoneySchema
    discount_rate: Decimal
    discount_amount: MoneySchema
    tax_amount: MoneySchema
    final_amount: MoneySchema
    sort_order: int
    taxes: list[LineItemTaxResponse]

    @classmethod
    def from_domain(cls, item: InvoiceLineItem) -> "LineItemResponse":
        return cls(
            id=item.id,
            item_type=item.item_type,
            description=item.description,
            quantity=item.quantity,
            unit_price=MoneySchema.from_money(item.unit_price),
            line_total=MoneySchema.from_money(item.line_total),
            discount_rate=item.discount_rate,
            discount_amount=MoneySchema.from_money(item.discount_amount),
            tax_amount=MoneySchema.from_money(item.tax_amount),
            final_amount=MoneySchema.from_money(item.final_amount),
            sort_order=item.sort_order,
            taxes=[LineItemTaxResponse.from_domain(tax) for tax in item.taxes],
        )


class InvoiceResponse(BaseModel):
    """Schema for invoice response."""

    id: UUID
    invoice_number: str
    entity_id: UUID
    family_id: UUID | None
    status: InvoiceStatus
    issue_date: date
    due_date: date
    currency: Currency
    subtotal: MoneySchema
    tax_amount: MoneySchema
    discount_amount: MoneySchema
    total_amount: MoneySchema
    amount_paid: MoneySchema
    amount_due: MoneySchema
    notes: str | None
    terms: str | None
    sent_at: datetime | None
    paid_at: datetime | None
    created_at: datetime
    line_items: list[LineItemResponse]

    @classmethod
    def from_domain(cls, invoice: Invoice) -> "InvoiceResponse":
        return cls(
            id=invoice.id,
            invoice_number=invoice.invoice_number,
            entity_id=invoice.entity_id,
            family_id=invoice.family_id,
            status=invoice.status,
            issue_date=invoice.issue_date,
            due_date=invoice.due_date,
            currency=invoice.currency,
            subtotal=MoneySchema.from_money(invoice.subtotal),
            tax_amount=MoneySchema.from_money(invoice.tax_amount),
            discount_amount=MoneySchema.from_money(invoice.discount_amount),
            total_amount=MoneySchema.from_money(invoice.total_amount),
            amount_paid=MoneySchema.from_money(invoice.amount_paid),
            amount_due=MoneySchema.from_money(invoice.amount_due),
            notes=invoice.notes,
            terms=invoice.terms,
            sent_at=invoice.sent_at,
            paid_at=invoice.paid_at,
            created_at=invoice.created_at,
            line_items=[LineItemResponse.from_domain(item) for item in invoice.line_items],
        )
