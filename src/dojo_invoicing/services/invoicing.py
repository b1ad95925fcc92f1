from __future__ import annotations

from datetime import UTC, date, datetime, timedelta
from uuid import UUID, uuid4

from dojo_invoicing.domain.invoices import (
    Invoice,
    InvoiceDraft,
    InvoiceFilters,
    InvoiceLineItem,
    InvoicePayment,
    InvoiceStatistics,
    InvoiceStatusHistory,
    LineItemDraft,
)
from dojo_invoicing.domain.tax_rates import TaxRate
from dojo_invoicing.domain.value_objects import (
    Currency,
    InvoiceStatus,
    ItemType,
    Money,
    PaymentMethod,
    PaymentTerms,
)
from dojo_invoicing.exceptions import (
    CurrencyMismatchError,
    InvoiceHasPaymentsError,
    InvoiceNotEditableError,
    InvoiceNotFoundError,
    InvoiceStateError,
    InvoiceValidationError,
)
from dojo_invoicing.logging_config import get_logger, invoice_log_context
from dojo_invoicing.repositories.interfaces import InvoiceRepository
from dojo_invoicing.services.calculations import (
    build_tax_associations,
    calculate_invoice_totals,
    calculate_line_item,
)
from dojo_invoicing.services.interfaces import InvoiceService, TaxRateRegistry

logger = get_logger(__name__)

DELETION_CANCEL_NOTE = "Invoice cancelled via deletion"


class InvoiceServiceImpl(InvoiceService):
    """Invoice lifecycle: create, edit drafts, change status, pay, delete.

    Every write that touches more than one row runs inside a single
    repository transaction, so a failure part way through leaves nothing
    behind. The active tax-rate snapshot is read once per create or update
    and shared by all line items of that invoice.
    """

    def __init__(
        self,
        invoice_repo: InvoiceRepository,
        tax_rate_registry: TaxRateRegistry,
        default_currency: Currency = Currency.CAD,
        default_payment_terms: PaymentTerms = PaymentTerms.NET_30,
        invoice_number_prefix: str = "INV",
    ) -> None:
        self._invoice_repo = invoice_repo
        self._tax_rate_registry = tax_rate_registry
        self._default_currency = Currency(default_currency)
        self._default_payment_terms = PaymentTerms(default_payment_terms)
        self._invoice_number_prefix = invoice_number_prefix

    # ------------------------------------------------------------------
    # Create / update
    # ------------------------------------------------------------------

    def create_invoice(self, draft: InvoiceDraft) -> Invoice:
        currency = draft.currency or self._default_currency
        self._validate_draft(draft, currency)

        tax_rates = self._tax_rate_registry.get_active_tax_rates()
        invoice_id = uuid4()
        line_items = self._build_line_items(invoice_id, draft.line_items, tax_rates)
        totals = calculate_invoice_totals(line_items, currency)

        payment_terms = draft.payment_terms or self._default_payment_terms
        invoice = Invoice(
            id=invoice_id,
            entity_id=draft.entity_id,
            family_id=draft.family_id,
            issue_date=draft.issue_date,
            due_date=draft.due_date
            or draft.issue_date + timedelta(days=payment_terms.days),
            currency=currency,
            subtotal=totals.subtotal,
            tax_amount=totals.tax_amount,
            discount_amount=totals.discount_amount,
            total_amount=totals.total_amount,
            amount_paid=Money.zero(currency),
            service_period_start=draft.service_period_start,
            service_period_end=draft.service_period_end,
            notes=draft.notes,
            terms=draft.terms if draft.terms is not None else payment_terms.value,
            footer_text=draft.footer_text,
            line_items=line_items,
        )

        with invoice_log_context(invoice.id):
            try:
                with self._invoice_repo.transaction():
                    invoice.invoice_number = self._invoice_repo.next_invoice_number(
                        self._invoice_number_prefix, invoice.issue_date.year
                    )
                    self._invoice_repo.add(invoice)
                    self._persist_line_items(line_items)
                    self._invoice_repo.add_status_history(
                        InvoiceStatusHistory(
                            invoice_id=invoice.id,
                            new_status=invoice.status,
                            notes="Invoice created",
                        )
                    )
            except Exception as exc:
                logger.error(
                    "invoice_creation_rolled_back",
                    entity_id=str(draft.entity_id),
                    error=str(exc),
                )
                raise

            logger.info(
                "invoice_created",
                invoice_number=invoice.invoice_number,
                line_item_count=len(line_items),
                total_amount=invoice.total_amount,
            )
        return invoice

    def update_invoice(self, invoice_id: UUID, draft: InvoiceDraft) -> Invoice:
        """Replace a draft invoice's header fields and all of its line items."""
        invoice = self.get_invoice(invoice_id)
        if not invoice.is_editable:
            raise InvoiceNotEditableError(invoice_id, invoice.status.value)

        currency = draft.currency or invoice.currency
        self._validate_draft(draft, currency)

        tax_rates = self._tax_rate_registry.get_active_tax_rates()
        line_items = self._build_line_items(invoice.id, draft.line_items, tax_rates)
        totals = calculate_invoice_totals(line_items, currency)

        payment_terms = draft.payment_terms or self._default_payment_terms
        invoice.entity_id = draft.entity_id
        invoice.family_id = draft.family_id
        invoice.issue_date = draft.issue_date
        invoice.due_date = draft.due_date or draft.issue_date + timedelta(
            days=payment_terms.days
        )
        invoice.currency = currency
        invoice.amount_paid = Money.zero(currency)
        invoice.service_period_start = draft.service_period_start
        invoice.service_period_end = draft.service_period_end
        invoice.notes = draft.notes
        invoice.terms = draft.terms if draft.terms is not None else payment_terms.value
        invoice.footer_text = draft.footer_text
        invoice.apply_totals(totals)
        invoice.line_items = line_items

        with invoice_log_context(invoice.id):
            try:
                with self._invoice_repo.transaction():
                    self._invoice_repo.delete_line_items(invoice.id)
                    self._persist_line_items(line_items)
                    self._invoice_repo.update(invoice)
            except Exception as exc:
                logger.error("invoice_update_rolled_back", error=str(exc))
                raise

            logger.info(
                "invoice_updated",
                invoice_number=invoice.invoice_number,
                line_item_count=len(line_items),
                total_amount=invoice.total_amount,
            )
        return invoice

    def _validate_draft(self, draft: InvoiceDraft, currency: Currency) -> None:
        if draft.entity_id is None:
            raise InvoiceValidationError("Invoice must have an entity", field="entity_id")
        if not draft.line_items:
            raise InvoiceValidationError(
                "Invoice must have at least one line item", field="line_items"
            )
        if draft.due_date is not None and draft.due_date < draft.issue_date:
            raise InvoiceValidationError(
                "Due date cannot be before issue date", field="due_date"
            )
        if (
            draft.service_period_start is not None
            and draft.service_period_end is not None
            and draft.service_period_end < draft.service_period_start
        ):
            raise InvoiceValidationError(
                "Service period cannot end before it starts",
                field="service_period_end",
            )

        for index, item in enumerate(draft.line_items):
            self._validate_line_item(index, item, currency)

    def _validate_line_item(
        self, index: int, item: LineItemDraft, currency: Currency
    ) -> None:
        if not item.description or not item.description.strip():
            raise InvoiceValidationError(
                f"Line item {index + 1} needs a description",
                field=f"line_items[{index}].description",
            )
        if item.unit_price.currency != currency:
            raise CurrencyMismatchError(currency.value, item.unit_price.currency.value)
        # Only discount lines may carry a negative price
        if item.unit_price.is_negative and item.item_type != ItemType.DISCOUNT:
            raise InvoiceValidationError(
                f"Line item {index + 1} has a negative unit price",
                field=f"line_items[{index}].unit_price",
            )
        if item.unit_price != item.unit_price.quantize():
            raise InvoiceValidationError(
                f"Line item {index + 1} unit price {item.unit_price.amount} is finer "
                f"than the {currency.value} minor unit",
                field=f"line_items[{index}].unit_price",
            )

    def _build_line_items(
        self,
        invoice_id: UUID,
        drafts: tuple[LineItemDraft, ...],
        tax_rates: list[TaxRate],
    ) -> list[InvoiceLineItem]:
        # Everything is computed before the first write so a bad line
        # never leaves a half-built invoice behind.
        line_items: list[InvoiceLineItem] = []
        for index, draft in enumerate(drafts):
            calculations = calculate_line_item(
                draft.quantity,
                draft.unit_price,
                draft.tax_rate_ids,
                tax_rates,
                draft.discount_rate,
            )
            item = InvoiceLineItem.from_draft(invoice_id, draft, calculations, index)
            item.taxes = build_tax_associations(
                item.id, draft.tax_rate_ids, draft, tax_rates
            )
            line_items.append(item)
        return line_items

    def _persist_line_items(self, line_items: list[InvoiceLineItem]) -> None:
        for item in line_items:
            self._invoice_repo.add_line_items([item])
            if item.taxes:
                self._invoice_repo.add_line_item_taxes(item.taxes)

    # ------------------------------------------------------------------
    # Status, payments, deletion
    # ------------------------------------------------------------------

    def update_status(
        self, invoice_id: UUID, status: InvoiceStatus, notes: str | None = None
    ) -> Invoice:
        """Move an invoice to a new status; totals are left untouched."""
        try:
            new_status = InvoiceStatus(status)
        except ValueError:
            raise InvoiceValidationError(
                f"Invalid invoice status: {status}", field="status"
            ) from None

        invoice = self.get_invoice(invoice_id)
        if invoice.status == new_status:
            return invoice
        if invoice.status == InvoiceStatus.CANCELLED:
            raise InvoiceStateError(
                invoice_id,
                invoice.status.value,
                "Cancelled invoices cannot change status",
            )
        if new_status == InvoiceStatus.DRAFT:
            raise InvoiceStateError(
                invoice_id,
                invoice.status.value,
                "Invoices cannot be returned to draft",
            )

        with invoice_log_context(invoice.id), self._invoice_repo.transaction():
            self._change_status(invoice, new_status, notes)
        return invoice

    def _change_status(
        self, invoice: Invoice, new_status: InvoiceStatus, notes: str | None
    ) -> None:
        old_status = invoice.status
        invoice.transition_to(new_status)
        self._invoice_repo.update(invoice)
        self._invoice_repo.add_status_history(
            InvoiceStatusHistory(
                invoice_id=invoice.id,
                old_status=old_status,
                new_status=new_status,
                notes=notes,
            )
        )
        logger.info(
            "invoice_status_changed",
            invoice_id=str(invoice.id),
            old_status=old_status.value,
            new_status=new_status.value,
        )

    def record_payment(
        self,
        invoice_id: UUID,
        amount: Money,
        payment_method: PaymentMethod,
        payment_date: date,
        reference_number: str | None = None,
        notes: str | None = None,
    ) -> InvoicePayment:
        invoice = self.get_invoice(invoice_id)
        if invoice.status in (InvoiceStatus.DRAFT, InvoiceStatus.CANCELLED):
            raise InvoiceStateError(
                invoice_id,
                invoice.status.value,
                f"Cannot record a payment on a {invoice.status.value} invoice",
            )
        if amount.currency != invoice.currency:
            raise CurrencyMismatchError(invoice.currency.value, amount.currency.value)
        if not amount.is_positive:
            raise InvoiceValidationError("Payment amount must be positive", field="amount")
        if amount != amount.quantize():
            raise InvoiceValidationError(
                "Payment amount must be a whole number of minor units", field="amount"
            )
        if amount > invoice.amount_due:
            raise InvoiceValidationError(
                f"Payment of {amount.format()} exceeds amount due "
                f"{invoice.amount_due.format()}",
                field="amount",
            )

        payment = InvoicePayment(
            invoice_id=invoice.id,
            amount=amount,
            payment_method=PaymentMethod(payment_method),
            payment_date=payment_date,
            reference_number=reference_number,
            notes=notes,
        )
        invoice.amount_paid = invoice.amount_paid + amount
        invoice.updated_at = datetime.now(UTC)
        new_status = (
            InvoiceStatus.PAID if invoice.amount_due.is_zero else InvoiceStatus.PARTIALLY_PAID
        )

        with invoice_log_context(invoice.id):
            with self._invoice_repo.transaction():
                self._invoice_repo.add_payment(payment)
                if new_status != invoice.status:
                    self._change_status(
                        invoice, new_status, f"Payment of {amount.format()} recorded"
                    )
                else:
                    self._invoice_repo.update(invoice)

            logger.info(
                "payment_recorded",
                payment_id=str(payment.id),
                amount=amount,
                amount_due=invoice.amount_due,
            )
        return payment

    def delete_invoice(self, invoice_id: UUID) -> None:
        """Delete a draft, or cancel an issued invoice.

        Invoices with payments are never removed; they must be cancelled
        explicitly through ``update_status``.
        """
        invoice = self.get_invoice(invoice_id)
        payments = list(self._invoice_repo.list_payments(invoice_id))
        if payments or invoice.amount_paid.is_positive:
            raise InvoiceHasPaymentsError(invoice_id, invoice.status.value)

        if invoice.status == InvoiceStatus.DRAFT:
            self._invoice_repo.delete(invoice_id)
            logger.info(
                "invoice_deleted",
                invoice_id=str(invoice_id),
                invoice_number=invoice.invoice_number,
            )
            return

        if invoice.status == InvoiceStatus.CANCELLED:
            return

        with self._invoice_repo.transaction():
            self._change_status(invoice, InvoiceStatus.CANCELLED, DELETION_CANCEL_NOTE)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_invoice(self, invoice_id: UUID) -> Invoice:
        invoice = self._invoice_repo.get(invoice_id)
        if invoice is None:
            raise InvoiceNotFoundError(invoice_id)
        return invoice

    def get_invoice_by_number(self, invoice_number: str) -> Invoice:
        invoice = self._invoice_repo.get_by_number(invoice_number)
        if invoice is None:
            raise InvoiceNotFoundError(invoice_number)
        return invoice

    def list_invoices(self, filters: InvoiceFilters | None = None) -> list[Invoice]:
        return list(self._invoice_repo.list_all(filters))

    def get_payments(self, invoice_id: UUID) -> list[InvoicePayment]:
        self.get_invoice(invoice_id)
        return list(self._invoice_repo.list_payments(invoice_id))

    def get_status_history(self, invoice_id: UUID) -> list[InvoiceStatusHistory]:
        self.get_invoice(invoice_id)
        return list(self._invoice_repo.list_status_history(invoice_id))

    def get_invoice_stats(
        self,
        filters: InvoiceFilters | None = None,
        as_of: date | None = None,
        currency: Currency | None = None,
    ) -> InvoiceStatistics:
        """Totals over every non-cancelled invoice in one currency.

        An invoice counts as overdue once its due date is before ``as_of``
        (today by default) and it is not paid.
        """
        as_of = as_of or date.today()
        currency = Currency(currency) if currency else self._default_currency

        invoices = [
            invoice
            for invoice in self._invoice_repo.list_all(filters)
            if invoice.status != InvoiceStatus.CANCELLED and invoice.currency == currency
        ]
        total = Money.total((invoice.total_amount for invoice in invoices), currency)
        paid = Money.total((invoice.amount_paid for invoice in invoices), currency)
        overdue_count = sum(1 for invoice in invoices if invoice.is_overdue(as_of))
        return InvoiceStatistics(
            total_invoices=len(invoices),
            total_amount=total,
            paid_amount=paid,
            outstanding_amount=total - paid,
            overdue_count=overdue_count,
        )
