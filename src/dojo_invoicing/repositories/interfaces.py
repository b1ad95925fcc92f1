from abc import ABC, abstractmethod
from collections.abc import Iterable
from contextlib import AbstractContextManager
from uuid import UUID

from dojo_invoicing.domain.invoices import (
    Invoice,
    InvoiceFilters,
    InvoiceLineItem,
    InvoiceLineItemTax,
    InvoicePayment,
    InvoiceStatusHistory,
)
from dojo_invoicing.domain.tax_rates import TaxRate


class TaxRateRepository(ABC):
    @abstractmethod
    def add(self, tax_rate: TaxRate) -> None:
        pass

    @abstractmethod
    def get(self, tax_rate_id: UUID) -> TaxRate | None:
        pass

    @abstractmethod
    def get_many(self, tax_rate_ids: Iterable[UUID]) -> Iterable[TaxRate]:
        pass

    @abstractmethod
    def list_active(self) -> Iterable[TaxRate]:
        pass

    @abstractmethod
    def list_all(self) -> Iterable[TaxRate]:
        pass

    @abstractmethod
    def update(self, tax_rate: TaxRate) -> None:
        pass


class InvoiceRepository(ABC):
    """Storage for invoices, their line items and tax snapshots.

    Writes made inside ``transaction()`` are committed together or not at all.
    """

    @abstractmethod
    def transaction(self) -> AbstractContextManager[object]:
        pass

    @abstractmethod
    def add(self, invoice: Invoice) -> None:
        """Insert the invoice header (line items are added separately)."""

    @abstractmethod
    def get(self, invoice_id: UUID) -> Invoice | None:
        """Load the header together with line items and their tax snapshots."""

    @abstractmethod
    def get_by_number(self, invoice_number: str) -> Invoice | None:
        pass

    @abstractmethod
    def list_all(self, filters: InvoiceFilters | None = None) -> Iterable[Invoice]:
        """List invoice headers, newest first, without line items."""

    @abstractmethod
    def update(self, invoice: Invoice) -> None:
        pass

    @abstractmethod
    def delete(self, invoice_id: UUID) -> None:
        pass

    @abstractmethod
    def next_invoice_number(self, prefix: str, year: int) -> str:
        pass

    @abstractmethod
    def add_line_items(self, line_items: Iterable[InvoiceLineItem]) -> None:
        pass

    @abstractmethod
    def list_line_items(self, invoice_id: UUID) -> Iterable[InvoiceLineItem]:
        pass

    @abstractmethod
    def delete_line_items(self, invoice_id: UUID) -> None:
        """Remove all line items of an invoice, cascading to their tax snapshots."""

    @abstractmethod
    def add_line_item_taxes(self, taxes: Iterable[InvoiceLineItemTax]) -> None:
        pass

    @abstractmethod
    def list_line_item_taxes(self, line_item_id: UUID) -> Iterable[InvoiceLineItemTax]:
        pass

    @abstractmethod
    def add_payment(self, payment: InvoicePayment) -> None:
        pass

    @abstractmethod
    def list_payments(self, invoice_id: UUID) -> Iterable[InvoicePayment]:
        pass

    @abstractmethod
    def add_status_history(self, entry: InvoiceStatusHistory) -> None:
        pass

    @abstractmethod
    def list_status_history(self, invoice_id: UUID) -> Iterable[InvoiceStatusHistory]:
        pass
