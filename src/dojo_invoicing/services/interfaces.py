from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal
from uuid import UUID

from dojo_invoicing.domain.invoices import (
    Invoice,
    InvoiceDraft,
    InvoiceFilters,
    InvoicePayment,
    InvoiceStatistics,
    InvoiceStatusHistory,
)
from dojo_invoicing.domain.tax_rates import TaxRate
from dojo_invoicing.domain.value_objects import (
    Currency,
    InvoiceStatus,
    ItemType,
    Money,
    PaymentMethod,
)


class TaxRateRegistry(ABC):
    """Read-only view of the currently active tax rates."""

    @abstractmethod
    def get_active_tax_rates(self) -> list[TaxRate]:
        pass


class TaxRateService(TaxRateRegistry):
    @abstractmethod
    def create_tax_rate(
        self,
        name: str,
        rate: Decimal,
        description: str = "",
        region: str | None = None,
    ) -> TaxRate:
        pass

    @abstractmethod
    def update_tax_rate(
        self,
        tax_rate_id: UUID,
        *,
        name: str | None = None,
        rate: Decimal | None = None,
        description: str | None = None,
        region: str | None = None,
    ) -> TaxRate:
        pass

    @abstractmethod
    def deactivate_tax_rate(self, tax_rate_id: UUID) -> TaxRate:
        pass

    @abstractmethod
    def get_tax_rate(self, tax_rate_id: UUID) -> TaxRate:
        pass

    @abstractmethod
    def get_tax_rates_by_ids(self, tax_rate_ids: list[UUID]) -> list[TaxRate]:
        pass

    @abstractmethod
    def get_applicable_tax_rates(
        self, item_type: ItemType, exempt_from_provincial: bool = False
    ) -> list[TaxRate]:
        pass


class InvoiceService(ABC):
    @abstractmethod
    def create_invoice(self, draft: InvoiceDraft) -> Invoice:
        pass

    @abstractmethod
    def update_invoice(self, invoice_id: UUID, draft: InvoiceDraft) -> Invoice:
        pass

    @abstractmethod
    def update_status(
        self, invoice_id: UUID, status: InvoiceStatus, notes: str | None = None
    ) -> Invoice:
        pass

    @abstractmethod
    def delete_invoice(self, invoice_id: UUID) -> None:
        pass

    @abstractmethod
    def get_invoice(self, invoice_id: UUID) -> Invoice:
        pass

    @abstractmethod
    def get_invoice_by_number(self, invoice_number: str) -> Invoice:
        pass

    @abstractmethod
    def list_invoices(self, filters: InvoiceFilters | None = None) -> list[Invoice]:
        pass

    @abstractmethod
    def record_payment(
        self,
        invoice_id: UUID,
        amount: Money,
        payment_method: PaymentMethod,
        payment_date: date,
        reference_number: str | None = None,
        notes: str | None = None,
    ) -> InvoicePayment:
        pass

    @abstractmethod
    def get_payments(self, invoice_id: UUID) -> list[InvoicePayment]:
        pass

    @abstractmethod
    def get_status_history(self, invoice_id: UUID) -> list[InvoiceStatusHistory]:
        pass

    @abstractmethod
    def get_invoice_stats(
        self,
        filters: InvoiceFilters | None = None,
        as_of: date | None = None,
        currency: Currency | None = None,
    ) -> InvoiceStatistics:
        pass
