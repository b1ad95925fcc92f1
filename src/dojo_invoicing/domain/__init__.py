from dojo_invoicing.domain.invoices import (
    Invoice,
    InvoiceCalculations,
    InvoiceDraft,
    InvoiceFilters,
    InvoiceLineItem,
    InvoiceLineItemTax,
    InvoicePayment,
    InvoiceStatistics,
    InvoiceStatusHistory,
    LineItemCalculations,
    LineItemDraft,
)
from dojo_invoicing.domain.tax_rates import InvalidTaxRateError, TaxRate
from dojo_invoicing.domain.value_objects import (
    Currency,
    InvoiceStatus,
    ItemType,
    Money,
    PaymentMethod,
    PaymentTerms,
)

__all__ = [
    "Currency",
    "InvalidTaxRateError",
    "Invoice",
    "InvoiceCalculations",
    "InvoiceDraft",
    "InvoiceFilters",
    "InvoiceLineItem",
    "InvoiceLineItemTax",
    "InvoicePayment",
    "InvoiceStatistics",
    "InvoiceStatus",
    "InvoiceStatusHistory",
    "ItemType",
    "LineItemCalculations",
    "LineItemDraft",
    "Money",
    "PaymentMethod",
    "PaymentTerms",
    "TaxRate",
]
