from dojo_invoicing.domain.invoices import (
    Invoice,
    InvoiceDraft,
    InvoiceLineItem,
    InvoiceLineItemTax,
    LineItemDraft,
)
from dojo_invoicing.domain.tax_rates import TaxRate
from dojo_invoicing.domain.value_objects import (
    Currency,
    InvoiceStatus,
    ItemType,
    Money,
)

__all__ = [
    "Currency",
    "Invoice",
    "InvoiceDraft",
    "InvoiceLineItem",
    "InvoiceLineItemTax",
    "InvoiceStatus",
    "ItemType",
    "LineItemDraft",
    "Money",
    "TaxRate",
]

__version__ = "0.1.0"
