from dojo_invoicing.repositories.interfaces import (
    InvoiceRepository,
    TaxRateRepository,
)
from dojo_invoicing.repositories.sqlite import (
    SQLiteDatabase,
    SQLiteInvoiceRepository,
    SQLiteTaxRateRepository,
)

__all__ = [
    "InvoiceRepository",
    "TaxRateRepository",
    "SQLiteDatabase",
    "SQLiteInvoiceRepository",
    "SQLiteTaxRateRepository",
]
