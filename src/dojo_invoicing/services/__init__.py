from dojo_invoicing.services.calculations import (
    build_tax_associations,
    calculate_invoice_totals,
    calculate_line_item,
    calculate_tax_breakdown,
    resolve_tax_rates,
)
from dojo_invoicing.services.interfaces import (
    InvoiceService,
    TaxRateRegistry,
    TaxRateService,
)
from dojo_invoicing.services.invoicing import InvoiceServiceImpl
from dojo_invoicing.services.tax_rates import TaxRateServiceImpl

__all__ = [
    "InvoiceService",
    "InvoiceServiceImpl",
    "TaxRateRegistry",
    "TaxRateService",
    "TaxRateServiceImpl",
    "build_tax_associations",
    "calculate_invoice_totals",
    "calculate_line_item",
    "calculate_tax_breakdown",
    "resolve_tax_rates",
]
