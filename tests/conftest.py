from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from dojo_invoicing.domain.invoices import InvoiceDraft, LineItemDraft
from dojo_invoicing.domain.tax_rates import TaxRate
from dojo_invoicing.domain.value_objects import Currency, ItemType, Money
from dojo_invoicing.repositories.sqlite import (
    SQLiteDatabase,
    SQLiteInvoiceRepository,
    SQLiteTaxRateRepository,
)
from dojo_invoicing.services.invoicing import InvoiceServiceImpl
from dojo_invoicing.services.tax_rates import TaxRateServiceImpl


def cad(amount: str) -> Money:
    return Money(Decimal(amount), Currency.CAD)


@pytest.fixture
def db() -> SQLiteDatabase:
    database = SQLiteDatabase(":memory:")
    database.initialize()
    return database


@pytest.fixture
def tax_rate_repo(db: SQLiteDatabase) -> SQLiteTaxRateRepository:
    return SQLiteTaxRateRepository(db)


@pytest.fixture
def invoice_repo(db: SQLiteDatabase) -> SQLiteInvoiceRepository:
    return SQLiteInvoiceRepository(db)


@pytest.fixture
def tax_rate_service(tax_rate_repo: SQLiteTaxRateRepository) -> TaxRateServiceImpl:
    return TaxRateServiceImpl(tax_rate_repo)


@pytest.fixture
def invoice_service(
    invoice_repo: SQLiteInvoiceRepository,
    tax_rate_service: TaxRateServiceImpl,
) -> InvoiceServiceImpl:
    return InvoiceServiceImpl(
        invoice_repo=invoice_repo,
        tax_rate_registry=tax_rate_service,
        default_currency=Currency.CAD,
    )


@pytest.fixture
def gst() -> TaxRate:
    return TaxRate(
        name="GST",
        rate=Decimal("0.05"),
        description="Goods and Services Tax",
        region="CA",
    )


@pytest.fixture
def pst_bc() -> TaxRate:
    return TaxRate(
        name="PST_BC",
        rate=Decimal("0.07"),
        description="BC Provincial Sales Tax",
        region="BC",
    )


@pytest.fixture
def tax_rates(gst: TaxRate, pst_bc: TaxRate) -> list[TaxRate]:
    return [gst, pst_bc]


@pytest.fixture
def stored_tax_rates(
    tax_rate_repo: SQLiteTaxRateRepository, gst: TaxRate, pst_bc: TaxRate
) -> list[TaxRate]:
    tax_rate_repo.add(gst)
    tax_rate_repo.add(pst_bc)
    return [gst, pst_bc]


@pytest.fixture
def uniform_line(gst: TaxRate, pst_bc: TaxRate) -> LineItemDraft:
    return LineItemDraft(
        item_type=ItemType.PRODUCT,
        description="Competition uniform",
        quantity=1,
        unit_price=cad("100.00"),
        tax_rate_ids=frozenset({gst.id, pst_bc.id}),
    )


@pytest.fixture
def belt_line(gst: TaxRate) -> LineItemDraft:
    return LineItemDraft(
        item_type=ItemType.PRODUCT,
        description="Coloured belt",
        quantity=2,
        unit_price=cad("25.00"),
        tax_rate_ids=frozenset({gst.id}),
    )


@pytest.fixture
def invoice_draft(uniform_line: LineItemDraft, belt_line: LineItemDraft) -> InvoiceDraft:
    return InvoiceDraft(
        entity_id=uuid4(),
        family_id=uuid4(),
        issue_date=date(2025, 3, 1),
        line_items=(uniform_line, belt_line),
    )
