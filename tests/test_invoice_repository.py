"""Tests for the SQLite invoice and tax-rate repositories."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from dojo_invoicing.domain.invoices import (
    Invoice,
    InvoiceFilters,
    InvoiceLineItem,
    InvoiceLineItemTax,
    InvoicePayment,
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
from dojo_invoicing.exceptions import PersistenceError
from dojo_invoicing.repositories.sqlite import (
    SQLiteDatabase,
    SQLiteInvoiceRepository,
    SQLiteTaxRateRepository,
)


def cad(amount: str) -> Money:
    return Money(Decimal(amount), "CAD")


def make_invoice(number: str = "INV-2025-0001", **overrides) -> Invoice:
    fields = dict(
        entity_id=uuid4(),
        issue_date=date(2025, 3, 1),
        due_date=date(2025, 3, 31),
        currency=Currency.CAD,
        subtotal=cad("100.00"),
        tax_amount=cad("12.00"),
        discount_amount=cad("0.00"),
        total_amount=cad("112.00"),
        amount_paid=cad("0.00"),
        invoice_number=number,
    )
    fields.update(overrides)
    return Invoice(**fields)


def make_line_item(invoice: Invoice, **overrides) -> InvoiceLineItem:
    fields = dict(
        invoice_id=invoice.id,
        item_type=ItemType.PRODUCT,
        description="Competition uniform",
        quantity=1,
        unit_price=cad("100.00"),
        line_total=cad("100.00"),
        tax_amount=cad("12.00"),
        discount_rate=Decimal("0"),
        discount_amount=cad("0.00"),
    )
    fields.update(overrides)
    return InvoiceLineItem(**fields)


def make_tax(line_item: InvoiceLineItem, name: str, rate: str, amount: str) -> InvoiceLineItemTax:
    return InvoiceLineItemTax(
        invoice_line_item_id=line_item.id,
        tax_rate_id=uuid4(),
        tax_name_snapshot=name,
        tax_rate_snapshot=Decimal(rate),
        tax_description_snapshot="",
        tax_amount=cad(amount),
    )


def count_rows(db: SQLiteDatabase, table: str) -> int:
    return db.get_connection().execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]


class TestSQLiteTaxRateRepository:
    def test_add_and_get(self, tax_rate_repo: SQLiteTaxRateRepository, gst: TaxRate):
        tax_rate_repo.add(gst)

        stored = tax_rate_repo.get(gst.id)

        assert stored is not None
        assert stored.name == "GST"
        assert stored.rate == Decimal("0.05")
        assert stored.description == "Goods and Services Tax"

    def test_get_missing_returns_none(self, tax_rate_repo: SQLiteTaxRateRepository):
        assert tax_rate_repo.get(uuid4()) is None

    def test_duplicate_name_raises_persistence_error(
        self, tax_rate_repo: SQLiteTaxRateRepository, gst: TaxRate
    ):
        tax_rate_repo.add(gst)

        with pytest.raises(PersistenceError) as exc_info:
            tax_rate_repo.add(TaxRate(name="GST", rate=Decimal("0.06")))

        assert exc_info.value.operation == "insert tax rate"

    def test_get_many(
        self, tax_rate_repo: SQLiteTaxRateRepository, stored_tax_rates: list[TaxRate]
    ):
        gst, pst_bc = stored_tax_rates

        assert [r.id for r in tax_rate_repo.get_many([pst_bc.id])] == [pst_bc.id]
        assert list(tax_rate_repo.get_many([])) == []

    def test_list_active_excludes_inactive(
        self, tax_rate_repo: SQLiteTaxRateRepository, stored_tax_rates: list[TaxRate]
    ):
        gst, pst_bc = stored_tax_rates
        pst_bc.deactivate()
        tax_rate_repo.update(pst_bc)

        assert [r.name for r in tax_rate_repo.list_active()] == ["GST"]
        assert [r.name for r in tax_rate_repo.list_all()] == ["GST", "PST_BC"]


class TestSQLiteInvoiceRepository:
    def test_add_and_get_round_trips_money(self, invoice_repo: SQLiteInvoiceRepository):
        invoice = make_invoice(family_id=uuid4(), notes="March classes")
        invoice_repo.add(invoice)

        stored = invoice_repo.get(invoice.id)

        assert stored is not None
        assert stored.invoice_number == "INV-2025-0001"
        assert stored.total_amount == cad("112.00")
        assert stored.total_amount.currency == Currency.CAD
        assert stored.family_id == invoice.family_id
        assert stored.notes == "March classes"
        assert stored.status == InvoiceStatus.DRAFT
        assert stored.line_items == []

    def test_unrounded_amount_is_refused(self, invoice_repo: SQLiteInvoiceRepository):
        invoice = make_invoice(total_amount=cad("112.005"))

        with pytest.raises(ValueError, match="minor units"):
            invoice_repo.add(invoice)

    def test_get_by_number(self, invoice_repo: SQLiteInvoiceRepository):
        invoice = make_invoice()
        invoice_repo.add(invoice)

        assert invoice_repo.get_by_number("INV-2025-0001").id == invoice.id
        assert invoice_repo.get_by_number("INV-2025-9999") is None

    def test_line_items_with_taxes(self, invoice_repo: SQLiteInvoiceRepository):
        invoice = make_invoice()
        invoice_repo.add(invoice)
        item = make_line_item(invoice)
        invoice_repo.add_line_items([item])
        invoice_repo.add_line_item_taxes(
            [
                make_tax(item, "PST_BC", "0.07", "7.00"),
                make_tax(item, "GST", "0.05", "5.00"),
            ]
        )

        stored = invoice_repo.get(invoice.id)

        assert len(stored.line_items) == 1
        line = stored.line_items[0]
        assert line.final_amount == cad("112.00")
        assert [t.tax_name_snapshot for t in line.taxes] == ["GST", "PST_BC"]
        assert [t.tax_amount for t in line.taxes] == [cad("5.00"), cad("7.00")]

    def test_duplicate_tax_association_rejected(self, invoice_repo: SQLiteInvoiceRepository):
        invoice = make_invoice()
        invoice_repo.add(invoice)
        item = make_line_item(invoice)
        invoice_repo.add_line_items([item])
        tax = make_tax(item, "GST", "0.05", "5.00")
        invoice_repo.add_line_item_taxes([tax])

        duplicate = InvoiceLineItemTax(
            invoice_line_item_id=item.id,
            tax_rate_id=tax.tax_rate_id,
            tax_name_snapshot="GST",
            tax_rate_snapshot=Decimal("0.05"),
            tax_description_snapshot="",
            tax_amount=cad("5.00"),
        )
        with pytest.raises(PersistenceError):
            invoice_repo.add_line_item_taxes([duplicate])

    def test_delete_line_items_cascades_to_taxes(
        self, db: SQLiteDatabase, invoice_repo: SQLiteInvoiceRepository
    ):
        invoice = make_invoice()
        invoice_repo.add(invoice)
        item = make_line_item(invoice)
        invoice_repo.add_line_items([item])
        invoice_repo.add_line_item_taxes([make_tax(item, "GST", "0.05", "5.00")])

        invoice_repo.delete_line_items(invoice.id)

        assert count_rows(db, "invoice_line_items") == 0
        assert count_rows(db, "invoice_line_item_taxes") == 0

    def test_delete_invoice_cascades(
        self, db: SQLiteDatabase, invoice_repo: SQLiteInvoiceRepository
    ):
        invoice = make_invoice()
        invoice_repo.add(invoice)
        item = make_line_item(invoice)
        invoice_repo.add_line_items([item])
        invoice_repo.add_line_item_taxes([make_tax(item, "GST", "0.05", "5.00")])
        invoice_repo.add_status_history(
            InvoiceStatusHistory(invoice_id=invoice.id, new_status=InvoiceStatus.DRAFT)
        )

        invoice_repo.delete(invoice.id)

        assert invoice_repo.get(invoice.id) is None
        for table in ("invoice_line_items", "invoice_line_item_taxes", "invoice_status_history"):
            assert count_rows(db, table) == 0

    def test_line_item_for_missing_invoice_rejected(
        self, invoice_repo: SQLiteInvoiceRepository
    ):
        orphan = make_line_item(make_invoice())

        with pytest.raises(PersistenceError):
            invoice_repo.add_line_items([orphan])

    def test_next_invoice_number(self, invoice_repo: SQLiteInvoiceRepository):
        assert invoice_repo.next_invoice_number("INV", 2025) == "INV-2025-0001"

        invoice_repo.add(make_invoice("INV-2025-0001"))
        invoice_repo.add(make_invoice("INV-2025-0009"))
        invoice_repo.add(make_invoice("INV-2024-0042"))

        assert invoice_repo.next_invoice_number("INV", 2025) == "INV-2025-0010"
        assert invoice_repo.next_invoice_number("INV", 2024) == "INV-2024-0043"
        assert invoice_repo.next_invoice_number("INV", 2026) == "INV-2026-0001"

    def test_list_all_with_filters(self, invoice_repo: SQLiteInvoiceRepository):
        family_id = uuid4()
        march = make_invoice("INV-2025-0001", family_id=family_id)
        april = make_invoice(
            "INV-2025-0002",
            issue_date=date(2025, 4, 1),
            due_date=date(2025, 5, 1),
            status=InvoiceStatus.SENT,
        )
        for invoice in (march, april):
            invoice_repo.add(invoice)

        sent = invoice_repo.list_all(InvoiceFilters(statuses=[InvoiceStatus.SENT]))
        family = invoice_repo.list_all(InvoiceFilters(family_id=family_id))
        april_on = invoice_repo.list_all(InvoiceFilters(date_from=date(2025, 4, 1)))
        up_to_march = invoice_repo.list_all(InvoiceFilters(date_to=date(2025, 3, 31)))

        assert [i.id for i in sent] == [april.id]
        assert [i.id for i in family] == [march.id]
        assert [i.id for i in april_on] == [april.id]
        assert [i.id for i in up_to_march] == [march.id]
        assert len(list(invoice_repo.list_all())) == 2

    def test_list_all_loads_line_items(self, invoice_repo: SQLiteInvoiceRepository):
        invoice = make_invoice()
        invoice_repo.add(invoice)
        item = make_line_item(invoice)
        invoice_repo.add_line_items([item])
        invoice_repo.add_line_item_taxes([make_tax(item, "GST", "0.05", "5.00")])

        [listed] = invoice_repo.list_all()

        assert [line.id for line in listed.line_items] == [item.id]
        assert listed.line_items[0].taxes[0].tax_amount == cad("5.00")

    def test_read_failure_raises_persistence_error(
        self, db: SQLiteDatabase, invoice_repo: SQLiteInvoiceRepository
    ):
        invoice = make_invoice()
        invoice_repo.add(invoice)
        db.get_connection().execute("DROP TABLE invoice_status_history")

        with pytest.raises(PersistenceError) as exc_info:
            invoice_repo.list_status_history(invoice.id)

        assert exc_info.value.status_code == 500
        assert "select status history" in str(exc_info.value)

    def test_payments_and_status_history(self, invoice_repo: SQLiteInvoiceRepository):
        invoice = make_invoice(status=InvoiceStatus.SENT)
        invoice_repo.add(invoice)
        invoice_repo.add_payment(
            InvoicePayment(
                invoice_id=invoice.id,
                amount=cad("50.00"),
                payment_method=PaymentMethod.CASH,
                payment_date=date(2025, 3, 10),
                reference_number="R-1",
            )
        )
        invoice_repo.add_status_history(
            InvoiceStatusHistory(
                invoice_id=invoice.id,
                old_status=InvoiceStatus.SENT,
                new_status=InvoiceStatus.PARTIALLY_PAID,
                notes="Cash at front desk",
            )
        )

        payments = list(invoice_repo.list_payments(invoice.id))
        history = list(invoice_repo.list_status_history(invoice.id))

        assert payments[0].amount == cad("50.00")
        assert payments[0].payment_method == PaymentMethod.CASH
        assert history[0].old_status == InvoiceStatus.SENT
        assert history[0].new_status == InvoiceStatus.PARTIALLY_PAID
        assert history[0].notes == "Cash at front desk"


class TestSQLiteTransaction:
    def test_rollback_discards_all_writes(
        self, db: SQLiteDatabase, invoice_repo: SQLiteInvoiceRepository
    ):
        invoice = make_invoice()

        with pytest.raises(RuntimeError):
            with invoice_repo.transaction():
                invoice_repo.add(invoice)
                invoice_repo.add_line_items([make_line_item(invoice)])
                raise RuntimeError("boom")

        assert count_rows(db, "invoices") == 0
        assert count_rows(db, "invoice_line_items") == 0

    def test_commit_on_success(self, db: SQLiteDatabase, invoice_repo: SQLiteInvoiceRepository):
        invoice = make_invoice()

        with invoice_repo.transaction():
            invoice_repo.add(invoice)
            assert db.in_transaction is True

        assert db.in_transaction is False
        db.get_connection().rollback()
        assert invoice_repo.get(invoice.id) is not None

    def test_nested_transaction_joins_outer(
        self, db: SQLiteDatabase, invoice_repo: SQLiteInvoiceRepository
    ):
        invoice = make_invoice()

        with pytest.raises(RuntimeError):
            with db.transaction():
                with db.transaction():
                    invoice_repo.add(invoice)
                raise RuntimeError("outer failure")

        assert invoice_repo.get(invoice.id) is None
