"""SQLite implementations of repository interfaces.

Money columns hold integer minor units next to a currency code column, so
amounts round-trip exactly.
"""

from __future__ import annotations

import contextlib
import sqlite3
from collections.abc import Iterable, Iterator
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
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
from dojo_invoicing.domain.value_objects import (
    Currency,
    InvoiceStatus,
    ItemType,
    Money,
    PaymentMethod,
)
from dojo_invoicing.exceptions import PersistenceError
from dojo_invoicing.repositories.interfaces import InvoiceRepository, TaxRateRepository


def _iso(value: date | datetime | None) -> str | None:
    return value.isoformat() if value else None


def _uuid(value: UUID | None) -> str | None:
    return str(value) if value else None


def _parse_date(value: str | None) -> date | None:
    return date.fromisoformat(value) if value else None


def _parse_datetime(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _parse_uuid(value: str | None) -> UUID | None:
    return UUID(value) if value else None


@contextlib.contextmanager
def _persistence_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except sqlite3.Error as exc:
        raise PersistenceError(operation, str(exc)) from exc


class SQLiteDatabase:
    """SQLite database connection manager."""

    def __init__(
        self, path: str | Path = ":memory:", check_same_thread: bool = True
    ) -> None:
        self._path = str(path)
        self._check_same_thread = check_same_thread
        self._connection: sqlite3.Connection | None = None
        self._transaction_depth = 0

    def get_connection(self) -> sqlite3.Connection:
        """Get or create the database connection."""
        if self._connection is None:
            self._connection = sqlite3.connect(
                self._path, check_same_thread=self._check_same_thread
            )
            self._connection.row_factory = sqlite3.Row
            # Cascading deletes of line items and tax snapshots rely on this
            self._connection.execute("PRAGMA foreign_keys = ON")
        return self._connection

    @contextlib.contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Group writes into one atomic unit.

        Nested blocks join the outermost transaction; only the outermost
        block commits or rolls back.
        """
        conn = self.get_connection()
        self._transaction_depth += 1
        try:
            yield conn
        except BaseException:
            self._transaction_depth -= 1
            if self._transaction_depth == 0:
                conn.rollback()
            raise
        self._transaction_depth -= 1
        if self._transaction_depth == 0:
            conn.commit()

    @property
    def in_transaction(self) -> bool:
        return self._transaction_depth > 0

    def commit(self) -> None:
        """Commit unless an enclosing ``transaction()`` owns the commit."""
        if not self.in_transaction:
            self.get_connection().commit()

    def initialize(self) -> None:
        """Create all database tables."""
        conn = self.get_connection()
        conn.executescript(
            """
            -- Tax rates table
            CREATE TABLE IF NOT EXISTS tax_rates (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL UNIQUE,
                rate TEXT NOT NULL,
                description TEXT NOT NULL DEFAULT '',
                region TEXT,
                is_active INTEGER NOT NULL DEFAULT 1,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            -- Invoices table
            CREATE TABLE IF NOT EXISTS invoices (
                id TEXT PRIMARY KEY,
                invoice_number TEXT NOT NULL UNIQUE,
                entity_id TEXT NOT NULL,
                family_id TEXT,
                status TEXT NOT NULL DEFAULT 'draft',
                issue_date TEXT NOT NULL,
                due_date TEXT NOT NULL,
                service_period_start TEXT,
                service_period_end TEXT,
                currency TEXT NOT NULL,
                subtotal INTEGER NOT NULL DEFAULT 0,
                tax_amount INTEGER NOT NULL DEFAULT 0,
                discount_amount INTEGER NOT NULL DEFAULT 0,
                total_amount INTEGER NOT NULL DEFAULT 0,
                amount_paid INTEGER NOT NULL DEFAULT 0,
                notes TEXT,
                terms TEXT,
                footer_text TEXT,
                sent_at TEXT,
                viewed_at TEXT,
                paid_at TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            -- Invoice line items table
            CREATE TABLE IF NOT EXISTS invoice_line_items (
                id TEXT PRIMARY KEY,
                invoice_id TEXT NOT NULL,
                item_type TEXT NOT NULL,
                description TEXT NOT NULL,
                quantity INTEGER NOT NULL CHECK (quantity >= 1),
                currency TEXT NOT NULL,
                unit_price INTEGER NOT NULL,
                line_total INTEGER NOT NULL,
                tax_amount INTEGER NOT NULL,
                discount_rate TEXT NOT NULL DEFAULT '0',
                discount_amount INTEGER NOT NULL,
                enrollment_id TEXT,
                product_id TEXT,
                service_period_start TEXT,
                service_period_end TEXT,
                sort_order INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL,
                FOREIGN KEY (invoice_id) REFERENCES invoices(id) ON DELETE CASCADE
            );

            -- Tax snapshots per line item; tax_rate_id is deliberately not a
            -- foreign key so rate edits or removal never touch issued invoices
            CREATE TABLE IF NOT EXISTS invoice_line_item_taxes (
                id TEXT PRIMARY KEY,
                invoice_line_item_id TEXT NOT NULL,
                tax_rate_id TEXT NOT NULL,
                tax_name_snapshot TEXT NOT NULL,
                tax_rate_snapshot TEXT NOT NULL,
                tax_description_snapshot TEXT NOT NULL DEFAULT '',
                tax_amount INTEGER NOT NULL,
                currency TEXT NOT NULL,
                created_at TEXT NOT NULL,
                UNIQUE(invoice_line_item_id, tax_rate_id),
                FOREIGN KEY (invoice_line_item_id) REFERENCES invoice_line_items(id) ON DELETE CASCADE
            );

            -- Payments block invoice deletion (no cascade)
            CREATE TABLE IF NOT EXISTS invoice_payments (
                id TEXT PRIMARY KEY,
                invoice_id TEXT NOT NULL,
                amount INTEGER NOT NULL,
                currency TEXT NOT NULL,
                payment_method TEXT NOT NULL,
                payment_date TEXT NOT NULL,
                reference_number TEXT,
                notes TEXT,
                created_at TEXT NOT NULL,
                FOREIGN KEY (invoice_id) REFERENCES invoices(id)
            );

            -- Invoice status history table
            CREATE TABLE IF NOT EXISTS invoice_status_history (
                id TEXT PRIMARY KEY,
                invoice_id TEXT NOT NULL,
                old_status TEXT,
                new_status TEXT NOT NULL,
                notes TEXT,
                created_at TEXT NOT NULL,
                FOREIGN KEY (invoice_id) REFERENCES invoices(id) ON DELETE CASCADE
            );

            -- Indexes for common queries
            CREATE INDEX IF NOT EXISTS idx_tax_rates_active ON tax_rates(is_active);
            CREATE INDEX IF NOT EXISTS idx_invoices_status ON invoices(status);
            CREATE INDEX IF NOT EXISTS idx_invoices_entity_id ON invoices(entity_id);
            CREATE INDEX IF NOT EXISTS idx_invoices_family_id ON invoices(family_id);
            CREATE INDEX IF NOT EXISTS idx_invoices_issue_date ON invoices(issue_date);
            CREATE INDEX IF NOT EXISTS idx_line_items_invoice_id ON invoice_line_items(invoice_id);
            CREATE INDEX IF NOT EXISTS idx_line_item_taxes_line_item_id ON invoice_line_item_taxes(invoice_line_item_id);
            CREATE INDEX IF NOT EXISTS idx_payments_invoice_id ON invoice_payments(invoice_id);
            CREATE INDEX IF NOT EXISTS idx_status_history_invoice_id ON invoice_status_history(invoice_id);
            """
        )

    def close(self) -> None:
        """Close the database connection."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None


class SQLiteTaxRateRepository(TaxRateRepository):
    """SQLite implementation of TaxRateRepository."""

    def __init__(self, db: SQLiteDatabase) -> None:
        self._db = db

    def add(self, tax_rate: TaxRate) -> None:
        conn = self._db.get_connection()
        with _persistence_errors("insert tax rate"):
            conn.execute(
                """
                INSERT INTO tax_rates (id, name, rate, description, region, is_active,
                                       created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(tax_rate.id),
                    tax_rate.name,
                    str(tax_rate.rate),
                    tax_rate.description,
                    tax_rate.region,
                    1 if tax_rate.is_active else 0,
                    tax_rate.created_at.isoformat(),
                    tax_rate.updated_at.isoformat(),
                ),
            )
            self._db.commit()

    def get(self, tax_rate_id: UUID) -> TaxRate | None:
        conn = self._db.get_connection()
        with _persistence_errors("select tax rate"):
            row = conn.execute(
                "SELECT * FROM tax_rates WHERE id = ?", (str(tax_rate_id),)
            ).fetchone()
        if row is None:
            return None
        return self._row_to_tax_rate(row)

    def get_many(self, tax_rate_ids: Iterable[UUID]) -> Iterable[TaxRate]:
        ids = [str(tax_rate_id) for tax_rate_id in tax_rate_ids]
        if not ids:
            return []
        placeholders = ", ".join("?" for _ in ids)
        conn = self._db.get_connection()
        with _persistence_errors("select tax rates"):
            rows = conn.execute(
                f"SELECT * FROM tax_rates WHERE id IN ({placeholders}) ORDER BY name",
                ids,
            ).fetchall()
        return [self._row_to_tax_rate(row) for row in rows]

    def list_active(self) -> Iterable[TaxRate]:
        conn = self._db.get_connection()
        with _persistence_errors("select active tax rates"):
            rows = conn.execute(
                "SELECT * FROM tax_rates WHERE is_active = 1 ORDER BY name"
            ).fetchall()
        return [self._row_to_tax_rate(row) for row in rows]

    def list_all(self) -> Iterable[TaxRate]:
        conn = self._db.get_connection()
        with _persistence_errors("select tax rates"):
            rows = conn.execute("SELECT * FROM tax_rates ORDER BY name").fetchall()
        return [self._row_to_tax_rate(row) for row in rows]

    def update(self, tax_rate: TaxRate) -> None:
        conn = self._db.get_connection()
        with _persistence_errors("update tax rate"):
            conn.execute(
                """
                UPDATE tax_rates SET
                    name = ?,
                    rate = ?,
                    description = ?,
                    region = ?,
                    is_active = ?,
                    updated_at = ?
                WHERE id = ?
                """,
                (
                    tax_rate.name,
                    str(tax_rate.rate),
                    tax_rate.description,
                    tax_rate.region,
                    1 if tax_rate.is_active else 0,
                    tax_rate.updated_at.isoformat(),
                    str(tax_rate.id),
                ),
            )
            self._db.commit()

    def _row_to_tax_rate(self, row: sqlite3.Row) -> TaxRate:
        return TaxRate(
            name=row["name"],
            rate=Decimal(row["rate"]),
            description=row["description"] or "",
            id=UUID(row["id"]),
            region=row["region"],
            is_active=bool(row["is_active"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )


class SQLiteInvoiceRepository(InvoiceRepository):
    """SQLite implementation of InvoiceRepository."""

    def __init__(self, db: SQLiteDatabase) -> None:
        self._db = db

    def transaction(self) -> contextlib.AbstractContextManager[sqlite3.Connection]:
        return self._db.transaction()

    def add(self, invoice: Invoice) -> None:
        conn = self._db.get_connection()
        with _persistence_errors("insert invoice"):
            conn.execute(
                """
                INSERT INTO invoices (id, invoice_number, entity_id, family_id, status,
                                      issue_date, due_date, service_period_start,
                                      service_period_end, currency, subtotal, tax_amount,
                                      discount_amount, total_amount, amount_paid, notes,
                                      terms, footer_text, sent_at, viewed_at, paid_at,
                                      created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(invoice.id),
                    invoice.invoice_number,
                    str(invoice.entity_id),
                    _uuid(invoice.family_id),
                    invoice.status.value,
                    invoice.issue_date.isoformat(),
                    invoice.due_date.isoformat(),
                    _iso(invoice.service_period_start),
                    _iso(invoice.service_period_end),
                    invoice.currency.value,
                    invoice.subtotal.minor_units,
                    invoice.tax_amount.minor_units,
                    invoice.discount_amount.minor_units,
                    invoice.total_amount.minor_units,
                    invoice.amount_paid.minor_units,
                    invoice.notes,
                    invoice.terms,
                    invoice.footer_text,
                    _iso(invoice.sent_at),
                    _iso(invoice.viewed_at),
                    _iso(invoice.paid_at),
                    invoice.created_at.isoformat(),
                    invoice.updated_at.isoformat(),
                ),
            )
            self._db.commit()

    def get(self, invoice_id: UUID) -> Invoice | None:
        conn = self._db.get_connection()
        with _persistence_errors("select invoice"):
            row = conn.execute(
                "SELECT * FROM invoices WHERE id = ?", (str(invoice_id),)
            ).fetchone()
        if row is None:
            return None
        invoice = self._row_to_invoice(row)
        invoice.line_items = list(self.list_line_items(invoice.id))
        return invoice

    def get_by_number(self, invoice_number: str) -> Invoice | None:
        conn = self._db.get_connection()
        with _persistence_errors("select invoice by number"):
            row = conn.execute(
                "SELECT id FROM invoices WHERE invoice_number = ?", (invoice_number,)
            ).fetchone()
        if row is None:
            return None
        return self.get(UUID(row["id"]))

    def list_all(self, filters: InvoiceFilters | None = None) -> Iterable[Invoice]:
        conn = self._db.get_connection()
        query = "SELECT * FROM invoices WHERE 1 = 1"
        params: list[str] = []

        if filters is not None:
            if filters.statuses:
                statuses = [InvoiceStatus(status).value for status in filters.statuses]
                query += f" AND status IN ({', '.join('?' for _ in statuses)})"
                params.extend(statuses)
            if filters.entity_id is not None:
                query += " AND entity_id = ?"
                params.append(str(filters.entity_id))
            if filters.family_id is not None:
                query += " AND family_id = ?"
                params.append(str(filters.family_id))
            if filters.date_from is not None:
                query += " AND issue_date >= ?"
                params.append(filters.date_from.isoformat())
            if filters.date_to is not None:
                query += " AND issue_date <= ?"
                params.append(filters.date_to.isoformat())

        query += " ORDER BY created_at DESC, invoice_number DESC"
        with _persistence_errors("select invoices"):
            rows = conn.execute(query, params).fetchall()
        invoices = [self._row_to_invoice(row) for row in rows]
        for invoice in invoices:
            invoice.line_items = list(self.list_line_items(invoice.id))
        return invoices

    def update(self, invoice: Invoice) -> None:
        conn = self._db.get_connection()
        with _persistence_errors("update invoice"):
            conn.execute(
                """
                UPDATE invoices SET
                    entity_id = ?,
                    family_id = ?,
                    status = ?,
                    issue_date = ?,
                    due_date = ?,
                    service_period_start = ?,
                    service_period_end = ?,
                    currency = ?,
                    subtotal = ?,
                    tax_amount = ?,
                    discount_amount = ?,
                    total_amount = ?,
                    amount_paid = ?,
                    notes = ?,
                    terms = ?,
                    footer_text = ?,
                    sent_at = ?,
                    viewed_at = ?,
                    paid_at = ?,
                    updated_at = ?
                WHERE id = ?
                """,
                (
                    str(invoice.entity_id),
                    _uuid(invoice.family_id),
                    invoice.status.value,
                    invoice.issue_date.isoformat(),
                    invoice.due_date.isoformat(),
                    _iso(invoice.service_period_start),
                    _iso(invoice.service_period_end),
                    invoice.currency.value,
                    invoice.subtotal.minor_units,
                    invoice.tax_amount.minor_units,
                    invoice.discount_amount.minor_units,
                    invoice.total_amount.minor_units,
                    invoice.amount_paid.minor_units,
                    invoice.notes,
                    invoice.terms,
                    invoice.footer_text,
                    _iso(invoice.sent_at),
                    _iso(invoice.viewed_at),
                    _iso(invoice.paid_at),
                    invoice.updated_at.isoformat(),
                    str(invoice.id),
                ),
            )
            self._db.commit()

    def delete(self, invoice_id: UUID) -> None:
        conn = self._db.get_connection()
        with _persistence_errors("delete invoice"):
            # Line items, tax snapshots and status history go via CASCADE
            conn.execute("DELETE FROM invoices WHERE id = ?", (str(invoice_id),))
            self._db.commit()

    def next_invoice_number(self, prefix: str, year: int) -> str:
        stem = f"{prefix}-{year}-"
        conn = self._db.get_connection()
        with _persistence_errors("select next invoice number"):
            row = conn.execute(
                """
                SELECT MAX(CAST(substr(invoice_number, ?) AS INTEGER)) AS last_sequence
                FROM invoices
                WHERE invoice_number LIKE ?
                """,
                (len(stem) + 1, f"{stem}%"),
            ).fetchone()
        last_sequence = row["last_sequence"] or 0
        return f"{stem}{last_sequence + 1:04d}"

    def add_line_items(self, line_items: Iterable[InvoiceLineItem]) -> None:
        conn = self._db.get_connection()
        with _persistence_errors("insert line items"):
            conn.executemany(
                """
                INSERT INTO invoice_line_items (id, invoice_id, item_type, description,
                                                quantity, currency, unit_price, line_total,
                                                tax_amount, discount_rate, discount_amount,
                                                enrollment_id, product_id,
                                                service_period_start, service_period_end,
                                                sort_order, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        str(item.id),
                        str(item.invoice_id),
                        item.item_type.value,
                        item.description,
                        item.quantity,
                        item.unit_price.currency.value,
                        item.unit_price.minor_units,
                        item.line_total.minor_units,
                        item.tax_amount.minor_units,
                        str(item.discount_rate),
                        item.discount_amount.minor_units,
                        _uuid(item.enrollment_id),
                        _uuid(item.product_id),
                        _iso(item.service_period_start),
                        _iso(item.service_period_end),
                        item.sort_order,
                        item.created_at.isoformat(),
                    )
                    for item in line_items
                ],
            )
            self._db.commit()

    def list_line_items(self, invoice_id: UUID) -> Iterable[InvoiceLineItem]:
        conn = self._db.get_connection()
        with _persistence_errors("select line items"):
            rows = conn.execute(
                """
                SELECT * FROM invoice_line_items
                WHERE invoice_id = ?
                ORDER BY sort_order, created_at
                """,
                (str(invoice_id),),
            ).fetchall()
        items = [self._row_to_line_item(row) for row in rows]
        for item in items:
            item.taxes = list(self.list_line_item_taxes(item.id))
        return items

    def delete_line_items(self, invoice_id: UUID) -> None:
        conn = self._db.get_connection()
        with _persistence_errors("delete line items"):
            # Tax snapshots deleted via CASCADE
            conn.execute(
                "DELETE FROM invoice_line_items WHERE invoice_id = ?", (str(invoice_id),)
            )
            self._db.commit()

    def add_line_item_taxes(self, taxes: Iterable[InvoiceLineItemTax]) -> None:
        conn = self._db.get_connection()
        with _persistence_errors("insert line item tax associations"):
            conn.executemany(
                """
                INSERT INTO invoice_line_item_taxes (id, invoice_line_item_id, tax_rate_id,
                                                     tax_name_snapshot, tax_rate_snapshot,
                                                     tax_description_snapshot, tax_amount,
                                                     currency, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        str(tax.id),
                        str(tax.invoice_line_item_id),
                        str(tax.tax_rate_id),
                        tax.tax_name_snapshot,
                        str(tax.tax_rate_snapshot),
                        tax.tax_description_snapshot,
                        tax.tax_amount.minor_units,
                        tax.tax_amount.currency.value,
                        tax.created_at.isoformat(),
                    )
                    for tax in taxes
                ],
            )
            self._db.commit()

    def list_line_item_taxes(self, line_item_id: UUID) -> Iterable[InvoiceLineItemTax]:
        conn = self._db.get_connection()
        with _persistence_errors("select line item taxes"):
            rows = conn.execute(
                """
                SELECT * FROM invoice_line_item_taxes
                WHERE invoice_line_item_id = ?
                ORDER BY tax_name_snapshot
                """,
                (str(line_item_id),),
            ).fetchall()
        return [self._row_to_line_item_tax(row) for row in rows]

    def add_payment(self, payment: InvoicePayment) -> None:
        conn = self._db.get_connection()
        with _persistence_errors("insert payment"):
            conn.execute(
                """
                INSERT INTO invoice_payments (id, invoice_id, amount, currency,
                                              payment_method, payment_date,
                                              reference_number, notes, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(payment.id),
                    str(payment.invoice_id),
                    payment.amount.minor_units,
                    payment.amount.currency.value,
                    payment.payment_method.value,
                    payment.payment_date.isoformat(),
                    payment.reference_number,
                    payment.notes,
                    payment.created_at.isoformat(),
                ),
            )
            self._db.commit()

    def list_payments(self, invoice_id: UUID) -> Iterable[InvoicePayment]:
        conn = self._db.get_connection()
        with _persistence_errors("select payments"):
            rows = conn.execute(
                """
                SELECT * FROM invoice_payments
                WHERE invoice_id = ?
                ORDER BY payment_date, created_at
                """,
                (str(invoice_id),),
            ).fetchall()
        return [self._row_to_payment(row) for row in rows]

    def add_status_history(self, entry: InvoiceStatusHistory) -> None:
        conn = self._db.get_connection()
        with _persistence_errors("insert status history"):
            conn.execute(
                """
                INSERT INTO invoice_status_history (id, invoice_id, old_status, new_status,
                                                    notes, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    str(entry.id),
                    str(entry.invoice_id),
                    entry.old_status.value if entry.old_status else None,
                    entry.new_status.value,
                    entry.notes,
                    entry.created_at.isoformat(),
                ),
            )
            self._db.commit()

    def list_status_history(self, invoice_id: UUID) -> Iterable[InvoiceStatusHistory]:
        conn = self._db.get_connection()
        with _persistence_errors("select status history"):
            rows = conn.execute(
                """
                SELECT * FROM invoice_status_history
                WHERE invoice_id = ?
                ORDER BY created_at
                """,
                (str(invoice_id),),
            ).fetchall()
        return [self._row_to_status_history(row) for row in rows]

    def _row_to_invoice(self, row: sqlite3.Row) -> Invoice:
        currency = Currency(row["currency"])
        return Invoice(
            entity_id=UUID(row["entity_id"]),
            issue_date=date.fromisoformat(row["issue_date"]),
            due_date=date.fromisoformat(row["due_date"]),
            currency=currency,
            subtotal=Money.from_minor_units(row["subtotal"], currency),
            tax_amount=Money.from_minor_units(row["tax_amount"], currency),
            discount_amount=Money.from_minor_units(row["discount_amount"], currency),
            total_amount=Money.from_minor_units(row["total_amount"], currency),
            amount_paid=Money.from_minor_units(row["amount_paid"], currency),
            id=UUID(row["id"]),
            invoice_number=row["invoice_number"],
            family_id=_parse_uuid(row["family_id"]),
            status=InvoiceStatus(row["status"]),
            service_period_start=_parse_date(row["service_period_start"]),
            service_period_end=_parse_date(row["service_period_end"]),
            notes=row["notes"],
            terms=row["terms"],
            footer_text=row["footer_text"],
            sent_at=_parse_datetime(row["sent_at"]),
            viewed_at=_parse_datetime(row["viewed_at"]),
            paid_at=_parse_datetime(row["paid_at"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    def _row_to_line_item(self, row: sqlite3.Row) -> InvoiceLineItem:
        currency = Currency(row["currency"])
        return InvoiceLineItem(
            invoice_id=UUID(row["invoice_id"]),
            item_type=ItemType(row["item_type"]),
            description=row["description"],
            quantity=row["quantity"],
            unit_price=Money.from_minor_units(row["unit_price"], currency),
            line_total=Money.from_minor_units(row["line_total"], currency),
            tax_amount=Money.from_minor_units(row["tax_amount"], currency),
            discount_rate=Decimal(row["discount_rate"]),
            discount_amount=Money.from_minor_units(row["discount_amount"], currency),
            id=UUID(row["id"]),
            enrollment_id=_parse_uuid(row["enrollment_id"]),
            product_id=_parse_uuid(row["product_id"]),
            service_period_start=_parse_date(row["service_period_start"]),
            service_period_end=_parse_date(row["service_period_end"]),
            sort_order=row["sort_order"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def _row_to_line_item_tax(self, row: sqlite3.Row) -> InvoiceLineItemTax:
        return InvoiceLineItemTax(
            invoice_line_item_id=UUID(row["invoice_line_item_id"]),
            tax_rate_id=UUID(row["tax_rate_id"]),
            tax_name_snapshot=row["tax_name_snapshot"],
            tax_rate_snapshot=Decimal(row["tax_rate_snapshot"]),
            tax_description_snapshot=row["tax_description_snapshot"] or "",
            tax_amount=Money.from_minor_units(row["tax_amount"], row["currency"]),
            id=UUID(row["id"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def _row_to_payment(self, row: sqlite3.Row) -> InvoicePayment:
        return InvoicePayment(
            invoice_id=UUID(row["invoice_id"]),
            amount=Money.from_minor_units(row["amount"], row["currency"]),
            payment_method=PaymentMethod(row["payment_method"]),
            payment_date=date.fromisoformat(row["payment_date"]),
            id=UUID(row["id"]),
            reference_number=row["reference_number"],
            notes=row["notes"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def _row_to_status_history(self, row: sqlite3.Row) -> InvoiceStatusHistory:
        return InvoiceStatusHistory(
            invoice_id=UUID(row["invoice_id"]),
            new_status=InvoiceStatus(row["new_status"]),
            old_status=InvoiceStatus(row["old_status"]) if row["old_status"] else None,
            notes=row["notes"],
            id=UUID(row["id"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )
