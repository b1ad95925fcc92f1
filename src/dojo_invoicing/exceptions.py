"""Domain exception hierarchy for Dojo Invoicing.

All domain-specific exceptions inherit from DojoInvoicingError.
Validation problems (client-correctable input) and state problems
(operation not permitted for the invoice's current status) are kept in
separate branches so callers can map them to different responses.
"""

from typing import Any
from uuid import UUID


class DojoInvoicingError(Exception):
    """Base exception for all Dojo Invoicing errors.

    Includes optional error_code for API responses and extra context.
    """

    error_code: str = "DOJO_ERROR"
    status_code: int = 500

    def __init__(
        self,
        message: str,
        *,
        error_code: str | None = None,
        status_code: int | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if error_code:
            self.error_code = error_code
        if status_code:
            self.status_code = status_code
        self.context = context or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.error_code,
            "message": self.message,
            "context": self.context,
        }


# =============================================================================
# Validation Errors
# =============================================================================


class InvoiceValidationError(DojoInvoicingError):
    """Raised when caller-supplied invoice data is invalid."""

    error_code = "INVOICE_VALIDATION_ERROR"
    status_code = 422

    def __init__(self, message: str, *, field: str | None = None) -> None:
        context = {"field": field} if field else {}
        super().__init__(message, context=context)


class UnknownTaxRateError(InvoiceValidationError):
    """Raised when a line item references a tax rate absent from the snapshot."""

    error_code = "UNKNOWN_TAX_RATE"

    def __init__(self, tax_rate_id: UUID | str) -> None:
        super().__init__(f"Tax rate not found: {tax_rate_id}", field="tax_rate_ids")
        self.tax_rate_id = tax_rate_id
        self.context["tax_rate_id"] = str(tax_rate_id)


class CurrencyMismatchError(InvoiceValidationError):
    """Raised when amounts in different currencies are combined on one invoice."""

    error_code = "CURRENCY_MISMATCH"

    def __init__(self, expected: str, actual: str) -> None:
        super().__init__(
            f"Currency mismatch: expected {expected}, got {actual}",
            field="currency",
        )
        self.context.update({"expected": expected, "actual": actual})


# =============================================================================
# Not Found Errors
# =============================================================================


class InvoiceNotFoundError(DojoInvoicingError):
    error_code = "INVOICE_NOT_FOUND"
    status_code = 404

    def __init__(self, invoice_id: UUID | str) -> None:
        super().__init__(
            f"Invoice not found: {invoice_id}",
            context={"invoice_id": str(invoice_id)},
        )


class TaxRateNotFoundError(DojoInvoicingError):
    error_code = "TAX_RATE_NOT_FOUND"
    status_code = 404

    def __init__(self, tax_rate_id: UUID | str) -> None:
        super().__init__(
            f"Tax rate not found: {tax_rate_id}",
            context={"tax_rate_id": str(tax_rate_id)},
        )


# =============================================================================
# State Errors
# =============================================================================


class InvoiceStateError(DojoInvoicingError):
    """Raised when an operation is not permitted in the invoice's current state."""

    error_code = "INVOICE_STATE_ERROR"
    status_code = 409

    def __init__(self, invoice_id: UUID | str, status: str, message: str) -> None:
        super().__init__(
            message,
            context={"invoice_id": str(invoice_id), "status": status},
        )


class InvoiceNotEditableError(InvoiceStateError):
    error_code = "INVOICE_NOT_EDITABLE"

    def __init__(self, invoice_id: UUID | str, status: str) -> None:
        super().__init__(
            invoice_id,
            status,
            f"Only draft invoices can be edited (invoice is {status})",
        )


class InvoiceHasPaymentsError(InvoiceStateError):
    error_code = "INVOICE_HAS_PAYMENTS"

    def __init__(self, invoice_id: UUID | str, status: str) -> None:
        super().__init__(
            invoice_id,
            status,
            "Cannot delete invoice with payments. Cancel instead.",
        )


# =============================================================================
# Persistence Errors
# =============================================================================


class PersistenceError(DojoInvoicingError):
    """Raised when the backing store rejects a write or read."""

    error_code = "PERSISTENCE_ERROR"
    status_code = 500

    def __init__(self, operation: str, reason: str) -> None:
        super().__init__(
            f"Error during {operation}: {reason}",
            context={"operation": operation, "reason": reason},
        )
        self.operation = operation
        self.reason = reason
