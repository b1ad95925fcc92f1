from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from uuid import UUID, uuid4


def _utc_now() -> datetime:
    return datetime.now(UTC)


class InvalidTaxRateError(ValueError):
    def __init__(self, rate: Decimal) -> None:
        self.rate = rate
        super().__init__(f"Tax rate must be a fraction between 0 and 1, got {rate}")


@dataclass
class TaxRate:
    """A named sales tax, e.g. GST at 0.05.

    ``rate`` is a fraction, not a percentage. Invoices never read these rows
    after issuing; they keep their own snapshot in ``InvoiceLineItemTax``.
    """

    name: str
    rate: Decimal
    description: str = ""
    id: UUID = field(default_factory=uuid4)
    region: str | None = None
    is_active: bool = True
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        if isinstance(self.rate, float):
            raise TypeError("Tax rate must be Decimal or str, not float")
        if not isinstance(self.rate, Decimal):
            self.rate = Decimal(str(self.rate))
        if self.rate < 0 or self.rate > 1:
            raise InvalidTaxRateError(self.rate)

    @property
    def percentage(self) -> Decimal:
        return self.rate * 100

    def deactivate(self) -> None:
        self.is_active = False
        self.updated_at = _utc_now()


__all__ = ["InvalidTaxRateError", "TaxRate"]
