from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any

# Currencies without a minor unit; everything else settles in hundredths.
_ZERO_DECIMAL_CURRENCIES = frozenset({"JPY", "KRW"})


class Currency(str, Enum):
    CAD = "CAD"
    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"
    AUD = "AUD"
    NZD = "NZD"
    CHF = "CHF"
    MXN = "MXN"
    JPY = "JPY"
    KRW = "KRW"

    @property
    def minor_unit(self) -> int:
        """Number of decimal places in the currency's minor unit."""
        return 0 if self.value in _ZERO_DECIMAL_CURRENCIES else 2


class ItemType(str, Enum):
    CLASS_ENROLLMENT = "class_enrollment"
    INDIVIDUAL_SESSION = "individual_session"
    PRODUCT = "product"
    FEE = "fee"
    DISCOUNT = "discount"
    OTHER = "other"


class InvoiceStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    VIEWED = "viewed"
    PAID = "paid"
    PARTIALLY_PAID = "partially_paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CHECK = "check"
    BANK_TRANSFER = "bank_transfer"
    CREDIT_CARD = "credit_card"
    ACH = "ach"
    OTHER = "other"


class PaymentTerms(str, Enum):
    DUE_ON_RECEIPT = "Due on Receipt"
    NET_15 = "Net 15"
    NET_30 = "Net 30"
    NET_60 = "Net 60"
    NET_90 = "Net 90"

    @property
    def days(self) -> int:
        if self is PaymentTerms.DUE_ON_RECEIPT:
            return 0
        return int(self.value.split()[1])


def _coerce_currency(value: "Currency | str") -> Currency:
    if isinstance(value, Currency):
        return value
    if isinstance(value, str):
        try:
            return Currency[value.upper()]
        except KeyError:
            raise ValueError(f"Invalid currency: {value}")
    raise ValueError(f"Invalid currency: {value}")


@dataclass(frozen=True, slots=True)
class Money:
    """Exact monetary amount in a single currency.

    Arithmetic happens on ``Decimal`` values and is never rounded implicitly;
    call ``quantize()`` at the point a value is produced for storage or
    display. ``float`` inputs are rejected outright.
    """

    amount: Decimal
    currency: Currency | str

    def __post_init__(self) -> None:
        if isinstance(self.amount, float):
            raise TypeError("Money amount must be Decimal, int or str, not float")
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, "amount", Decimal(str(self.amount)))
        object.__setattr__(self, "currency", _coerce_currency(self.currency))

    def _check_currency(self, other: "Money", verb: str) -> None:
        if self.currency != other.currency:
            raise ValueError(f"Cannot {verb} {self.currency.value} and {other.currency.value}")

    def __add__(self, other: "Money") -> "Money":
        self._check_currency(other, "add")
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: "Money") -> "Money":
        self._check_currency(other, "subtract")
        return Money(self.amount - other.amount, self.currency)

    def __mul__(self, factor: Decimal | int) -> "Money":
        if isinstance(factor, float):
            raise TypeError("Cannot multiply Money by float; use Decimal")
        return Money(self.amount * Decimal(factor), self.currency)

    __rmul__ = __mul__

    def __neg__(self) -> "Money":
        return Money(-self.amount, self.currency)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        return self.amount == other.amount and self.currency == other.currency

    def __hash__(self) -> int:
        return hash((self.amount, self.currency))

    def __lt__(self, other: "Money") -> bool:
        self._check_currency(other, "compare")
        return self.amount < other.amount

    def __le__(self, other: "Money") -> bool:
        return self == other or self < other

    def __gt__(self, other: "Money") -> bool:
        self._check_currency(other, "compare")
        return self.amount > other.amount

    def __ge__(self, other: "Money") -> bool:
        return self == other or self > other

    @property
    def is_zero(self) -> bool:
        return self.amount == Decimal("0")

    @property
    def is_positive(self) -> bool:
        return self.amount > Decimal("0")

    @property
    def is_negative(self) -> bool:
        return self.amount < Decimal("0")

    def quantize(self) -> "Money":
        """Round half-up to the currency's minor unit."""
        exponent = Decimal(1).scaleb(-self.currency.minor_unit)
        return Money(self.amount.quantize(exponent, rounding=ROUND_HALF_UP), self.currency)

    @property
    def minor_units(self) -> int:
        """Exact integer amount in minor units (e.g. cents).

        Raises ValueError if the amount carries sub-minor-unit precision,
        so an unrounded intermediate can never leak across a storage boundary.
        """
        scaled = self.amount.scaleb(self.currency.minor_unit)
        if scaled != scaled.to_integral_value():
            raise ValueError(
                f"{self.amount} {self.currency.value} is not a whole number of minor units"
            )
        return int(scaled)

    @classmethod
    def from_minor_units(cls, units: int, currency: Currency | str) -> "Money":
        if not isinstance(units, int) or isinstance(units, bool):
            raise TypeError(f"Minor units must be an int, got {type(units).__name__}")
        code = _coerce_currency(currency)
        return cls(Decimal(units).scaleb(-code.minor_unit), code)

    def to_dict(self) -> dict[str, Any]:
        return {"amount": self.minor_units, "currency": self.currency.value}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Money":
        return cls.from_minor_units(data["amount"], data["currency"])

    def format(self) -> str:
        """Display form, e.g. ``CAD 1,234.50``."""
        rounded = self.quantize()
        places = self.currency.minor_unit
        sign = "-" if rounded.is_negative else ""
        return f"{sign}{self.currency.value} {abs(rounded.amount):,.{places}f}"

    @classmethod
    def zero(cls, currency: Currency | str) -> "Money":
        return cls(Decimal("0"), currency)

    @classmethod
    def total(cls, amounts: Iterable["Money"], currency: Currency | str) -> "Money":
        result = cls.zero(currency)
        for amount in amounts:
            result = result + amount
        return result


__all__ = [
    "Currency",
    "InvoiceStatus",
    "ItemType",
    "Money",
    "PaymentMethod",
    "PaymentTerms",
]
