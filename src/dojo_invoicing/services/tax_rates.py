from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime
from decimal import Decimal
from uuid import UUID

from dojo_invoicing.domain.tax_rates import TaxRate
from dojo_invoicing.domain.value_objects import ItemType
from dojo_invoicing.exceptions import TaxRateNotFoundError
from dojo_invoicing.logging_config import get_logger
from dojo_invoicing.repositories.interfaces import TaxRateRepository
from dojo_invoicing.services.interfaces import TaxRateService

logger = get_logger(__name__)

DEFAULT_PROVINCIAL_TAX_NAMES = ("PST_BC",)
DEFAULT_MEMBERSHIP_ITEM_TYPES = (ItemType.CLASS_ENROLLMENT, ItemType.INDIVIDUAL_SESSION)


class TaxRateServiceImpl(TaxRateService):
    """Tax-rate administration plus the active-rate snapshot used for invoicing.

    Provincial sales tax is not charged on memberships or one-off sessions,
    nor on purchases for students exempt from it (under 15 in BC). Which tax
    names count as provincial, and which item types count as memberships,
    is configurable.
    """

    def __init__(
        self,
        tax_rate_repo: TaxRateRepository,
        provincial_tax_names: Iterable[str] = DEFAULT_PROVINCIAL_TAX_NAMES,
        membership_item_types: Iterable[ItemType] = DEFAULT_MEMBERSHIP_ITEM_TYPES,
    ) -> None:
        self._tax_rate_repo = tax_rate_repo
        self._provincial_tax_names = frozenset(provincial_tax_names)
        self._membership_item_types = frozenset(
            ItemType(item_type) for item_type in membership_item_types
        )

    def create_tax_rate(
        self,
        name: str,
        rate: Decimal,
        description: str = "",
        region: str | None = None,
    ) -> TaxRate:
        tax_rate = TaxRate(
            name=name,
            rate=rate,
            description=description,
            region=region,
        )
        self._tax_rate_repo.add(tax_rate)
        logger.info(
            "tax_rate_created",
            tax_rate_id=str(tax_rate.id),
            name=name,
            rate=str(tax_rate.rate),
        )
        return tax_rate

    def update_tax_rate(
        self,
        tax_rate_id: UUID,
        *,
        name: str | None = None,
        rate: Decimal | None = None,
        description: str | None = None,
        region: str | None = None,
    ) -> TaxRate:
        """Edit a rate in place.

        Invoices already issued keep the values they were issued with.
        """
        current = self.get_tax_rate(tax_rate_id)
        # Rebuild so the rate passes the same validation as on create
        updated = TaxRate(
            name=name if name is not None else current.name,
            rate=rate if rate is not None else current.rate,
            description=description if description is not None else current.description,
            id=current.id,
            region=region if region is not None else current.region,
            is_active=current.is_active,
            created_at=current.created_at,
            updated_at=datetime.now(UTC),
        )
        self._tax_rate_repo.update(updated)
        logger.info(
            "tax_rate_updated",
            tax_rate_id=str(tax_rate_id),
            old_rate=str(current.rate),
            new_rate=str(updated.rate),
        )
        return updated

    def deactivate_tax_rate(self, tax_rate_id: UUID) -> TaxRate:
        tax_rate = self.get_tax_rate(tax_rate_id)
        tax_rate.deactivate()
        self._tax_rate_repo.update(tax_rate)
        logger.info("tax_rate_deactivated", tax_rate_id=str(tax_rate_id))
        return tax_rate

    def get_tax_rate(self, tax_rate_id: UUID) -> TaxRate:
        tax_rate = self._tax_rate_repo.get(tax_rate_id)
        if tax_rate is None:
            raise TaxRateNotFoundError(tax_rate_id)
        return tax_rate

    def get_tax_rates_by_ids(self, tax_rate_ids: list[UUID]) -> list[TaxRate]:
        if not tax_rate_ids:
            return []
        return list(self._tax_rate_repo.get_many(tax_rate_ids))

    def get_active_tax_rates(self) -> list[TaxRate]:
        return list(self._tax_rate_repo.list_active())

    def get_applicable_tax_rates(
        self, item_type: ItemType, exempt_from_provincial: bool = False
    ) -> list[TaxRate]:
        """Active rates that apply to an item of the given type."""
        active = self.get_active_tax_rates()
        if exempt_from_provincial or ItemType(item_type) in self._membership_item_types:
            return [
                rate for rate in active if rate.name not in self._provincial_tax_names
            ]
        return active
