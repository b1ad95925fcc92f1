"""Tests for TaxRateService implementation."""

from decimal import Decimal
from uuid import uuid4

import pytest

from dojo_invoicing.domain.tax_rates import InvalidTaxRateError, TaxRate
from dojo_invoicing.domain.value_objects import ItemType
from dojo_invoicing.exceptions import TaxRateNotFoundError
from dojo_invoicing.repositories.sqlite import SQLiteTaxRateRepository
from dojo_invoicing.services.tax_rates import TaxRateServiceImpl


class TestTaxRate:
    def test_percentage(self):
        assert TaxRate(name="GST", rate=Decimal("0.05")).percentage == Decimal("5.00")

    def test_string_rate_converted(self):
        assert TaxRate(name="GST", rate="0.05").rate == Decimal("0.05")

    def test_float_rate_rejected(self):
        with pytest.raises(TypeError):
            TaxRate(name="GST", rate=0.05)

    @pytest.mark.parametrize("rate", ["-0.01", "1.01", "5"])
    def test_rate_outside_fraction_range_rejected(self, rate):
        with pytest.raises(InvalidTaxRateError):
            TaxRate(name="GST", rate=Decimal(rate))


class TestTaxRateService:
    def test_create_tax_rate(self, tax_rate_service: TaxRateServiceImpl):
        tax_rate = tax_rate_service.create_tax_rate(
            name="GST",
            rate=Decimal("0.05"),
            description="Goods and Services Tax",
            region="CA",
        )

        stored = tax_rate_service.get_tax_rate(tax_rate.id)
        assert stored.name == "GST"
        assert stored.rate == Decimal("0.05")
        assert stored.region == "CA"
        assert stored.is_active is True

    def test_get_missing_tax_rate_raises(self, tax_rate_service: TaxRateServiceImpl):
        with pytest.raises(TaxRateNotFoundError):
            tax_rate_service.get_tax_rate(uuid4())

    def test_active_rates_ordered_by_name(self, tax_rate_service: TaxRateServiceImpl):
        tax_rate_service.create_tax_rate(name="PST_BC", rate=Decimal("0.07"))
        tax_rate_service.create_tax_rate(name="GST", rate=Decimal("0.05"))

        names = [rate.name for rate in tax_rate_service.get_active_tax_rates()]

        assert names == ["GST", "PST_BC"]

    def test_deactivated_rate_leaves_active_snapshot(
        self, tax_rate_service: TaxRateServiceImpl
    ):
        gst = tax_rate_service.create_tax_rate(name="GST", rate=Decimal("0.05"))
        hst = tax_rate_service.create_tax_rate(name="HST", rate=Decimal("0.13"))

        tax_rate_service.deactivate_tax_rate(hst.id)

        assert [rate.id for rate in tax_rate_service.get_active_tax_rates()] == [gst.id]
        assert tax_rate_service.get_tax_rate(hst.id).is_active is False

    def test_update_tax_rate(self, tax_rate_service: TaxRateServiceImpl):
        pst = tax_rate_service.create_tax_rate(name="PST_BC", rate=Decimal("0.07"))

        updated = tax_rate_service.update_tax_rate(pst.id, rate=Decimal("0.08"))

        assert updated.rate == Decimal("0.08")
        assert updated.name == "PST_BC"
        assert tax_rate_service.get_tax_rate(pst.id).rate == Decimal("0.08")

    def test_update_rejects_invalid_rate(self, tax_rate_service: TaxRateServiceImpl):
        pst = tax_rate_service.create_tax_rate(name="PST_BC", rate=Decimal("0.07"))

        with pytest.raises(InvalidTaxRateError):
            tax_rate_service.update_tax_rate(pst.id, rate=Decimal("7"))

        assert tax_rate_service.get_tax_rate(pst.id).rate == Decimal("0.07")

    def test_get_tax_rates_by_ids(self, tax_rate_service: TaxRateServiceImpl):
        gst = tax_rate_service.create_tax_rate(name="GST", rate=Decimal("0.05"))
        tax_rate_service.create_tax_rate(name="PST_BC", rate=Decimal("0.07"))

        assert [r.name for r in tax_rate_service.get_tax_rates_by_ids([gst.id])] == ["GST"]
        assert tax_rate_service.get_tax_rates_by_ids([]) == []


class TestApplicableTaxRates:
    @pytest.fixture
    def service(self, tax_rate_service: TaxRateServiceImpl) -> TaxRateServiceImpl:
        tax_rate_service.create_tax_rate(name="GST", rate=Decimal("0.05"))
        tax_rate_service.create_tax_rate(name="PST_BC", rate=Decimal("0.07"))
        return tax_rate_service

    def test_products_pay_all_rates(self, service: TaxRateServiceImpl):
        rates = service.get_applicable_tax_rates(ItemType.PRODUCT)

        assert [rate.name for rate in rates] == ["GST", "PST_BC"]

    @pytest.mark.parametrize(
        "item_type", [ItemType.CLASS_ENROLLMENT, ItemType.INDIVIDUAL_SESSION]
    )
    def test_memberships_skip_provincial_tax(
        self, service: TaxRateServiceImpl, item_type: ItemType
    ):
        rates = service.get_applicable_tax_rates(item_type)

        assert [rate.name for rate in rates] == ["GST"]

    def test_exempt_student_skips_provincial_tax(self, service: TaxRateServiceImpl):
        rates = service.get_applicable_tax_rates(
            ItemType.PRODUCT, exempt_from_provincial=True
        )

        assert [rate.name for rate in rates] == ["GST"]

    def test_exemptions_are_configurable(self, tax_rate_repo: SQLiteTaxRateRepository):
        service = TaxRateServiceImpl(
            tax_rate_repo,
            provincial_tax_names=["PST_MB"],
            membership_item_types=[ItemType.FEE],
        )
        service.create_tax_rate(name="GST", rate=Decimal("0.05"))
        service.create_tax_rate(name="PST_MB", rate=Decimal("0.07"))

        assert [r.name for r in service.get_applicable_tax_rates(ItemType.FEE)] == ["GST"]
        assert len(service.get_applicable_tax_rates(ItemType.CLASS_ENROLLMENT)) == 2
