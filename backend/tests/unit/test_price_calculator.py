"""
Unit Tests for the price calculator

Worked examples for each pricing step, broker discounts, and the
breakdown invariants (idempotence, rounding, JSON round trip).
"""
import pytest
from decimal import Decimal

from sqlalchemy.orm import Session

from gangrun.exceptions import InvalidBrokerDiscountError, OutOfRangeError, PricingModelMismatchError
from gangrun.models import AddOn, QuantityGroup
from gangrun.schemas.pricing import PriceBreakdown
from gangrun.services.catalog_repository import SqlCatalogRepository
from gangrun.services.configuration_validator import validate_configuration
from gangrun.services.price_calculator import broker_discount_percent, calculate_price
from tests.factories import create_test_catalog, make_configuration


def _price(repository, data, broker_discounts=None, **overrides):
    validated = validate_configuration(repository, make_configuration(data, **overrides))
    return calculate_price(validated, broker_discounts=broker_discounts)


class TestBaseAndPaper:

    def test_base_price_only(self, db_session: Session, catalog_data, repository):
        breakdown = _price(repository, catalog_data)

        assert breakdown.total == Decimal("100.00")
        assert breakdown.subtotal_before_turnaround == Decimal("100.00")
        assert breakdown.paper_lines == []
        assert breakdown.unit_price == Decimal("0.1000")
        assert breakdown.production_days_min == 5
        assert breakdown.production_days_max == 7

    def test_setup_fee_is_part_of_base(self, db_session: Session):
        data = create_test_catalog(db_session, setup_fee=Decimal("15"))
        db_session.commit()
        breakdown = _price(SqlCatalogRepository(db_session), data)
        assert breakdown.total == Decimal("115.00")

    def test_print_cost_by_area(self, db_session: Session):
        """0.001/sq in x 7 sq in x 1000 = $7.00"""
        data = create_test_catalog(db_session, price_per_sq_inch=Decimal("0.001"))
        db_session.commit()
        breakdown = _price(SqlCatalogRepository(db_session), data)

        print_line = breakdown.paper_lines[-1]
        assert print_line.kind == "print"
        assert print_line.amount == Decimal("7.000")
        assert breakdown.total == Decimal("107.00")

    def test_print_cost_uses_quantity_calculation_value(self, db_session: Session):
        """1000 cards print-priced as 1100: 0.001 x 7 x 1100 = $7.70"""
        data = create_test_catalog(
            db_session, price_per_sq_inch=Decimal("0.001"),
            quantity_calculation_values={"1000": {"calculation_value": 1100}},
        )
        db_session.commit()
        breakdown = _price(SqlCatalogRepository(db_session), data)

        print_line = breakdown.paper_lines[-1]
        assert print_line.amount == Decimal("7.7")
        assert print_line.formula.endswith("x 1100")
        assert breakdown.quantity == 1000
        assert breakdown.total == Decimal("107.70")

    def test_adjustment_value_wins_over_calculation_value(self, db_session: Session):
        data = create_test_catalog(
            db_session, price_per_sq_inch=Decimal("0.001"),
            quantity_calculation_values={"1000": {"calculation_value": 1100, "adjustment_value": 1200}},
        )
        db_session.commit()
        breakdown = _price(SqlCatalogRepository(db_session), data)
        assert breakdown.paper_lines[-1].amount == Decimal("8.4")

    def test_custom_quantity_prints_at_entered_value(self, db_session: Session):
        data = create_test_catalog(
            db_session, price_per_sq_inch=Decimal("0.001"),
            quantity_calculation_values={"1000": {"calculation_value": 1100}},
        )
        db_session.commit()
        breakdown = _price(SqlCatalogRepository(db_session), data, quantity=None, custom_quantity=1000)
        assert breakdown.paper_lines[-1].amount == Decimal("7")

    def test_double_sided_exception_paper(self, db_session: Session):
        """Text paper printed 4/4: 0.001 x 1.75 x 7 x 1000 = $12.25"""
        data = create_test_catalog(db_session, price_per_sq_inch=Decimal("0.001"))
        db_session.commit()
        breakdown = _price(
            SqlCatalogRepository(db_session), data,
            paper_stock_id="paper_text", sides_id="sides_double",
        )
        assert breakdown.paper_delta == Decimal("12.25")
        assert breakdown.total == Decimal("112.25")

    def test_double_sided_cardstock_is_not_marked_up(self, db_session: Session):
        data = create_test_catalog(db_session, price_per_sq_inch=Decimal("0.001"))
        db_session.commit()
        breakdown = _price(SqlCatalogRepository(db_session), data, sides_id="sides_double")
        assert breakdown.total == Decimal("107.00")


class TestAddOns:

    def test_banding(self, db_session: Session, catalog_data, repository):
        """1000 cards in bundles of 100 at $0.75 = $7.50"""
        breakdown = _price(repository, catalog_data, add_ons=[("banding", {})])

        assert breakdown.add_on_lines[0].amount == Decimal("7.50")
        assert breakdown.add_on_lines[0].pricing_model == "CUSTOM"
        assert breakdown.total == Decimal("107.50")
        # Banding adds a production day
        assert breakdown.production_days_min == 6
        assert breakdown.production_days_max == 8

    def test_corner_rounding(self, db_session: Session, catalog_data, repository):
        """$20 setup + $0.01 x 2500 = $45.00"""
        breakdown = _price(repository, catalog_data, quantity=2500, add_ons=[("corner_rounding", {"radius": "1/4"})])
        assert breakdown.add_on_lines[0].amount == Decimal("45.00")
        assert breakdown.total == Decimal("145.00")

    def test_percentage_against_pre_add_on_subtotal(self, db_session: Session, catalog_data, repository):
        breakdown = _price(
            repository, catalog_data,
            add_ons=[("digital_proof", {}), ("exact_size", {})],
        )
        amounts = {line.add_on_id: line.amount for line in breakdown.add_on_lines}

        assert amounts["digital_proof"] == Decimal("5.00")
        # 12.5% of $100, not of $105
        assert amounts["exact_size"] == Decimal("12.500")
        assert breakdown.total == Decimal("117.50")

    def test_add_ons_priced_in_selection_order(self, db_session: Session, catalog_data, repository):
        breakdown = _price(
            repository, catalog_data,
            add_ons=[("exact_size", {}), ("digital_proof", {})],
        )
        assert [line.add_on_id for line in breakdown.add_on_lines] == ["exact_size", "digital_proof"]

    def test_missing_bundle_size_is_mismatch(self, db_session: Session, catalog_data, repository):
        add_on = db_session.query(AddOn).filter_by(id="banding").first()
        add_on.configuration = {"perBundle": 0.75}
        db_session.commit()

        with pytest.raises(PricingModelMismatchError) as exc_info:
            _price(repository, catalog_data, add_ons=[("banding", {})])
        assert exc_info.value.status_code == 500
        assert exc_info.value.details["add_on_id"] == "banding"

    def test_unparseable_configuration_is_mismatch(self, db_session: Session, catalog_data, repository):
        add_on = db_session.query(AddOn).filter_by(id="digital_proof").first()
        add_on.configuration = {"perUnit": 0.5}
        db_session.commit()

        with pytest.raises(PricingModelMismatchError) as exc_info:
            _price(repository, catalog_data, add_ons=[("digital_proof", {})])
        assert exc_info.value.message == "Unable to calculate price"


class TestTurnaround:

    def test_economy_adds_nothing(self, db_session: Session, catalog_data, repository):
        breakdown = _price(repository, catalog_data)
        assert breakdown.turnaround.amount == Decimal("0")

    def test_fast_multiplies_subtotal(self, db_session: Session, catalog_data, repository):
        """$100 x 1.3 = $130, shown as a $30 turnaround line"""
        breakdown = _price(repository, catalog_data, turnaround_time_id="fast")

        assert breakdown.turnaround.amount == Decimal("30.0")
        assert breakdown.total == Decimal("130.00")
        assert breakdown.production_days_min == 3

    def test_multiplier_applies_after_add_ons(self, db_session: Session, catalog_data, repository):
        breakdown = _price(
            repository, catalog_data,
            turnaround_time_id="fast", add_ons=[("banding", {})],
        )
        # (100 + 7.50) x 1.3
        assert breakdown.total == Decimal("139.75")

    def test_flat_turnaround_adds_fee(self, db_session: Session, catalog_data, repository):
        breakdown = _price(repository, catalog_data, turnaround_time_id="rush_flat")

        assert breakdown.turnaround.pricing_model == "FLAT"
        assert breakdown.turnaround.amount == Decimal("25.00")
        assert breakdown.total == Decimal("125.00")


class TestBrokerDiscount:

    def test_category_discount(self, db_session: Session):
        """10% off $200 = $180 with a -$20 line"""
        data = create_test_catalog(db_session, base_price=Decimal("200.00"))
        db_session.commit()
        breakdown = _price(SqlCatalogRepository(db_session), data, broker_discounts={"flyers": 10})

        assert breakdown.broker_discount.amount == Decimal("-20")
        assert breakdown.broker_discount.percent == Decimal("10")
        assert breakdown.total == Decimal("180.00")

    def test_discount_applies_after_turnaround(self, db_session: Session, catalog_data, repository):
        breakdown = _price(
            repository, catalog_data, turnaround_time_id="fast", broker_discounts={"flyers": 10},
        )
        assert breakdown.total == Decimal("117.00")

    def test_regular_customer_has_no_discount_line(self, db_session: Session, catalog_data, repository):
        breakdown = _price(repository, catalog_data)
        assert breakdown.broker_discount is None

    def test_broker_customer_through_engine(self, db_session: Session, catalog_data, engine_service, broker_customer):
        validated = engine_service.validate_configuration(make_configuration(catalog_data))
        breakdown = engine_service.calculate_price(validated, customer_id=broker_customer.id)
        assert breakdown.total == Decimal("90.00")

    def test_regular_customer_through_engine(self, db_session: Session, catalog_data, engine_service, regular_customer):
        breakdown = engine_service.quote(make_configuration(catalog_data), customer_id=regular_customer.id)
        assert breakdown.total == Decimal("100.00")


class TestBrokerDiscountPercent:

    def test_category_entry_wins(self):
        assert broker_discount_percent({"flyers": 10, "_default": 5}, "flyers") == Decimal("10")

    def test_falls_back_to_default_entry(self):
        assert broker_discount_percent({"postcards": 10, "_default": 5}, "flyers") == Decimal("5")

    def test_no_matching_entry(self):
        assert broker_discount_percent({"postcards": 10}, "flyers") is None

    def test_no_discounts(self):
        assert broker_discount_percent(None, "flyers") is None
        assert broker_discount_percent({}, "flyers") is None

    @pytest.mark.parametrize("discounts", [
        {"_default": "ten"},
        {"flyers": "NaN"},
        {"flyers": True},
    ])
    def test_malformed_entry_is_a_data_error(self, discounts):
        with pytest.raises(InvalidBrokerDiscountError) as exc_info:
            broker_discount_percent(discounts, "flyers")
        assert exc_info.value.status_code == 500
        assert exc_info.value.message == "Unable to calculate price"

    def test_malformed_entry_stops_pricing(self, db_session: Session, catalog_data, repository):
        with pytest.raises(InvalidBrokerDiscountError) as exc_info:
            _price(repository, catalog_data, broker_discounts={"_default": "ten"})
        assert exc_info.value.details["key"] == "_default"


class TestBreakdownInvariants:

    def test_same_input_same_breakdown(self, db_session: Session, catalog_data, repository):
        validated = validate_configuration(
            repository,
            make_configuration(catalog_data, turnaround_time_id="fast", add_ons=[("banding", {})]),
        )
        assert calculate_price(validated) == calculate_price(validated)

    def test_rounded_sum_of_lines_is_total(self, db_session: Session):
        data = create_test_catalog(
            db_session, base_price=Decimal("33.333"), price_per_sq_inch=Decimal("0.00037"),
        )
        db_session.commit()
        breakdown = _price(
            SqlCatalogRepository(db_session), data,
            paper_stock_id="paper_text", sides_id="sides_double", quantity=2500,
            turnaround_time_id="fastest", add_ons=[("exact_size", {}), ("banding", {})],
            broker_discounts={"_default": 7.5},
        )
        assert sum(breakdown.lines()).quantize(Decimal("0.01")) == breakdown.total

    def test_json_round_trip(self, db_session: Session, catalog_data, repository):
        breakdown = _price(
            repository, catalog_data,
            turnaround_time_id="fast", add_ons=[("banding", {}), ("exact_size", {})],
            broker_discounts={"flyers": 10},
        )
        restored = PriceBreakdown.model_validate_json(breakdown.model_dump_json())
        assert restored.model_dump() == breakdown.model_dump()

    def test_money_serializes_as_strings(self, db_session: Session, catalog_data, repository):
        data = _price(repository, catalog_data).model_dump(mode="json")
        assert data["total"] == "100.00"
        assert data["currency"] == "USD"

    def test_display_lines_end_with_total(self, db_session: Session, catalog_data, repository):
        breakdown = _price(repository, catalog_data, turnaround_time_id="fast")
        rows = breakdown.display_lines()

        assert rows[0] == ("Base price", Decimal("100.00"))
        assert rows[-1] == ("Total", Decimal("130.00"))

    def test_quantity_override(self, db_session: Session, catalog_data, repository):
        validated = validate_configuration(repository, make_configuration(catalog_data, add_ons=[("banding", {})]))
        breakdown = calculate_price(validated, quantity=500)
        assert breakdown.quantity == 500
        assert breakdown.add_on_lines[0].amount == Decimal("3.75")


class TestQuantityOverride:

    def _validated(self, repository, catalog_data):
        return validate_configuration(repository, make_configuration(catalog_data, add_ons=[("banding", {})]))

    @pytest.mark.parametrize("quantity", [-1000, 0])
    def test_non_positive_quantity(self, db_session: Session, catalog_data, repository, quantity):
        with pytest.raises(OutOfRangeError) as exc_info:
            calculate_price(self._validated(repository, catalog_data), quantity=quantity)
        assert exc_info.value.field == "quantity"

    @pytest.mark.parametrize("quantity", [50, 52500, 200000])
    def test_custom_quantity_rules_apply(self, db_session: Session, catalog_data, repository, quantity):
        with pytest.raises(OutOfRangeError):
            calculate_price(self._validated(repository, catalog_data), quantity=quantity)

    def test_unlisted_quantity_without_custom_entry(self, db_session: Session, catalog_data, repository):
        db_session.query(QuantityGroup).update({"has_custom": False})
        db_session.commit()
        with pytest.raises(OutOfRangeError) as exc_info:
            calculate_price(self._validated(repository, catalog_data), quantity=750)
        assert exc_info.value.details["choices"] == ["500", "1000", "2500", "5000"]

    def test_custom_quantity_within_bounds(self, db_session: Session, catalog_data, repository):
        breakdown = calculate_price(self._validated(repository, catalog_data), quantity=750)
        assert breakdown.quantity == 750
        assert breakdown.add_on_lines[0].amount == Decimal("6.00")
