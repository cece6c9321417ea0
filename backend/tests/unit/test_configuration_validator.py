"""
Unit Tests for the configuration validator

One test per rule, plus rule ordering: when a configuration breaks more
than one rule, the earliest rule is the one reported.
"""
import pytest
from decimal import Decimal

from sqlalchemy.orm import Session

from gangrun.exceptions import (
    IncompatibleOptionError,
    IncompatibleTurnaroundError,
    InvalidOptionError,
    NotFoundError,
    OutOfRangeError,
)
from gangrun.models import Coating, TurnaroundTime
from gangrun.services.configuration_validator import select_exclusive_option, validate_configuration
from tests.factories import make_configuration


class TestValidConfigurations:

    def test_default_configuration(self, db_session: Session, catalog_data, repository):
        validated = validate_configuration(repository, make_configuration(catalog_data))

        assert validated.paper_stock.id == "paper_16pt"
        assert validated.coating.id == "coating_none"
        assert validated.quantity == 1000
        assert not validated.is_custom_quantity
        assert validated.square_inches == Decimal("7")
        assert validated.turnaround.id == "economy"

    def test_custom_quantity_and_size(self, db_session: Session, catalog_data, repository):
        request = make_configuration(
            catalog_data,
            quantity=None, custom_quantity=55000,
            size_id=None, custom_width=Decimal("5.25"), custom_height=Decimal("8.5"),
        )
        validated = validate_configuration(repository, request)

        assert validated.quantity == 55000
        assert validated.is_custom_quantity
        assert validated.size is None
        assert validated.square_inches == Decimal("44.625")

    def test_snapshot_records_selection(self, db_session: Session, catalog_data, repository):
        request = make_configuration(catalog_data, add_ons=[("banding", {"items_per_bundle": 250})])
        snapshot = validate_configuration(repository, request).snapshot()

        assert snapshot["product_id"] == "business_cards"
        assert snapshot["catalog_version"] == 1
        assert snapshot["add_ons"] == [{"add_on_id": "banding", "options": {"items_per_bundle": 250}}]


class TestMembershipRule:

    def test_unknown_product(self, db_session: Session, catalog_data, repository):
        with pytest.raises(NotFoundError):
            validate_configuration(repository, make_configuration(catalog_data, product_id="nope"))

    @pytest.mark.parametrize("field,value", [
        ("paper_stock_id", "paper_unknown"),
        ("coating_id", "coating_unknown"),
        ("sides_id", "sides_unknown"),
        ("quantity", 750),
        ("size_id", "11x17"),
        ("turnaround_time_id", "yesterday"),
    ])
    def test_unknown_ids(self, db_session: Session, catalog_data, repository, field, value):
        with pytest.raises(InvalidOptionError) as exc_info:
            validate_configuration(repository, make_configuration(catalog_data, **{field: value}))
        assert exc_info.value.field == field
        assert exc_info.value.error_code == "INVALID_OPTION"

    def test_inactive_coating(self, db_session: Session, catalog_data, repository):
        db_session.query(Coating).filter_by(id="coating_2").update({"is_active": False})
        db_session.commit()

        with pytest.raises(InvalidOptionError) as exc_info:
            validate_configuration(repository, make_configuration(catalog_data, coating_id="coating_2"))
        assert exc_info.value.field == "coating_id"

    def test_unknown_add_on(self, db_session: Session, catalog_data, repository):
        with pytest.raises(InvalidOptionError) as exc_info:
            validate_configuration(repository, make_configuration(catalog_data, add_ons=[("gold_leaf", {})]))
        assert exc_info.value.field == "add_ons"

    def test_both_quantity_and_custom_quantity(self, db_session: Session, catalog_data, repository):
        with pytest.raises(InvalidOptionError) as exc_info:
            validate_configuration(repository, make_configuration(catalog_data, custom_quantity=1200))
        assert exc_info.value.field == "quantity"

    def test_neither_size_nor_custom_dimensions(self, db_session: Session, catalog_data, repository):
        with pytest.raises(InvalidOptionError) as exc_info:
            validate_configuration(repository, make_configuration(catalog_data, size_id=None))
        assert exc_info.value.field == "size_id"

    def test_half_a_custom_size(self, db_session: Session, catalog_data, repository):
        request = make_configuration(catalog_data, size_id=None, custom_width=Decimal("4"))
        with pytest.raises(InvalidOptionError) as exc_info:
            validate_configuration(repository, request)
        assert exc_info.value.field == "custom_height"

    def test_duplicate_add_on(self, db_session: Session, catalog_data, repository):
        request = make_configuration(catalog_data, add_ons=[("digital_proof", {}), ("digital_proof", {})])
        with pytest.raises(InvalidOptionError):
            validate_configuration(repository, request)


class TestCustomValueRule:

    @pytest.mark.parametrize("custom_quantity", [99, 100001])
    def test_custom_quantity_outside_bounds(self, db_session: Session, catalog_data, repository, custom_quantity):
        request = make_configuration(catalog_data, quantity=None, custom_quantity=custom_quantity)
        with pytest.raises(OutOfRangeError) as exc_info:
            validate_configuration(repository, request)
        assert exc_info.value.field == "custom_quantity"
        assert exc_info.value.details["min"] == "100"
        assert exc_info.value.details["max"] == "100000"

    @pytest.mark.parametrize("custom_quantity", [100, 100000, 4999, 5000, 60000])
    def test_custom_quantity_bounds_are_inclusive(self, db_session: Session, catalog_data, repository, custom_quantity):
        request = make_configuration(catalog_data, quantity=None, custom_quantity=custom_quantity)
        assert validate_configuration(repository, request).quantity == custom_quantity

    def test_custom_quantity_off_increment(self, db_session: Session, catalog_data, repository):
        request = make_configuration(catalog_data, quantity=None, custom_quantity=52500)
        with pytest.raises(OutOfRangeError) as exc_info:
            validate_configuration(repository, request)
        assert "increments of 5000" in exc_info.value.message

    def test_custom_width_outside_bounds(self, db_session: Session, catalog_data, repository):
        request = make_configuration(catalog_data, size_id=None, custom_width=Decimal("30"), custom_height=Decimal("6"))
        with pytest.raises(OutOfRangeError) as exc_info:
            validate_configuration(repository, request)
        assert exc_info.value.field == "custom_width"

    def test_custom_height_off_grid(self, db_session: Session, catalog_data, repository):
        request = make_configuration(catalog_data, size_id=None, custom_width=Decimal("4"), custom_height=Decimal("6.1"))
        with pytest.raises(OutOfRangeError) as exc_info:
            validate_configuration(repository, request)
        assert exc_info.value.field == "custom_height"


class TestCompatibilityRule:

    def test_coating_not_offered_for_paper(self, db_session: Session, catalog_data, repository):
        request = make_configuration(catalog_data, paper_stock_id="paper_text", coating_id="coating_1")
        with pytest.raises(IncompatibleOptionError) as exc_info:
            validate_configuration(repository, request)
        assert exc_info.value.field == "coating_id"


class TestTurnaroundRule:

    def test_restricted_coating(self, db_session: Session, catalog_data, repository):
        request = make_configuration(catalog_data, coating_id="coating_1", turnaround_time_id="fastest")
        with pytest.raises(IncompatibleTurnaroundError) as exc_info:
            validate_configuration(repository, request)
        assert exc_info.value.error_code == "INCOMPATIBLE_TURNAROUND"
        assert exc_info.value.details["coating_id"] == "coating_1"

    @pytest.mark.parametrize("coating_id", ["coating_none", "coating_2"])
    def test_unrestricted_coatings_pass(self, db_session: Session, catalog_data, repository, coating_id):
        request = make_configuration(catalog_data, coating_id=coating_id, turnaround_time_id="fastest")
        assert validate_configuration(repository, request).turnaround.id == "fastest"

    def test_no_coating_passes_when_listed_as_restricted(self, db_session: Session, catalog_data, repository):
        db_session.query(TurnaroundTime).filter_by(id="fastest").update(
            {"restricted_coatings": ["coating_none", "coating_1", "coating_3"]}
        )
        db_session.commit()

        request = make_configuration(catalog_data, coating_id="coating_none", turnaround_time_id="fastest")
        assert validate_configuration(repository, request).turnaround.id == "fastest"


class TestAddOnRule:

    def test_unknown_sub_option(self, db_session: Session, catalog_data, repository):
        request = make_configuration(catalog_data, add_ons=[("banding", {"color": "red"})])
        with pytest.raises(InvalidOptionError) as exc_info:
            validate_configuration(repository, request)
        assert exc_info.value.field == "add_ons.banding.color"

    def test_missing_required_sub_option(self, db_session: Session, catalog_data, repository):
        request = make_configuration(catalog_data, add_ons=[("design", {"same_image": True})])
        with pytest.raises(InvalidOptionError) as exc_info:
            validate_configuration(repository, request)
        assert exc_info.value.field == "add_ons.design.notes"

    def test_exclusive_choices(self, db_session: Session, catalog_data, repository):
        options = {"same_image": True, "different_image": True, "notes": "logo front"}
        request = make_configuration(catalog_data, add_ons=[("design", options)])
        with pytest.raises(IncompatibleOptionError) as exc_info:
            validate_configuration(repository, request)
        assert exc_info.value.details["exclusive_group"] == "image"

    def test_unchecked_exclusive_choice_is_fine(self, db_session: Session, catalog_data, repository):
        options = {"same_image": False, "different_image": True, "notes": "logo front"}
        request = make_configuration(catalog_data, add_ons=[("design", options)])
        assert validate_configuration(repository, request).add_ons[0].add_on.id == "design"

    def test_conflicting_add_ons(self, db_session: Session, catalog_data, repository):
        request = make_configuration(
            catalog_data, add_ons=[("banding", {}), ("shrink_wrap", {"items_per_bundle": 50})]
        )
        with pytest.raises(IncompatibleOptionError) as exc_info:
            validate_configuration(repository, request)
        assert exc_info.value.field == "add_ons"

    def test_sub_option_value_out_of_range(self, db_session: Session, catalog_data, repository):
        request = make_configuration(catalog_data, add_ons=[("banding", {"items_per_bundle": 0})])
        with pytest.raises(OutOfRangeError) as exc_info:
            validate_configuration(repository, request)
        assert exc_info.value.field == "add_ons.banding.items_per_bundle"

    @pytest.mark.parametrize("add_on_id, value", [
        ("banding", 1.5),
        ("banding", "2.5"),
        ("shrink_wrap", 12.25),
    ])
    def test_bundle_size_must_be_whole(self, db_session: Session, catalog_data, repository, add_on_id, value):
        request = make_configuration(catalog_data, add_ons=[(add_on_id, {"items_per_bundle": value})])
        with pytest.raises(OutOfRangeError) as exc_info:
            validate_configuration(repository, request)
        assert exc_info.value.field == f"add_ons.{add_on_id}.items_per_bundle"
        assert "whole number" in exc_info.value.message

    def test_whole_bundle_size_as_decimal_string(self, db_session: Session, catalog_data, repository):
        request = make_configuration(catalog_data, add_ons=[("banding", {"items_per_bundle": "250.0"})])
        assert validate_configuration(repository, request).add_ons[0].options == {"items_per_bundle": "250.0"}

    def test_sub_option_value_not_a_choice(self, db_session: Session, catalog_data, repository):
        request = make_configuration(catalog_data, add_ons=[("corner_rounding", {"radius": "1/2"})])
        with pytest.raises(OutOfRangeError):
            validate_configuration(repository, request)


class TestRuleOrder:

    def test_membership_before_range(self, db_session: Session, catalog_data, repository):
        request = make_configuration(
            catalog_data, quantity=None, custom_quantity=5, turnaround_time_id="yesterday"
        )
        with pytest.raises(InvalidOptionError):
            validate_configuration(repository, request)

    def test_range_before_compatibility(self, db_session: Session, catalog_data, repository):
        request = make_configuration(
            catalog_data, quantity=None, custom_quantity=5,
            paper_stock_id="paper_text", coating_id="coating_1",
        )
        with pytest.raises(OutOfRangeError):
            validate_configuration(repository, request)

    def test_compatibility_before_turnaround(self, db_session: Session, catalog_data, repository):
        request = make_configuration(
            catalog_data, paper_stock_id="paper_text", coating_id="coating_1", turnaround_time_id="fastest"
        )
        with pytest.raises(IncompatibleOptionError):
            validate_configuration(repository, request)

    def test_turnaround_before_add_ons(self, db_session: Session, catalog_data, repository):
        request = make_configuration(
            catalog_data, coating_id="coating_3", turnaround_time_id="fastest",
            add_ons=[("banding", {"bogus": 1})],
        )
        with pytest.raises(IncompatibleTurnaroundError):
            validate_configuration(repository, request)

    def test_same_input_same_error(self, db_session: Session, catalog_data, repository):
        request = make_configuration(catalog_data, coating_id="coating_1", turnaround_time_id="fastest")
        messages = set()
        for _ in range(3):
            with pytest.raises(IncompatibleTurnaroundError) as exc_info:
                validate_configuration(repository, request)
            messages.add(exc_info.value.message)
        assert len(messages) == 1


class TestSelectExclusiveOption:

    def test_checking_one_unchecks_the_others(self):
        options = {"same_image": True, "notes": "x"}
        result = select_exclusive_option(options, ["same_image", "different_image"], "different_image")
        assert result == {"same_image": False, "different_image": True, "notes": "x"}
        assert options == {"same_image": True, "notes": "x"}

    def test_choice_outside_group(self):
        with pytest.raises(ValueError):
            select_exclusive_option({}, ["same_image", "different_image"], "notes")
