"""
Price Calculator

Prices a ValidatedConfiguration in a fixed order:

    1. base            product base price + setup fee
    2. paper delta     paper stock / coating / sides deltas + area print cost
    3. add-ons         each against the pre-add-on subtotal (compounding
                       percentage add-ons against the running total)
    4. subtotal        base + paper delta + add-ons
    5. turnaround      PERCENTAGE multiplies, FLAT adds base_price
    6. broker discount per-category percent off the turnaround total
    7. round           half-up to the cent, once, at the very end

Pure function of its inputs: no database access, no shared state.
"""
from decimal import Decimal, InvalidOperation
from typing import Any, List, Mapping, Optional, Tuple

from gangrun.core.pricing_config import (
    BROKER_DEFAULT_DISCOUNT_KEY,
    ONE,
    ZERO,
    percent_to_rate,
    round_currency,
    round_unit_price,
    to_decimal,
)
from gangrun.exceptions import InvalidBrokerDiscountError, OutOfRangeError, PricingModelMismatchError
from gangrun.logging_config import get_logger
from gangrun.schemas.pricing import (
    AddOnLine,
    BrokerDiscountLine,
    PaperLine,
    PriceBreakdown,
    TurnaroundLine,
)
from gangrun.services.addon_pricing import PricingContext, parse_add_on_pricing
from gangrun.services.configuration_validator import ValidatedConfiguration, check_custom_quantity

logger = get_logger(__name__)


def sides_multiplier(validated: ValidatedConfiguration) -> Decimal:
    """
    Double-sided printing on exception (text) papers costs more per
    square inch; every other combination prices at 1x.
    """
    paper = validated.paper_stock
    if validated.sides.is_double_sided and paper.is_exception_paper:
        return paper.double_sided_multiplier
    return ONE


def _paper_lines(validated: ValidatedConfiguration, print_quantity: Decimal) -> List[PaperLine]:
    paper, coating, sides = validated.paper_stock, validated.coating, validated.sides
    lines = []
    if paper.price_delta:
        lines.append(PaperLine(kind="paper_stock", id=paper.id, name=paper.name, amount=paper.price_delta))
    if coating.price_delta:
        lines.append(PaperLine(kind="coating", id=coating.id, name=coating.name, amount=coating.price_delta))
    if sides.price_delta:
        lines.append(PaperLine(kind="sides", id=sides.id, name=sides.name, amount=sides.price_delta))

    if paper.price_per_sq_inch:
        multiplier = sides_multiplier(validated)
        amount = paper.price_per_sq_inch * multiplier * validated.square_inches * print_quantity
        lines.append(PaperLine(
            kind="print",
            id=paper.id,
            name=f"Printing: {paper.name}, {sides.name}",
            amount=amount,
            formula=(
                f"{paper.price_per_sq_inch} x {multiplier} x "
                f"{validated.square_inches} sq in x {print_quantity}"
            ),
        ))
    return lines


def _ordered_quantity(validated: ValidatedConfiguration, quantity: Optional[int]) -> int:
    """The validated quantity, or an override the product's quantity group also accepts"""
    if quantity is None:
        return validated.quantity
    options = validated.catalog.quantities
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise OutOfRangeError(
            "quantity", quantity,
            minimum=1, maximum=options.custom_max,
            message=f"quantity must be a positive whole number, got {quantity}",
        )
    if quantity == validated.quantity or quantity in options.values:
        return quantity
    if not options.has_custom:
        raise OutOfRangeError(
            "quantity", quantity,
            message=f"quantity must be one of {', '.join(str(v) for v in options.values)}",
            details={"choices": [str(v) for v in options.values]},
        )
    check_custom_quantity(validated.catalog, quantity)
    return quantity


def _print_quantity(validated: ValidatedConfiguration, quantity: int) -> Decimal:
    if validated.is_custom_quantity and quantity == validated.quantity:
        return Decimal(quantity)
    return validated.catalog.quantities.pricing_quantity(quantity)


def _add_on_lines(
    validated: ValidatedConfiguration,
    quantity: int,
    base_subtotal: Decimal,
) -> List[AddOnLine]:
    lines: List[AddOnLine] = []
    running = base_subtotal
    for selected in validated.add_ons:
        add_on = selected.add_on
        pricing = parse_add_on_pricing(add_on.id, add_on.pricing_model, add_on.configuration)
        context = PricingContext(
            quantity=quantity,
            base_subtotal=base_subtotal,
            running_subtotal=running,
            paper_type=validated.paper_stock.paper_type,
            options=selected.options,
        )
        try:
            charge = pricing.price(context)
        except ValueError as e:
            logger.error(
                "Add-on could not be priced",
                extra={"add_on_id": add_on.id, "pricing_model": add_on.pricing_model, "reason": str(e)},
            )
            raise PricingModelMismatchError(add_on.id, add_on.pricing_model, missing_fields=[str(e)])

        running += charge.amount
        lines.append(AddOnLine(
            add_on_id=add_on.id,
            name=add_on.name,
            pricing_model=pricing.model.value,
            formula=charge.formula,
            amount=charge.amount,
        ))
    return lines


def _turnaround_line(validated: ValidatedConfiguration, subtotal: Decimal) -> Tuple[TurnaroundLine, Decimal]:
    tat = validated.turnaround
    if tat.pricing_model == "FLAT":
        final = subtotal + tat.base_price
    else:
        final = subtotal * tat.price_multiplier
    line = TurnaroundLine(
        turnaround_time_id=tat.id,
        name=tat.display_name,
        pricing_model=tat.pricing_model,
        multiplier=tat.price_multiplier,
        base_price=tat.base_price,
        amount=final - subtotal,
    )
    return line, final


def broker_discount_percent(
    broker_discounts: Optional[Mapping[str, Any]],
    category_id: Optional[str],
) -> Optional[Decimal]:
    """
    Category entry first, then the account-wide default entry, else None.

    Raises:
        InvalidBrokerDiscountError: the chosen entry is not a finite number
    """
    if not broker_discounts:
        return None
    for key in (category_id, BROKER_DEFAULT_DISCOUNT_KEY):
        if key is None or broker_discounts.get(key) is None:
            continue
        value = broker_discounts[key]
        try:
            percent = None if isinstance(value, bool) else to_decimal(value)
        except (InvalidOperation, ValueError, TypeError):
            percent = None
        if percent is None or not percent.is_finite():
            logger.error(
                "Broker discount map holds a non-numeric percent",
                extra={"discount_key": key, "discount_value": str(value)},
            )
            raise InvalidBrokerDiscountError(key, value)
        return percent
    return None


def calculate_price(
    validated: ValidatedConfiguration,
    quantity: Optional[int] = None,
    broker_discounts: Optional[Mapping[str, Any]] = None,
) -> PriceBreakdown:
    """
    Price a validated configuration.

    Args:
        validated: Output of validate_configuration
        quantity: Quantity actually ordered (defaults to the validated quantity)
        broker_discounts: Broker account discount map {category_id: percent},
            None for regular customers

    Returns:
        PriceBreakdown with every line at full precision and a rounded total

    Raises:
        PricingModelMismatchError: an add-on configuration does not fit its model
        OutOfRangeError: quantity is not one the product's quantity group accepts
        InvalidBrokerDiscountError: broker_discounts holds a non-numeric percent
    """
    catalog = validated.catalog
    qty = _ordered_quantity(validated, quantity)

    # 1. Base
    base_price = catalog.base_price
    setup_fee = catalog.setup_fee

    # 2. Paper delta
    paper_lines = _paper_lines(validated, _print_quantity(validated, qty))
    paper_delta = sum((line.amount for line in paper_lines), ZERO)
    base_subtotal = base_price + setup_fee + paper_delta

    # 3. Add-ons
    add_on_lines = _add_on_lines(validated, qty, base_subtotal)
    add_ons_total = sum((line.amount for line in add_on_lines), ZERO)

    # 4. Subtotal
    subtotal = base_subtotal + add_ons_total

    # 5. Turnaround
    turnaround, final = _turnaround_line(validated, subtotal)

    # 6. Broker discount
    broker_line = None
    percent = broker_discount_percent(broker_discounts, catalog.category_id)
    if percent:
        discount = -(final * percent_to_rate(percent))
        broker_line = BrokerDiscountLine(category_id=catalog.category_id, percent=percent, amount=discount)
        final += discount

    # 7. Round once
    total = round_currency(final)
    unit_price = round_unit_price(final / qty) if qty else ZERO

    extra_days = sum(selected.add_on.additional_turnaround_days for selected in validated.add_ons)

    breakdown = PriceBreakdown(
        product_id=catalog.product_id,
        product_name=catalog.product_name,
        catalog_version=catalog.version,
        quantity=qty,
        base_price=base_price,
        setup_fee=setup_fee,
        paper_lines=paper_lines,
        paper_delta=paper_delta,
        add_on_lines=add_on_lines,
        add_ons_total=add_ons_total,
        subtotal_before_turnaround=subtotal,
        turnaround=turnaround,
        broker_discount=broker_line,
        total=total,
        unit_price=unit_price,
        production_days_min=validated.turnaround.days_min + extra_days,
        production_days_max=validated.turnaround.days_max + extra_days,
    )
    logger.info(
        "Price calculated",
        extra={
            "product_id": catalog.product_id,
            "catalog_version": catalog.version,
            "quantity": qty,
            "total": str(total),
        },
    )
    return breakdown
