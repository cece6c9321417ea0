"""
Option Catalog Resolver

Turns a product id into an immutable snapshot of everything a customer
may select for it: paper stocks (with their coating and sides options),
quantities, sizes, add-ons and turnaround times, each with its default
flag and restriction metadata.

A snapshot is built per request and never mutated, so a quote is always
priced against one consistent view of the catalog even if an admin edits
it concurrently.

Integrity problems (empty sets, missing or duplicate defaults) raise
IncompleteCatalogError instead of being papered over with a fallback.
"""
import copy
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from gangrun.core.pricing_config import (
    EXACT_QUANTITY_THRESHOLD, EXCEPTION_PAPER_DOUBLE_SIDED_MULTIPLIER, NO_COATING_NAME, ONE, ZERO, to_decimal,
)
from gangrun.exceptions import IncompleteCatalogError, NotFoundError
from gangrun.logging_config import get_logger
from gangrun.services.catalog_repository import CatalogRepository

logger = get_logger(__name__)


# ============================================================================
# SNAPSHOT TYPES
# ============================================================================

@dataclass(frozen=True)
class CoatingOption:
    id: str
    name: str
    is_default: bool
    price_delta: Decimal = ZERO

    @property
    def is_no_coating(self) -> bool:
        return self.name.strip().lower() == NO_COATING_NAME.lower()


@dataclass(frozen=True)
class SidesChoice:
    id: str
    name: str
    is_double_sided: bool
    is_default: bool
    price_delta: Decimal = ZERO


@dataclass(frozen=True)
class PaperStockOption:
    id: str
    name: str
    paper_type: str
    price_per_sq_inch: Decimal
    price_delta: Decimal
    is_exception_paper: bool
    double_sided_multiplier: Decimal
    is_default: bool
    sort_order: int
    coatings: Tuple[CoatingOption, ...]
    sides: Tuple[SidesChoice, ...]

    def coating(self, coating_id: str) -> Optional[CoatingOption]:
        return next((c for c in self.coatings if c.id == coating_id), None)

    def sides_option(self, sides_id: str) -> Optional[SidesChoice]:
        return next((s for s in self.sides if s.id == sides_id), None)


@dataclass(frozen=True)
class QuantityOptions:
    group_id: str
    values: Tuple[int, ...]
    default_value: Optional[int]
    has_custom: bool
    custom_min: Optional[int]
    custom_max: Optional[int]
    calculation_values: Dict[int, Decimal] = field(default_factory=dict)

    def pricing_quantity(self, quantity: int) -> Decimal:
        """Quantity the area print cost is computed with"""
        return self.calculation_values.get(quantity, Decimal(quantity))


@dataclass(frozen=True)
class SizeChoice:
    id: str
    name: str
    width: Decimal
    height: Decimal
    square_inches: Decimal
    is_default: bool


@dataclass(frozen=True)
class SizeOptions:
    group_id: str
    sizes: Tuple[SizeChoice, ...]
    has_custom: bool
    custom_min_width: Optional[Decimal]
    custom_max_width: Optional[Decimal]
    custom_min_height: Optional[Decimal]
    custom_max_height: Optional[Decimal]

    def size(self, size_id: str) -> Optional[SizeChoice]:
        return next((s for s in self.sizes if s.id == size_id), None)


@dataclass(frozen=True)
class SubOption:
    """A field the customer fills in for an add-on"""
    key: str
    label: str
    type: str = "boolean"  # boolean, number, integer, select, text
    required: bool = False
    exclusive_group: Optional[str] = None
    choices: Tuple[Any, ...] = ()
    minimum: Optional[Decimal] = None
    maximum: Optional[Decimal] = None


@dataclass(frozen=True)
class AddOnOption:
    id: str
    name: str
    description: Optional[str]
    pricing_model: str
    configuration: Dict[str, Any]
    sub_options: Tuple[SubOption, ...]
    conflicts_with: FrozenSet[str]
    additional_turnaround_days: int
    is_default: bool
    add_on_set_id: str
    sort_order: int
    display_position: str = "IN_DROPDOWN"

    def sub_option(self, key: str) -> Optional[SubOption]:
        return next((s for s in self.sub_options if s.key == key), None)


@dataclass(frozen=True)
class TurnaroundOption:
    id: str
    name: str
    display_name: str
    days_min: int
    days_max: int
    pricing_model: str
    base_price: Decimal
    price_multiplier: Decimal
    requires_no_coating: bool
    restricted_coatings: FrozenSet[str]
    is_default: bool
    sort_order: int

    def allows_coating(self, coating: CoatingOption) -> bool:
        if not self.requires_no_coating or coating.is_no_coating:
            return True
        return coating.id not in self.restricted_coatings


@dataclass(frozen=True)
class Catalog:
    """Everything selectable for one product, as of one catalog version"""
    product_id: str
    product_name: str
    category_id: Optional[str]
    base_price: Decimal
    setup_fee: Decimal
    rush_eligible: bool
    gang_run_eligible: bool
    version: int
    paper_stocks: Tuple[PaperStockOption, ...]
    quantities: QuantityOptions
    sizes: SizeOptions
    add_ons: Tuple[AddOnOption, ...]
    turnaround_times: Tuple[TurnaroundOption, ...]
    coating_names: Dict[str, str] = field(default_factory=dict)

    def paper_stock(self, paper_stock_id: str) -> Optional[PaperStockOption]:
        return next((p for p in self.paper_stocks if p.id == paper_stock_id), None)

    def add_on(self, add_on_id: str) -> Optional[AddOnOption]:
        return next((a for a in self.add_ons if a.id == add_on_id), None)

    def turnaround_time(self, turnaround_time_id: str) -> Optional[TurnaroundOption]:
        return next((t for t in self.turnaround_times if t.id == turnaround_time_id), None)

    @property
    def default_paper_stock(self) -> PaperStockOption:
        return next(p for p in self.paper_stocks if p.is_default)

    @property
    def default_turnaround_time(self) -> TurnaroundOption:
        return next(t for t in self.turnaround_times if t.is_default)


# ============================================================================
# RESOLVER
# ============================================================================

def _require_single_default(product_id: str, component: str, defaults: int) -> None:
    if defaults != 1:
        raise IncompleteCatalogError(
            product_id,
            component=component,
            reason=f"must have exactly one default, found {defaults}",
        )


def _build_paper_stocks(product_id: str, paper_stock_set) -> Tuple[PaperStockOption, ...]:
    if paper_stock_set is None or not paper_stock_set.is_active:
        raise IncompleteCatalogError(product_id, component="paper_stock_set", reason="is missing or inactive")

    stocks: List[PaperStockOption] = []
    for item in paper_stock_set.items:
        stock = item.paper_stock
        if stock is None or not stock.is_active:
            continue

        coatings = tuple(
            CoatingOption(
                id=link.coating_id,
                name=link.coating.name,
                is_default=bool(link.is_default),
                price_delta=to_decimal(link.price_delta),
            )
            for link in stock.coatings
            if link.coating is not None and link.coating.is_active
        )
        sides = tuple(
            SidesChoice(
                id=link.sides_option_id,
                name=link.sides_option.name,
                is_double_sided=bool(link.sides_option.is_double_sided),
                is_default=bool(link.is_default),
                price_delta=to_decimal(link.price_delta),
            )
            for link in stock.sides
            if link.sides_option is not None and link.sides_option.is_active
        )
        if not coatings:
            raise IncompleteCatalogError(product_id, component=f"paper_stock {stock.id} coatings", reason="has no active items")
        if not sides:
            raise IncompleteCatalogError(product_id, component=f"paper_stock {stock.id} sides", reason="has no active items")
        _require_single_default(product_id, f"paper_stock {stock.id} coatings", sum(c.is_default for c in coatings))
        _require_single_default(product_id, f"paper_stock {stock.id} sides", sum(s.is_default for s in sides))

        stocks.append(PaperStockOption(
            id=stock.id,
            name=stock.name,
            paper_type=stock.paper_type or "cardstock",
            price_per_sq_inch=to_decimal(stock.price_per_sq_inch),
            price_delta=to_decimal(stock.price_delta),
            is_exception_paper=bool(stock.is_exception_paper),
            double_sided_multiplier=to_decimal(
                stock.double_sided_multiplier,
                default=EXCEPTION_PAPER_DOUBLE_SIDED_MULTIPLIER if stock.is_exception_paper else ONE,
            ),
            is_default=bool(item.is_default),
            sort_order=item.sort_order or 0,
            coatings=coatings,
            sides=sides,
        ))

    if not stocks:
        raise IncompleteCatalogError(product_id, component="paper_stock_set", reason="has no active items")
    _require_single_default(product_id, "paper_stock_set", sum(p.is_default for p in stocks))
    return tuple(stocks)


def _build_calculation_values(product_id: str, group, values: Tuple[int, ...]) -> Dict[int, Decimal]:
    result: Dict[int, Decimal] = {}
    for key, entry in (group.calculation_values or {}).items():
        if not isinstance(entry, dict):
            entry = {"calculation_value": entry}
        value = entry.get("adjustment_value")
        if value is None:
            value = entry.get("calculation_value")
        try:
            quantity = int(key)
            number = None if value is None else to_decimal(value)
        except (InvalidOperation, ValueError, TypeError):
            raise IncompleteCatalogError(
                product_id, component="quantity_group", reason=f"has a malformed calculation value for {key}"
            )
        if quantity not in values:
            raise IncompleteCatalogError(
                product_id, component="quantity_group", reason=f"has a calculation value for unlisted quantity {key}"
            )
        if number is None or quantity >= EXACT_QUANTITY_THRESHOLD:
            continue
        if not number.is_finite() or number <= 0:
            raise IncompleteCatalogError(
                product_id, component="quantity_group", reason=f"has a malformed calculation value for {key}"
            )
        result[quantity] = number
    return result


def _build_quantities(product_id: str, group) -> QuantityOptions:
    if group is None or not group.is_active:
        raise IncompleteCatalogError(product_id, component="quantity_group", reason="is missing or inactive")

    values = tuple(int(v) for v in (group.values or []))
    if not values and not group.has_custom:
        raise IncompleteCatalogError(product_id, component="quantity_group", reason="has no active items")
    if values and group.default_value not in values:
        raise IncompleteCatalogError(
            product_id, component="quantity_group", reason="must have exactly one default, found 0"
        )
    if group.has_custom:
        if group.custom_min is None or group.custom_max is None or group.custom_min > group.custom_max:
            raise IncompleteCatalogError(
                product_id, component="quantity_group", reason="custom entry needs custom_min <= custom_max"
            )

    return QuantityOptions(
        group_id=group.id,
        values=values,
        default_value=group.default_value if values else None,
        has_custom=bool(group.has_custom),
        custom_min=group.custom_min,
        custom_max=group.custom_max,
        calculation_values=_build_calculation_values(product_id, group, values),
    )


def _build_sizes(product_id: str, group) -> SizeOptions:
    if group is None or not group.is_active:
        raise IncompleteCatalogError(product_id, component="size_group", reason="is missing or inactive")

    sizes: List[SizeChoice] = []
    for entry in group.sizes or []:
        width = to_decimal(entry.get("width"))
        height = to_decimal(entry.get("height"))
        size_id = str(entry.get("id") or entry.get("name"))
        sizes.append(SizeChoice(
            id=size_id,
            name=entry.get("name") or size_id,
            width=width,
            height=height,
            square_inches=to_decimal(entry.get("square_inches"), default=width * height),
            is_default=size_id == group.default_size_id,
        ))

    if not sizes and not group.has_custom:
        raise IncompleteCatalogError(product_id, component="size_group", reason="has no active items")
    if sizes:
        _require_single_default(product_id, "size_group", sum(s.is_default for s in sizes))

    bounds = [group.custom_min_width, group.custom_max_width, group.custom_min_height, group.custom_max_height]
    if group.has_custom and any(b is None for b in bounds):
        raise IncompleteCatalogError(product_id, component="size_group", reason="custom entry needs width and height bounds")

    return SizeOptions(
        group_id=group.id,
        sizes=tuple(sizes),
        has_custom=bool(group.has_custom),
        custom_min_width=to_decimal(group.custom_min_width) if group.has_custom else None,
        custom_max_width=to_decimal(group.custom_max_width) if group.has_custom else None,
        custom_min_height=to_decimal(group.custom_min_height) if group.has_custom else None,
        custom_max_height=to_decimal(group.custom_max_height) if group.has_custom else None,
    )


def _build_sub_options(raw: List[Dict[str, Any]]) -> Tuple[SubOption, ...]:
    sub_options = []
    for entry in raw or []:
        sub_options.append(SubOption(
            key=entry["key"],
            label=entry.get("label") or entry["key"],
            type=entry.get("type", "boolean"),
            required=bool(entry.get("required", False)),
            exclusive_group=entry.get("exclusive_group"),
            choices=tuple(entry.get("choices") or ()),
            minimum=to_decimal(entry["min"]) if entry.get("min") is not None else None,
            maximum=to_decimal(entry["max"]) if entry.get("max") is not None else None,
        ))
    return tuple(sub_options)


def _build_add_ons(product_id: str, add_on_sets) -> Tuple[AddOnOption, ...]:
    add_ons: List[AddOnOption] = []
    seen = set()
    for add_on_set in add_on_sets:
        if add_on_set is None or not add_on_set.is_active:
            raise IncompleteCatalogError(product_id, component="add_on_set", reason="is missing or inactive")
        active_items = [item for item in add_on_set.items if item.add_on is not None and item.add_on.is_active]
        if not active_items:
            raise IncompleteCatalogError(
                product_id, component=f"add_on_set {add_on_set.id}", reason="has no active items"
            )
        for item in active_items:
            add_on = item.add_on
            # The same add-on can sit in two sets; the first occurrence wins
            if add_on.id in seen:
                continue
            seen.add(add_on.id)
            add_ons.append(AddOnOption(
                id=add_on.id,
                name=add_on.name,
                description=add_on.description,
                pricing_model=(add_on.pricing_model or "").upper(),
                configuration=copy.deepcopy(add_on.configuration or {}),
                sub_options=_build_sub_options(add_on.sub_options),
                conflicts_with=frozenset(add_on.conflicts_with or ()),
                additional_turnaround_days=add_on.additional_turnaround_days or 0,
                is_default=bool(item.is_default),
                add_on_set_id=add_on_set.id,
                sort_order=len(add_ons),
                display_position=item.display_position or "IN_DROPDOWN",
            ))
    return tuple(add_ons)


def _build_turnaround_times(product_id: str, turnaround_set) -> Tuple[TurnaroundOption, ...]:
    if turnaround_set is None or not turnaround_set.is_active:
        raise IncompleteCatalogError(product_id, component="turnaround_time_set", reason="is missing or inactive")

    options = []
    for item in turnaround_set.items:
        tat = item.turnaround_time
        if tat is None or not tat.is_active:
            continue
        options.append(TurnaroundOption(
            id=tat.id,
            name=tat.name,
            display_name=tat.display_name or tat.name,
            days_min=tat.days_min or 0,
            days_max=tat.days_max if tat.days_max is not None else (tat.days_min or 0),
            pricing_model=(tat.pricing_model or "PERCENTAGE").upper(),
            base_price=to_decimal(tat.base_price),
            price_multiplier=to_decimal(tat.price_multiplier, default=ONE),
            requires_no_coating=bool(tat.requires_no_coating),
            restricted_coatings=frozenset(str(c) for c in (tat.restricted_coatings or ())),
            is_default=bool(item.is_default),
            sort_order=item.sort_order or 0,
        ))

    if not options:
        raise IncompleteCatalogError(product_id, component="turnaround_time_set", reason="has no active items")
    _require_single_default(product_id, "turnaround_time_set", sum(t.is_default for t in options))
    return tuple(options)


def resolve_catalog(repository: CatalogRepository, product_id: str) -> Catalog:
    """
    Resolve the selectable options for a product.

    Args:
        repository: Read-only catalog data access
        product_id: Product identifier

    Returns:
        Immutable Catalog snapshot

    Raises:
        NotFoundError: product missing or inactive
        IncompleteCatalogError: a referenced option set is missing, empty,
            or does not have exactly one default
    """
    product = repository.get_product(product_id)
    if product is None or not product.is_active:
        raise NotFoundError("Product", product_id)

    try:
        paper_stocks = _build_paper_stocks(
            product.id,
            repository.get_paper_stock_set(product.paper_stock_set_id) if product.paper_stock_set_id else None,
        )
        quantities = _build_quantities(
            product.id,
            repository.get_quantity_group(product.quantity_group_id) if product.quantity_group_id else None,
        )
        sizes = _build_sizes(
            product.id,
            repository.get_size_group(product.size_group_id) if product.size_group_id else None,
        )
        add_ons = _build_add_ons(product.id, repository.get_add_on_sets(product.id))
        turnaround_times = _build_turnaround_times(
            product.id,
            repository.get_turnaround_time_set(product.turnaround_time_set_id)
            if product.turnaround_time_set_id else None,
        )
    except IncompleteCatalogError as e:
        logger.error(
            "Incomplete catalog",
            extra={"product_id": product.id, "details": e.details},
        )
        raise

    catalog = Catalog(
        product_id=product.id,
        product_name=product.name,
        category_id=product.category_id,
        base_price=to_decimal(product.base_price),
        setup_fee=to_decimal(product.setup_fee),
        rush_eligible=bool(product.rush_eligible),
        gang_run_eligible=bool(product.gang_run_eligible),
        version=product.version or 1,
        paper_stocks=paper_stocks,
        quantities=quantities,
        sizes=sizes,
        add_ons=add_ons,
        turnaround_times=turnaround_times,
        coating_names=repository.get_coating_names(),
    )
    logger.debug(
        "Catalog resolved",
        extra={"product_id": catalog.product_id, "catalog_version": catalog.version},
    )
    return catalog
