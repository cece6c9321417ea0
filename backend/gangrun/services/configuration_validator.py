"""
Configuration Validator

Checks a candidate configuration against the product's resolved catalog
and returns a ValidatedConfiguration, or raises the first rule it breaks.

Rules run in a fixed order so the same bad input always produces the
same error:

    1. resolve the catalog
    2. every selected id belongs to the catalog (InvalidOption)
    3. custom quantity / size within bounds and on their grid (OutOfRange)
    4. coating and sides offered for the chosen paper stock (IncompatibleOption)
    5. turnaround coating restrictions (IncompatibleTurnaround)
    6. add-on sub-options and add-on conflicts
"""
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from gangrun.core.pricing_config import (
    CUSTOM_QUANTITY_INCREMENT,
    CUSTOM_QUANTITY_INCREMENT_THRESHOLD,
    CUSTOM_SIZE_INCREMENT,
    custom_quantity_follows_increment,
    is_on_increment,
    to_decimal,
)
from gangrun.exceptions import (
    ConfigurationValidationError,
    IncompatibleOptionError,
    IncompatibleTurnaroundError,
    InvalidOptionError,
    OutOfRangeError,
)
from gangrun.logging_config import get_logger
from gangrun.schemas.pricing import ConfigurationRequest
from gangrun.services.addon_pricing import WHOLE_NUMBER_OPTIONS
from gangrun.services.catalog_repository import CatalogRepository
from gangrun.services.catalog_resolver import (
    AddOnOption,
    Catalog,
    CoatingOption,
    PaperStockOption,
    SidesChoice,
    SizeChoice,
    TurnaroundOption,
    resolve_catalog,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class SelectedAddOnOption:
    add_on: AddOnOption
    options: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ValidatedConfiguration:
    """A configuration that passed every rule, bound to one catalog snapshot"""
    catalog: Catalog
    paper_stock: PaperStockOption
    coating: CoatingOption
    sides: SidesChoice
    quantity: int
    is_custom_quantity: bool
    size: Optional[SizeChoice]
    width: Decimal
    height: Decimal
    square_inches: Decimal
    turnaround: TurnaroundOption
    add_ons: Tuple[SelectedAddOnOption, ...] = ()

    def snapshot(self) -> Dict[str, Any]:
        """JSON-safe record of the selection, stored on order lines"""
        return {
            "product_id": self.catalog.product_id,
            "catalog_version": self.catalog.version,
            "paper_stock_id": self.paper_stock.id,
            "coating_id": self.coating.id,
            "sides_id": self.sides.id,
            "quantity": None if self.is_custom_quantity else self.quantity,
            "custom_quantity": self.quantity if self.is_custom_quantity else None,
            "size_id": self.size.id if self.size else None,
            "custom_width": None if self.size else str(self.width),
            "custom_height": None if self.size else str(self.height),
            "turnaround_time_id": self.turnaround.id,
            "add_ons": [
                {"add_on_id": selected.add_on.id, "options": dict(selected.options)}
                for selected in self.add_ons
            ],
        }


def select_exclusive_option(
    options: Mapping[str, Any],
    group_keys: Iterable[str],
    chosen_key: str,
) -> Dict[str, Any]:
    """
    Check one sub-option of a mutually exclusive group and uncheck the rest.

    Mirrors the storefront checkbox behavior ("same image" vs "different
    image, both sides") for API clients building an options payload.
    """
    group_keys = list(group_keys)
    if chosen_key not in group_keys:
        raise ValueError(f"{chosen_key} is not part of the exclusive group {group_keys}")
    result = dict(options)
    for key in group_keys:
        result[key] = key == chosen_key
    return result


def _is_active(value: Any) -> bool:
    if value is None or value is False:
        return False
    if isinstance(value, str) and not value.strip():
        return False
    return True


def _is_present(value: Any) -> bool:
    return value is not None and value != ""


# ============================================================================
# RULE 2: MEMBERSHIP
# ============================================================================

def _resolve_quantity(catalog: Catalog, request: ConfigurationRequest) -> Tuple[int, bool]:
    quantities = catalog.quantities
    if (request.quantity is None) == (request.custom_quantity is None):
        raise InvalidOptionError(
            "quantity", message="Provide exactly one of quantity or custom_quantity"
        )
    if request.custom_quantity is not None:
        if not quantities.has_custom:
            raise InvalidOptionError(
                "custom_quantity", request.custom_quantity,
                message="This product does not accept custom quantities",
            )
        return request.custom_quantity, True
    if request.quantity not in quantities.values:
        raise InvalidOptionError("quantity", request.quantity)
    return request.quantity, False


def _resolve_size(catalog: Catalog, request: ConfigurationRequest) -> Optional[SizeChoice]:
    sizes = catalog.sizes
    has_custom_dims = request.custom_width is not None or request.custom_height is not None
    if (request.size_id is None) == (not has_custom_dims):
        raise InvalidOptionError(
            "size_id", message="Provide exactly one of size_id or custom_width/custom_height"
        )
    if request.size_id is not None:
        size = sizes.size(request.size_id)
        if size is None:
            raise InvalidOptionError("size_id", request.size_id)
        return size

    if not sizes.has_custom:
        raise InvalidOptionError(
            "custom_width", request.custom_width,
            message="This product does not accept custom sizes",
        )
    if request.custom_width is None:
        raise InvalidOptionError("custom_width", message="custom_width is required with custom_height")
    if request.custom_height is None:
        raise InvalidOptionError("custom_height", message="custom_height is required with custom_width")
    return None


def _resolve_add_ons(catalog: Catalog, request: ConfigurationRequest) -> List[SelectedAddOnOption]:
    selected: List[SelectedAddOnOption] = []
    seen = set()
    for choice in request.add_ons:
        add_on = catalog.add_on(choice.add_on_id)
        if add_on is None:
            raise InvalidOptionError("add_ons", choice.add_on_id)
        if add_on.id in seen:
            raise InvalidOptionError(
                "add_ons", choice.add_on_id, message=f"Add-on '{choice.add_on_id}' selected more than once"
            )
        seen.add(add_on.id)
        selected.append(SelectedAddOnOption(add_on=add_on, options=dict(choice.options)))
    return selected


# ============================================================================
# RULE 3: CUSTOM VALUE BOUNDS
# ============================================================================

def check_custom_quantity(catalog: Catalog, quantity: int) -> None:
    q = catalog.quantities
    if quantity < q.custom_min or quantity > q.custom_max:
        raise OutOfRangeError("custom_quantity", quantity, minimum=q.custom_min, maximum=q.custom_max)
    if not custom_quantity_follows_increment(quantity):
        raise OutOfRangeError(
            "custom_quantity", quantity,
            minimum=q.custom_min, maximum=q.custom_max,
            message=(
                f"Custom quantities above {CUSTOM_QUANTITY_INCREMENT_THRESHOLD} "
                f"must be in increments of {CUSTOM_QUANTITY_INCREMENT}, got {quantity}"
            ),
        )


def _check_custom_dimension(field_name: str, value: Decimal, minimum: Decimal, maximum: Decimal) -> None:
    if value < minimum or value > maximum:
        raise OutOfRangeError(field_name, value, minimum=minimum, maximum=maximum)
    if not is_on_increment(value, CUSTOM_SIZE_INCREMENT):
        raise OutOfRangeError(
            field_name, value, minimum=minimum, maximum=maximum,
            message=f"{field_name} must be in {CUSTOM_SIZE_INCREMENT} inch increments, got {value}",
        )


# ============================================================================
# RULE 6: ADD-ON SUB-OPTIONS
# ============================================================================

def _option_field(add_on: AddOnOption, key: Optional[str] = None) -> str:
    return f"add_ons.{add_on.id}" if key is None else f"add_ons.{add_on.id}.{key}"


def _check_sub_option_structure(selected: SelectedAddOnOption) -> None:
    add_on = selected.add_on
    for key in selected.options:
        if add_on.sub_option(key) is None:
            raise InvalidOptionError(
                _option_field(add_on, key), message=f"Unknown option '{key}' for add-on {add_on.name}"
            )

    for sub_option in add_on.sub_options:
        if sub_option.required and not _is_present(selected.options.get(sub_option.key)):
            raise InvalidOptionError(
                _option_field(add_on, sub_option.key),
                message=f"{sub_option.label} is required for add-on {add_on.name}",
            )

    groups: Dict[str, List[str]] = {}
    for sub_option in add_on.sub_options:
        if sub_option.exclusive_group and _is_active(selected.options.get(sub_option.key)):
            groups.setdefault(sub_option.exclusive_group, []).append(sub_option.key)
    for group, keys in groups.items():
        if len(keys) > 1:
            raise IncompatibleOptionError(
                _option_field(add_on, keys[1]),
                selected.options.get(keys[1]),
                message=f"Only one of {', '.join(keys)} may be selected for add-on {add_on.name}",
                details={"exclusive_group": group},
            )


def _check_conflicts(selected: List[SelectedAddOnOption]) -> None:
    for i, current in enumerate(selected):
        for earlier in selected[:i]:
            other = earlier.add_on
            if other.id in current.add_on.conflicts_with or current.add_on.id in other.conflicts_with:
                raise IncompatibleOptionError(
                    "add_ons",
                    current.add_on.id,
                    message=f"Add-on {current.add_on.name} cannot be combined with {other.name}",
                )


def _check_sub_option_values(selected: SelectedAddOnOption) -> None:
    add_on = selected.add_on
    for sub_option in add_on.sub_options:
        value = selected.options.get(sub_option.key)
        if not _is_present(value):
            continue
        field_name = _option_field(add_on, sub_option.key)

        if sub_option.choices and value not in sub_option.choices:
            raise OutOfRangeError(
                field_name, value,
                message=f"{sub_option.label} must be one of {', '.join(str(c) for c in sub_option.choices)}",
                details={"choices": [str(c) for c in sub_option.choices]},
            )

        whole_number = sub_option.type == "integer" or sub_option.key in WHOLE_NUMBER_OPTIONS
        if whole_number or sub_option.type == "number" or sub_option.minimum is not None or sub_option.maximum is not None:
            try:
                number = to_decimal(value)
            except (InvalidOperation, ValueError, TypeError):
                raise OutOfRangeError(
                    field_name, value,
                    minimum=sub_option.minimum, maximum=sub_option.maximum,
                    message=f"{sub_option.label} must be a number",
                )
            if whole_number and (not number.is_finite() or number != number.to_integral_value()):
                raise OutOfRangeError(
                    field_name, value,
                    minimum=sub_option.minimum, maximum=sub_option.maximum,
                    message=f"{sub_option.label} must be a whole number, got {value}",
                )
            if (sub_option.minimum is not None and number < sub_option.minimum) or (
                sub_option.maximum is not None and number > sub_option.maximum
            ):
                raise OutOfRangeError(field_name, value, minimum=sub_option.minimum, maximum=sub_option.maximum)


# ============================================================================
# ENTRY POINT
# ============================================================================

def _validate(catalog: Catalog, request: ConfigurationRequest) -> ValidatedConfiguration:
    # Rule 2: membership
    paper_stock = catalog.paper_stock(request.paper_stock_id)
    if paper_stock is None:
        raise InvalidOptionError("paper_stock_id", request.paper_stock_id)
    if request.coating_id not in catalog.coating_names:
        raise InvalidOptionError("coating_id", request.coating_id)
    if not any(p.sides_option(request.sides_id) for p in catalog.paper_stocks):
        raise InvalidOptionError("sides_id", request.sides_id)
    quantity, is_custom_quantity = _resolve_quantity(catalog, request)
    size = _resolve_size(catalog, request)
    selected_add_ons = _resolve_add_ons(catalog, request)
    turnaround = catalog.turnaround_time(request.turnaround_time_id)
    if turnaround is None:
        raise InvalidOptionError("turnaround_time_id", request.turnaround_time_id)

    # Rule 3: custom values
    if is_custom_quantity:
        check_custom_quantity(catalog, quantity)
    if size is None:
        sizes = catalog.sizes
        _check_custom_dimension("custom_width", request.custom_width, sizes.custom_min_width, sizes.custom_max_width)
        _check_custom_dimension("custom_height", request.custom_height, sizes.custom_min_height, sizes.custom_max_height)
        width, height = request.custom_width, request.custom_height
        square_inches = width * height
    else:
        width, height, square_inches = size.width, size.height, size.square_inches

    # Rule 4: paper compatibility
    coating = paper_stock.coating(request.coating_id)
    if coating is None:
        raise IncompatibleOptionError(
            "coating_id", request.coating_id,
            message=f"Coating '{request.coating_id}' is not offered for {paper_stock.name}",
        )
    sides = paper_stock.sides_option(request.sides_id)
    if sides is None:
        raise IncompatibleOptionError(
            "sides_id", request.sides_id,
            message=f"Sides option '{request.sides_id}' is not offered for {paper_stock.name}",
        )

    # Rule 5: turnaround restrictions
    if not turnaround.allows_coating(coating):
        raise IncompatibleTurnaroundError(turnaround.id, coating.id)

    # Rule 6: add-ons
    for selected in selected_add_ons:
        _check_sub_option_structure(selected)
    _check_conflicts(selected_add_ons)
    for selected in selected_add_ons:
        _check_sub_option_values(selected)

    return ValidatedConfiguration(
        catalog=catalog,
        paper_stock=paper_stock,
        coating=coating,
        sides=sides,
        quantity=quantity,
        is_custom_quantity=is_custom_quantity,
        size=size,
        width=width,
        height=height,
        square_inches=square_inches,
        turnaround=turnaround,
        add_ons=tuple(selected_add_ons),
    )


def validate_configuration(
    repository: CatalogRepository,
    request: ConfigurationRequest,
    catalog: Optional[Catalog] = None,
) -> ValidatedConfiguration:
    """
    Validate a candidate configuration.

    Args:
        repository: Catalog data access
        request: Candidate configuration
        catalog: Already resolved snapshot for request.product_id (optional)

    Returns:
        ValidatedConfiguration

    Raises:
        NotFoundError / IncompleteCatalogError: from catalog resolution
        ConfigurationValidationError subclasses: first failing rule
    """
    if catalog is None or catalog.product_id != request.product_id:
        catalog = resolve_catalog(repository, request.product_id)

    try:
        return _validate(catalog, request)
    except ConfigurationValidationError as e:
        logger.info(
            "Configuration rejected",
            extra={
                "product_id": request.product_id,
                "error_code": e.error_code,
                "field": e.field,
            },
        )
        raise
