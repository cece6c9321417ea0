"""
Add-on pricing models

Each add-on is priced by exactly one of a closed set of models:

    FlatPricing        fixed amount per order
    PercentagePricing  share of the pre-add-on subtotal (or of the running
                       total when the add-on is marked compounding)
    PerUnitPricing     quantity * rate, plus an optional setup fee
    CustomPricing      one of the named CustomFormula kinds

The models validate their own fields when constructed, so a priced
add-on can never be missing a rate. Add-on rows stored in the database
still carry the loose `pricing_model` + `configuration` payload; that
payload is mapped onto these types by parse_add_on_pricing(), which is
where a malformed row surfaces as PricingModelMismatchError.
"""
import math
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from gangrun.core.pricing_config import ZERO, percent_to_rate, to_decimal
from gangrun.exceptions import PricingModelMismatchError
from gangrun.logging_config import get_logger

logger = get_logger(__name__)


class PricingModel(str, Enum):
    FLAT = "FLAT"
    PERCENTAGE = "PERCENTAGE"
    PER_UNIT = "PER_UNIT"
    CUSTOM = "CUSTOM"


class CustomFormula(str, Enum):
    BANDING = "BANDING"                            # ceil(qty / items_per_bundle) * per_bundle_rate
    SETUP_PLUS_PER_PIECE = "SETUP_PLUS_PER_PIECE"  # base_fee + per_piece_rate * qty
    SCORING = "SCORING"                            # base_fee + per_score_rate * scores * qty
    PAPER_TYPE = "PAPER_TYPE"                      # SETUP_PLUS_PER_PIECE with rates by paper type
    TIERED = "TIERED"                              # highest tier with min_quantity <= qty


# Legacy names seen in stored configurations
_FORMULA_ALIASES: Dict[str, CustomFormula] = {
    "banding": CustomFormula.BANDING,
    "shrink_wrapping": CustomFormula.BANDING,
    "per_bundle": CustomFormula.BANDING,
    "setup_plus_per_piece": CustomFormula.SETUP_PLUS_PER_PIECE,
    "corner_rounding": CustomFormula.SETUP_PLUS_PER_PIECE,
    "perforation": CustomFormula.SETUP_PLUS_PER_PIECE,
    "variable_data": CustomFormula.SETUP_PLUS_PER_PIECE,
    "eddm": CustomFormula.SETUP_PLUS_PER_PIECE,
    "scoring": CustomFormula.SCORING,
    "score": CustomFormula.SCORING,
    "paper_type": CustomFormula.PAPER_TYPE,
    "folding": CustomFormula.PAPER_TYPE,
    "tiered": CustomFormula.TIERED,
}

# Sub-options the formulas read as counts
WHOLE_NUMBER_OPTIONS = frozenset({"items_per_bundle", "score_count"})

TEXT_PAPER = "text"
CARDSTOCK_PAPER = "cardstock"


@dataclass(frozen=True)
class PricingContext:
    """Inputs an add-on formula may read"""
    quantity: int
    base_subtotal: Decimal      # base + paper delta, before any add-on
    running_subtotal: Decimal   # base_subtotal plus add-on lines priced so far
    paper_type: str = CARDSTOCK_PAPER
    options: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class AddOnCharge:
    amount: Decimal
    formula: str


def _fmt(value: Decimal) -> str:
    return format(value.normalize(), "f")


def _require_decimal(name: str, value: Any) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise ValueError(f"{name} must be a number")
    try:
        return to_decimal(value)
    except (InvalidOperation, ValueError):
        raise ValueError(f"{name} must be a number, got {value!r}")


def _option_int(options: Mapping[str, Any], key: str) -> Optional[int]:
    value = options.get(key)
    if value is None or value == "":
        return None
    number = _require_decimal(key, value)
    if not number.is_finite() or number != number.to_integral_value():
        raise ValueError(f"{key} must be a whole number, got {value!r}")
    return int(number)


# ============================================================================
# PRICING MODELS
# ============================================================================

@dataclass(frozen=True)
class FlatPricing:
    amount: Decimal
    model: ClassVar[PricingModel] = PricingModel.FLAT

    def __post_init__(self):
        object.__setattr__(self, "amount", _require_decimal("amount", self.amount))

    def price(self, context: PricingContext) -> AddOnCharge:
        return AddOnCharge(self.amount, f"flat {_fmt(self.amount)}")


@dataclass(frozen=True)
class PercentagePricing:
    """`rate` is a fraction (0.125 == 12.5%); negative rates are discounts."""
    rate: Decimal
    compounding: bool = False
    model: ClassVar[PricingModel] = PricingModel.PERCENTAGE

    def __post_init__(self):
        object.__setattr__(self, "rate", _require_decimal("rate", self.rate))

    def price(self, context: PricingContext) -> AddOnCharge:
        basis = context.running_subtotal if self.compounding else context.base_subtotal
        label = "running total" if self.compounding else "subtotal"
        return AddOnCharge(basis * self.rate, f"{_fmt(basis)} {label} * {_fmt(self.rate)}")


@dataclass(frozen=True)
class PerUnitPricing:
    rate: Decimal
    setup_fee: Decimal = ZERO
    model: ClassVar[PricingModel] = PricingModel.PER_UNIT

    def __post_init__(self):
        object.__setattr__(self, "rate", _require_decimal("rate", self.rate))
        object.__setattr__(self, "setup_fee", _require_decimal("setup_fee", self.setup_fee))

    def price(self, context: PricingContext) -> AddOnCharge:
        amount = self.setup_fee + self.rate * context.quantity
        formula = f"{context.quantity} x {_fmt(self.rate)}"
        if self.setup_fee:
            formula = f"{_fmt(self.setup_fee)} + {formula}"
        return AddOnCharge(amount, formula)


@dataclass(frozen=True)
class PricingTier:
    min_quantity: int
    amount: Decimal
    per_unit: bool = False


_REQUIRED_PARAMS: Dict[CustomFormula, Tuple[str, ...]] = {
    CustomFormula.BANDING: ("per_bundle_rate",),
    CustomFormula.SETUP_PLUS_PER_PIECE: ("base_fee", "per_piece_rate"),
    CustomFormula.SCORING: ("base_fee", "per_score_rate"),
    CustomFormula.PAPER_TYPE: (TEXT_PAPER, CARDSTOCK_PAPER),
    CustomFormula.TIERED: ("tiers",),
}


@dataclass(frozen=True)
class CustomPricing:
    """
    A named formula plus its parameters.

    params by formula:
        BANDING               per_bundle_rate, items_per_bundle (optional default)
        SETUP_PLUS_PER_PIECE  base_fee, per_piece_rate
        SCORING               base_fee, per_score_rate
        PAPER_TYPE            text / cardstock -> {base_fee, per_piece_rate}
        TIERED                tiers -> [PricingTier, ...] ascending by min_quantity
    """
    formula: CustomFormula
    params: Dict[str, Any] = field(default_factory=dict)
    model: ClassVar[PricingModel] = PricingModel.CUSTOM

    def __post_init__(self):
        formula = CustomFormula(self.formula)
        object.__setattr__(self, "formula", formula)

        missing = [key for key in _REQUIRED_PARAMS[formula] if self.params.get(key) is None]
        if missing:
            raise ValueError(f"{formula.value} requires {', '.join(missing)}")

        params = dict(self.params)
        if formula == CustomFormula.PAPER_TYPE:
            for paper_type in (TEXT_PAPER, CARDSTOCK_PAPER):
                rates = params[paper_type]
                params[paper_type] = {
                    "base_fee": _require_decimal(f"{paper_type}.base_fee", rates.get("base_fee", 0)),
                    "per_piece_rate": _require_decimal(f"{paper_type}.per_piece_rate", rates.get("per_piece_rate")),
                }
        elif formula == CustomFormula.TIERED:
            tiers = sorted(
                (t if isinstance(t, PricingTier) else PricingTier(
                    min_quantity=int(t["min_quantity"]),
                    amount=_require_decimal("tier amount", t["amount"]),
                    per_unit=bool(t.get("per_unit", False)),
                ) for t in params["tiers"]),
                key=lambda t: t.min_quantity,
            )
            if not tiers:
                raise ValueError("TIERED requires at least one tier")
            params["tiers"] = tuple(tiers)
        else:
            for key, value in params.items():
                if value is not None:
                    params[key] = _require_decimal(key, value)
            if formula == CustomFormula.BANDING and params.get("items_per_bundle") is not None:
                if params["items_per_bundle"] <= 0:
                    raise ValueError("items_per_bundle must be positive")
        object.__setattr__(self, "params", params)

    def price(self, context: PricingContext) -> AddOnCharge:
        p = self.params
        qty = context.quantity

        if self.formula == CustomFormula.BANDING:
            per_bundle = _option_int(context.options, "items_per_bundle")
            if per_bundle is None and p.get("items_per_bundle") is not None:
                per_bundle = int(p["items_per_bundle"])
            if not per_bundle or per_bundle <= 0:
                raise ValueError("items_per_bundle")
            bundles = math.ceil(qty / per_bundle)
            return AddOnCharge(
                bundles * p["per_bundle_rate"],
                f"ceil({qty} / {per_bundle}) x {_fmt(p['per_bundle_rate'])}",
            )

        if self.formula == CustomFormula.SETUP_PLUS_PER_PIECE:
            return AddOnCharge(
                p["base_fee"] + p["per_piece_rate"] * qty,
                f"{_fmt(p['base_fee'])} + {_fmt(p['per_piece_rate'])} x {qty}",
            )

        if self.formula == CustomFormula.SCORING:
            scores = _option_int(context.options, "score_count") or 1
            return AddOnCharge(
                p["base_fee"] + p["per_score_rate"] * scores * qty,
                f"{_fmt(p['base_fee'])} + {_fmt(p['per_score_rate'])} x {scores} x {qty}",
            )

        if self.formula == CustomFormula.PAPER_TYPE:
            paper_type = TEXT_PAPER if context.paper_type == TEXT_PAPER else CARDSTOCK_PAPER
            rates = p[paper_type]
            return AddOnCharge(
                rates["base_fee"] + rates["per_piece_rate"] * qty,
                f"{paper_type}: {_fmt(rates['base_fee'])} + {_fmt(rates['per_piece_rate'])} x {qty}",
            )

        # TIERED
        tier = None
        for candidate in p["tiers"]:
            if candidate.min_quantity <= qty:
                tier = candidate
        if tier is None:
            return AddOnCharge(ZERO, f"below first tier ({p['tiers'][0].min_quantity})")
        if tier.per_unit:
            return AddOnCharge(tier.amount * qty, f"tier {tier.min_quantity}+: {qty} x {_fmt(tier.amount)}")
        return AddOnCharge(tier.amount, f"tier {tier.min_quantity}+: flat {_fmt(tier.amount)}")


AddOnPricing = Union[FlatPricing, PercentagePricing, PerUnitPricing, CustomPricing]


# ============================================================================
# LEGACY CONFIGURATION PARSING
# ============================================================================

def _pick(config: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if config.get(key) is not None:
            return config[key]
    return None


def _infer_formula(config: Mapping[str, Any]) -> Optional[CustomFormula]:
    explicit = _pick(config, "formula", "formulaKind", "formula_kind")
    if explicit is not None:
        key = str(explicit).strip().lower()
        if key in _FORMULA_ALIASES:
            return _FORMULA_ALIASES[key]
        try:
            return CustomFormula(key.upper())
        except ValueError:
            return None

    if _pick(config, "perBundle", "perBundleRate", "per_bundle_rate") is not None:
        return CustomFormula.BANDING
    if _pick(config, "perScorePerUnit", "perScoreRate", "per_score_rate") is not None:
        return CustomFormula.SCORING
    if _pick(config, "textPaper", "text_paper") is not None or _pick(config, "cardStock", "cardstock") is not None:
        return CustomFormula.PAPER_TYPE
    if config.get("tiers") is not None:
        return CustomFormula.TIERED
    if _pick(config, "perUnit", "perPieceRate", "per_piece_rate", "pricePerUnit") is not None:
        return CustomFormula.SETUP_PLUS_PER_PIECE
    return None


def _paper_rates(raw: Any) -> Optional[Dict[str, Any]]:
    if raw is None:
        return None
    return {
        "base_fee": _pick(raw, "setupFee", "baseFee", "base_fee", "setup_fee") or 0,
        "per_piece_rate": _pick(raw, "perUnit", "perPieceRate", "per_piece_rate", "pricePerUnit"),
    }


def _custom_params(formula: CustomFormula, config: Mapping[str, Any]) -> Dict[str, Any]:
    if formula == CustomFormula.BANDING:
        return {
            "per_bundle_rate": _pick(config, "perBundle", "perBundleRate", "per_bundle_rate"),
            "items_per_bundle": _pick(config, "defaultItemsPerBundle", "itemsPerBundle", "items_per_bundle"),
        }
    if formula == CustomFormula.SETUP_PLUS_PER_PIECE:
        return {
            "base_fee": _pick(config, "setupFee", "baseFee", "base_fee", "setup_fee"),
            "per_piece_rate": _pick(config, "perUnit", "perPieceRate", "per_piece_rate", "pricePerUnit"),
        }
    if formula == CustomFormula.SCORING:
        return {
            "base_fee": _pick(config, "setupFee", "baseFee", "base_fee", "setup_fee"),
            "per_score_rate": _pick(config, "perScorePerUnit", "perScoreRate", "per_score_rate"),
        }
    if formula == CustomFormula.PAPER_TYPE:
        return {
            TEXT_PAPER: _paper_rates(_pick(config, "textPaper", "text_paper", TEXT_PAPER)),
            CARDSTOCK_PAPER: _paper_rates(_pick(config, "cardStock", "card_stock", CARDSTOCK_PAPER)),
        }
    tiers = config.get("tiers") or []
    return {
        "tiers": [
            {
                "min_quantity": _pick(t, "minQuantity", "min_quantity", "min"),
                "amount": _pick(t, "price", "amount", "perUnit", "per_unit_rate"),
                "per_unit": _pick(t, "perUnit", "per_unit_rate") is not None,
            }
            for t in tiers
        ] or None,
    }


def _missing_fields(formula: CustomFormula, params: Mapping[str, Any]) -> List[str]:
    missing = [key for key in _REQUIRED_PARAMS[formula] if params.get(key) is None]
    if formula == CustomFormula.PAPER_TYPE:
        for paper_type in (TEXT_PAPER, CARDSTOCK_PAPER):
            rates = params.get(paper_type)
            if rates is not None and rates.get("per_piece_rate") is None:
                missing.append(f"{paper_type}.per_piece_rate")
    if formula == CustomFormula.TIERED:
        for i, tier in enumerate(params.get("tiers") or []):
            if tier["min_quantity"] is None or tier["amount"] is None:
                missing.append(f"tiers[{i}]")
    return missing


def parse_add_on_pricing(
    add_on_id: str,
    pricing_model: str,
    configuration: Optional[Mapping[str, Any]],
) -> AddOnPricing:
    """
    Map a stored pricing model + configuration payload onto a pricing type.

    Accepts both camelCase and snake_case keys. PERCENTAGE configurations
    hold a percent (12.5 means 12.5%).

    Raises:
        PricingModelMismatchError: unknown model, or the configuration is
            missing fields the model needs
    """
    config = dict(configuration or {})
    model_name = (pricing_model or "").upper()

    def mismatch(missing: Sequence[str] = (), reason: Optional[str] = None) -> PricingModelMismatchError:
        error = PricingModelMismatchError(add_on_id, model_name, missing_fields=list(missing), reason=reason)
        logger.error(
            "Add-on pricing configuration mismatch",
            extra={"add_on_id": add_on_id, "pricing_model": model_name, "details": error.details},
        )
        return error

    try:
        if model_name == PricingModel.FLAT:
            amount = _pick(config, "price", "amount", "flatPrice", "flat_price")
            if amount is None:
                raise mismatch(["price"])
            return FlatPricing(amount)

        if model_name == PricingModel.PERCENTAGE:
            percent = _pick(config, "percentage", "percent")
            if percent is None:
                raise mismatch(["percentage"])
            compounding = bool(config.get("compounding")) or config.get("appliesTo") == "running_total"
            return PercentagePricing(
                percent_to_rate(_require_decimal("percentage", percent)), compounding=compounding
            )

        if model_name == PricingModel.PER_UNIT:
            rate = _pick(config, "perUnit", "per_unit", "pricePerUnit", "price_per_unit", "perPieceRate", "rate")
            if rate is None:
                raise mismatch(["perUnit"])
            setup_fee = _pick(config, "setupFee", "setup_fee", "baseFee", "base_fee") or 0
            return PerUnitPricing(rate, setup_fee=setup_fee)

        if model_name in (PricingModel.CUSTOM, CustomFormula.TIERED):
            formula = CustomFormula.TIERED if model_name == CustomFormula.TIERED else _infer_formula(config)
            if formula is None:
                raise mismatch(["formula"], reason="Unable to determine custom formula")
            params = _custom_params(formula, config)
            missing = _missing_fields(formula, params)
            if missing:
                raise mismatch(missing)
            return CustomPricing(formula, params)
    except ValueError as e:
        raise mismatch(reason=str(e))

    raise mismatch(reason=f"Unknown pricing model '{pricing_model}'")
