"""
Pricing Pydantic Schemas

ConfigurationRequest is what a storefront submits; PriceBreakdown is the
itemized result handed to order storage and receipts. Money fields are
Decimals and serialize as strings so a breakdown survives a JSON round
trip to the cent.
"""
from pydantic import BaseModel, Field
from typing import Any, Dict, Iterator, List, Optional, Tuple
from decimal import Decimal

from gangrun.core.pricing_config import ZERO, round_currency


# ============================================================================
# Request Schemas
# ============================================================================

class SelectedAddOn(BaseModel):
    """An add-on chosen by the customer with its sub-option values"""
    add_on_id: str = Field(..., description="Add-on ID")
    options: Dict[str, Any] = Field(default_factory=dict, description="Sub-option values keyed by sub-option key")


class ConfigurationRequest(BaseModel):
    """
    Candidate product configuration.

    Exactly one of quantity / custom_quantity and exactly one of
    size_id / (custom_width + custom_height) must be given; the
    configuration validator enforces that so the error names the field.
    """
    product_id: str = Field(..., description="Product ID")
    paper_stock_id: str = Field(..., description="Paper stock ID")
    coating_id: str = Field(..., description="Coating ID")
    sides_id: str = Field(..., description="Sides option ID")

    quantity: Optional[int] = Field(None, description="Listed quantity")
    custom_quantity: Optional[int] = Field(None, description="Custom quantity (when the product allows it)")

    size_id: Optional[str] = Field(None, description="Listed size ID")
    custom_width: Optional[Decimal] = Field(None, description="Custom width in inches")
    custom_height: Optional[Decimal] = Field(None, description="Custom height in inches")

    add_ons: List[SelectedAddOn] = Field(default_factory=list)
    turnaround_time_id: str = Field(..., description="Turnaround time ID")


class QuoteRequest(ConfigurationRequest):
    """Configuration plus the customer being quoted (for broker discounts)"""
    customer_id: Optional[int] = Field(None, description="Customer ID; broker accounts get category discounts")


class ValidateResponse(BaseModel):
    """Summary of an accepted configuration"""
    valid: bool = True
    product_id: str
    catalog_version: int
    paper_stock: str
    coating: str
    sides: str
    quantity: int
    width: Decimal
    height: Decimal
    square_inches: Decimal
    turnaround_time: str
    add_ons: List[str] = []


# ============================================================================
# Breakdown Schemas
# ============================================================================

class PaperLine(BaseModel):
    """Paper stock / coating / sides cost component"""
    kind: str  # paper_stock, coating, sides, print
    id: Optional[str] = None
    name: str
    amount: Decimal
    formula: Optional[str] = None


class AddOnLine(BaseModel):
    add_on_id: str
    name: str
    pricing_model: str
    formula: str
    amount: Decimal


class TurnaroundLine(BaseModel):
    turnaround_time_id: str
    name: str
    pricing_model: str
    multiplier: Decimal
    base_price: Decimal = ZERO
    amount: Decimal  # markup added on top of the subtotal


class BrokerDiscountLine(BaseModel):
    category_id: Optional[str] = None
    percent: Decimal
    amount: Decimal  # always <= 0


class PriceBreakdown(BaseModel):
    """
    Itemized price of one configured line.

    Line amounts keep full precision; only `total` (and `unit_price`)
    are rounded, so rounding the sum of lines() always gives `total`.
    """
    product_id: str
    product_name: str
    catalog_version: int
    quantity: int

    base_price: Decimal
    setup_fee: Decimal
    paper_lines: List[PaperLine] = []
    paper_delta: Decimal = ZERO
    add_on_lines: List[AddOnLine] = []
    add_ons_total: Decimal = ZERO
    subtotal_before_turnaround: Decimal
    turnaround: TurnaroundLine
    broker_discount: Optional[BrokerDiscountLine] = None

    total: Decimal
    unit_price: Decimal
    currency: str = "USD"

    production_days_min: int
    production_days_max: int

    def lines(self) -> Iterator[Decimal]:
        """Every signed amount that makes up the total"""
        yield self.base_price
        yield self.setup_fee
        for line in self.paper_lines:
            yield line.amount
        for line in self.add_on_lines:
            yield line.amount
        yield self.turnaround.amount
        if self.broker_discount is not None:
            yield self.broker_discount.amount

    def display_lines(self) -> List[Tuple[str, Decimal]]:
        """Receipt rows, rounded to the cent"""
        rows = [("Base price", round_currency(self.base_price))]
        if self.setup_fee:
            rows.append(("Setup fee", round_currency(self.setup_fee)))
        for line in self.paper_lines:
            if line.amount:
                rows.append((line.name, round_currency(line.amount)))
        for line in self.add_on_lines:
            rows.append((line.name, round_currency(line.amount)))
        if self.turnaround.amount:
            rows.append((f"Turnaround: {self.turnaround.name}", round_currency(self.turnaround.amount)))
        if self.broker_discount is not None:
            rows.append(("Broker discount", round_currency(self.broker_discount.amount)))
        rows.append(("Total", self.total))
        return rows
