"""
Catalog Pydantic Schemas

Read-only view of a resolved Catalog snapshot for storefronts.
"""
from pydantic import BaseModel
from typing import Any, Dict, List, Optional
from decimal import Decimal


class CoatingOptionResponse(BaseModel):
    id: str
    name: str
    is_default: bool
    price_delta: Decimal

    class Config:
        from_attributes = True


class SidesOptionResponse(BaseModel):
    id: str
    name: str
    is_double_sided: bool
    is_default: bool
    price_delta: Decimal

    class Config:
        from_attributes = True


class PaperStockResponse(BaseModel):
    id: str
    name: str
    paper_type: str
    is_default: bool
    coatings: List[CoatingOptionResponse]
    sides: List[SidesOptionResponse]

    class Config:
        from_attributes = True


class QuantityOptionsResponse(BaseModel):
    values: List[int]
    default_value: Optional[int]
    has_custom: bool
    custom_min: Optional[int]
    custom_max: Optional[int]

    class Config:
        from_attributes = True


class SizeResponse(BaseModel):
    id: str
    name: str
    width: Decimal
    height: Decimal
    square_inches: Decimal
    is_default: bool

    class Config:
        from_attributes = True


class SizeOptionsResponse(BaseModel):
    sizes: List[SizeResponse]
    has_custom: bool
    custom_min_width: Optional[Decimal]
    custom_max_width: Optional[Decimal]
    custom_min_height: Optional[Decimal]
    custom_max_height: Optional[Decimal]

    class Config:
        from_attributes = True


class SubOptionResponse(BaseModel):
    key: str
    label: str
    type: str
    required: bool
    exclusive_group: Optional[str]
    choices: List[Any]
    minimum: Optional[Decimal]
    maximum: Optional[Decimal]

    class Config:
        from_attributes = True


class AddOnResponse(BaseModel):
    id: str
    name: str
    description: Optional[str]
    pricing_model: str
    sub_options: List[SubOptionResponse]
    conflicts_with: List[str]
    additional_turnaround_days: int
    is_default: bool
    display_position: str

    class Config:
        from_attributes = True


class TurnaroundTimeResponse(BaseModel):
    id: str
    name: str
    display_name: str
    days_min: int
    days_max: int
    pricing_model: str
    price_multiplier: Decimal
    base_price: Decimal
    requires_no_coating: bool
    restricted_coatings: List[str]
    is_default: bool

    class Config:
        from_attributes = True


class CatalogResponse(BaseModel):
    """Everything selectable for one product"""
    product_id: str
    product_name: str
    category_id: Optional[str]
    version: int
    rush_eligible: bool
    gang_run_eligible: bool
    paper_stocks: List[PaperStockResponse]
    quantities: QuantityOptionsResponse
    sizes: SizeOptionsResponse
    add_ons: List[AddOnResponse]
    turnaround_times: List[TurnaroundTimeResponse]
    coating_names: Dict[str, str] = {}

    class Config:
        from_attributes = True
