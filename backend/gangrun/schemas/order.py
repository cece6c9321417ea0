"""
Order Pydantic Schemas
"""
from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, List, Optional
from datetime import datetime
from decimal import Decimal

from gangrun.core.status_config import OrderStatus
from gangrun.schemas.pricing import ConfigurationRequest


# ============================================================================
# Request Schemas
# ============================================================================

class OrderCreate(BaseModel):
    """
    Create an order from configured lines.

    Lines carry configurations only; every price is recomputed server-side.
    """
    lines: List[ConfigurationRequest] = Field(..., min_length=1, description="Configured order lines")

    customer_id: Optional[int] = Field(None, description="Customer ID (broker discounts apply)")
    customer_email: Optional[str] = Field(None, max_length=255, description="Customer email (for guest orders)")

    # Shipping
    carrier: Optional[str] = Field(None, max_length=50, description="FEDEX, UPS, SOUTHWEST_CARGO")
    shipping_region: Optional[str] = Field(None, max_length=50, description="State / region code")
    shipping_base_rate: Decimal = Field(Decimal("0"), ge=0, description="Carrier rate before markup")

    customer_notes: Optional[str] = Field(None, max_length=5000)

    @field_validator("carrier")
    @classmethod
    def normalize_carrier(cls, v: Optional[str]) -> Optional[str]:
        return v.strip().upper() if v else v


class OrderUpdateStatus(BaseModel):
    """Move an order through its lifecycle (admin)"""
    status: OrderStatus = Field(..., description="New order status")
    note: Optional[str] = Field(None, max_length=1000)
    changed_by: Optional[str] = Field(None, max_length=255)


class OrderUpdateShipping(BaseModel):
    """Update tracking details; shipping charges stay as priced"""
    tracking_number: Optional[str] = Field(None, max_length=255)
    carrier: Optional[str] = Field(None, max_length=50)


# ============================================================================
# Response Schemas
# ============================================================================

class OrderItemResponse(BaseModel):
    id: int
    line_number: int
    product_id: Optional[str]
    product_name: str
    quantity: int
    configuration_snapshot: Dict[str, Any]
    price_breakdown: Dict[str, Any]
    catalog_version: Optional[int]
    unit_price: Decimal
    line_total: Decimal

    class Config:
        from_attributes = True


class OrderStatusHistoryResponse(BaseModel):
    from_status: Optional[str]
    to_status: str
    note: Optional[str]
    changed_by: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    id: int
    order_number: str
    status: str
    customer_id: Optional[int]
    customer_email: Optional[str]

    subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    shipping_amount: Decimal
    grand_total: Decimal

    carrier: Optional[str]
    shipping_region: Optional[str]
    tracking_number: Optional[str]
    customer_notes: Optional[str]

    created_at: datetime
    paid_at: Optional[datetime] = None
    shipped_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    refunded_at: Optional[datetime] = None

    items: List[OrderItemResponse] = []
    status_history: List[OrderStatusHistoryResponse] = []
    allowed_transitions: List[str] = []

    class Config:
        from_attributes = True
