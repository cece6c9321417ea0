"""
Order Endpoints

Order intake and lifecycle. Prices are computed once, at creation, from
the submitted configurations and never rewritten afterwards.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from gangrun.core.status_config import OrderStatus, get_allowed_order_transitions
from gangrun.db.session import get_db
from gangrun.models.order import Order
from gangrun.schemas.common import ERROR_RESPONSES
from gangrun.schemas.order import OrderCreate, OrderResponse, OrderUpdateShipping, OrderUpdateStatus
from gangrun.services import order_service
from gangrun.services.order_status import order_status_service

router = APIRouter(prefix="/orders", tags=["Orders"], responses=ERROR_RESPONSES)


def _to_response(order: Order) -> OrderResponse:
    response = OrderResponse.model_validate(order)
    response.allowed_transitions = get_allowed_order_transitions(order.status)
    return response


@router.get("/status-transitions")
async def get_order_status_transitions(
    current_status: Optional[str] = Query(None, description="Get transitions for a specific status"),
):
    """
    Valid status transitions for orders.

    Used by the admin UI to show only valid status options.
    """
    all_statuses = [s.value for s in OrderStatus]

    if current_status:
        if current_status not in all_statuses:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid status '{current_status}'. Must be one of: {', '.join(all_statuses)}",
            )
        allowed = get_allowed_order_transitions(current_status)
        return {
            "current_status": current_status,
            "allowed_transitions": allowed,
            "is_terminal": len(allowed) == 0,
        }

    transitions = {}
    for order_status in OrderStatus:
        allowed = get_allowed_order_transitions(order_status.value)
        transitions[order_status.value] = {
            "allowed_transitions": allowed,
            "is_terminal": len(allowed) == 0,
        }
    return {
        "statuses": all_statuses,
        "transitions": transitions,
        "terminal_statuses": [s for s, t in transitions.items() if t["is_terminal"]],
    }


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(request: OrderCreate, db: Session = Depends(get_db)):
    """
    Create an order in PENDING_PAYMENT.

    Each line is validated and priced server-side; the frozen breakdown
    is stored on the order item.
    """
    order = order_service.create_order(db, request)
    return _to_response(order)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: int, db: Session = Depends(get_db)):
    return _to_response(order_service.get_order(db, order_id))


@router.patch("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(order_id: int, update: OrderUpdateStatus, db: Session = Depends(get_db)):
    """
    Move an order through its lifecycle.

    PENDING_PAYMENT -> PAID -> IN_PRODUCTION -> SHIPPED -> DELIVERED;
    CANCELLED and REFUNDED only from PENDING_PAYMENT or PAID.
    """
    order = order_service.get_order(db, order_id)
    order = order_status_service.update_status(
        db, order, update.status, note=update.note, changed_by=update.changed_by
    )
    return _to_response(order)


@router.patch("/{order_id}/shipping", response_model=OrderResponse)
async def update_order_shipping(order_id: int, update: OrderUpdateShipping, db: Session = Depends(get_db)):
    """Update tracking number / carrier label (PAID, IN_PRODUCTION or SHIPPED orders)"""
    order = order_service.get_order(db, order_id)
    return _to_response(order_service.update_shipping(db, order, update))
