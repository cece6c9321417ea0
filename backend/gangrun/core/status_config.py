"""Status Configuration and Transition Rules

Defines valid order status values and allowed transitions. An order's
prices are frozen at creation; only status and shipping details change
afterwards.
"""
from enum import Enum
from typing import Dict, List, Set


# =============================================================================
# Order Status
# =============================================================================

class OrderStatus(str, Enum):
    """Valid status values for Orders"""
    PENDING_PAYMENT = "PENDING_PAYMENT"
    PAID = "PAID"
    IN_PRODUCTION = "IN_PRODUCTION"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


# Allowed transitions: current_status -> set of allowed next statuses
ORDER_TRANSITIONS: Dict[str, Set[str]] = {
    OrderStatus.PENDING_PAYMENT: {
        OrderStatus.PAID,
        OrderStatus.CANCELLED,
        OrderStatus.REFUNDED,
    },
    OrderStatus.PAID: {
        OrderStatus.IN_PRODUCTION,
        OrderStatus.CANCELLED,
        OrderStatus.REFUNDED,
    },
    OrderStatus.IN_PRODUCTION: {
        OrderStatus.SHIPPED,
    },
    OrderStatus.SHIPPED: {
        OrderStatus.DELIVERED,
    },
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
    OrderStatus.REFUNDED: set(),  # Terminal
}

# Shipping details may be edited by admins only in these states
SHIPPING_EDITABLE_STATUSES: Set[str] = {
    OrderStatus.PAID,
    OrderStatus.IN_PRODUCTION,
    OrderStatus.SHIPPED,
}


def get_allowed_order_transitions(current_status: str) -> List[str]:
    """Get list of allowed next statuses for an order, in declaration order"""
    allowed = ORDER_TRANSITIONS.get(current_status, set())
    return [status.value for status in OrderStatus if status in allowed]


def is_valid_order_transition(current_status: str, new_status: str) -> bool:
    """Check if an order status transition is valid"""
    if current_status == new_status:
        return True  # No change is always valid
    allowed = ORDER_TRANSITIONS.get(current_status, set())
    return new_status in allowed


def is_terminal_status(status: str) -> bool:
    return not ORDER_TRANSITIONS.get(status, set())
