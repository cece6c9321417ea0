"""
Order Status Management Service

Validates and applies order lifecycle transitions:

    PENDING_PAYMENT -> PAID -> IN_PRODUCTION -> SHIPPED -> DELIVERED
    CANCELLED / REFUNDED from PENDING_PAYMENT or PAID

Every change is written to OrderStatusHistory. Prices on the order are
never touched here.
"""
from typing import Optional, Tuple
from datetime import datetime
from sqlalchemy.orm import Session

from gangrun.core.status_config import (
    OrderStatus,
    get_allowed_order_transitions,
    is_valid_order_transition,
)
from gangrun.exceptions import InvalidStateError
from gangrun.models.order import Order, OrderStatusHistory
from gangrun.logging_config import get_logger

logger = get_logger(__name__)


# Timestamp column stamped when an order enters a status
_STATUS_TIMESTAMPS = {
    OrderStatus.PAID: "paid_at",
    OrderStatus.SHIPPED: "shipped_at",
    OrderStatus.DELIVERED: "delivered_at",
    OrderStatus.CANCELLED: "cancelled_at",
    OrderStatus.REFUNDED: "refunded_at",
}


class OrderStatusService:
    """
    Manages order status transitions.

    Responsibilities:
    - Validate status transitions (prevent invalid state changes)
    - Stamp lifecycle timestamps
    - Record status history
    """

    def validate_transition(self, from_status: str, to_status: str) -> Tuple[bool, str]:
        """
        Validate an order status transition.

        Args:
            from_status: Current status
            to_status: Desired status

        Returns:
            Tuple of (is_valid, error_message)
        """
        if to_status not in {s.value for s in OrderStatus}:
            return False, f"Unknown order status '{to_status}'"
        if is_valid_order_transition(from_status, to_status):
            return True, ""
        allowed = get_allowed_order_transitions(from_status)
        return False, (
            f"Invalid order status transition: '{from_status}' -> '{to_status}'. "
            f"Valid options: {', '.join(allowed) or 'none (terminal status)'}"
        )

    def record_history(
        self,
        db: Session,
        order: Order,
        from_status: Optional[str],
        to_status: str,
        note: Optional[str] = None,
        changed_by: Optional[str] = None,
    ) -> OrderStatusHistory:
        entry = OrderStatusHistory(
            from_status=from_status,
            to_status=to_status,
            note=note,
            changed_by=changed_by,
        )
        order.status_history.append(entry)
        db.flush()
        return entry

    def update_status(
        self,
        db: Session,
        order: Order,
        new_status: str,
        note: Optional[str] = None,
        changed_by: Optional[str] = None,
    ) -> Order:
        """
        Update order status with validation.

        Args:
            db: Database session
            order: Order to update
            new_status: Desired new status
            note: Optional reason, stored in the history entry
            changed_by: Who made the change

        Returns:
            Updated Order

        Raises:
            InvalidStateError: If transition is invalid
        """
        new_status = getattr(new_status, "value", new_status)
        is_valid, error = self.validate_transition(order.status, new_status)
        if not is_valid:
            raise InvalidStateError(
                error,
                current_state=order.status,
                allowed_states=get_allowed_order_transitions(order.status),
            )

        old_status = order.status
        if old_status == new_status:
            return order

        now = datetime.utcnow()
        order.status = new_status
        order.updated_at = now
        timestamp_column = _STATUS_TIMESTAMPS.get(OrderStatus(new_status))
        if timestamp_column:
            setattr(order, timestamp_column, now)

        self.record_history(db, order, old_status, new_status, note=note, changed_by=changed_by)
        db.commit()
        db.refresh(order)

        logger.info(
            "Order status changed",
            extra={"order_number": order.order_number, "from_status": old_status, "to_status": new_status},
        )
        return order


order_status_service = OrderStatusService()
