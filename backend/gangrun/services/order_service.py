"""
Order Service

Turns configured lines into a persisted Order. Every line is validated
and priced again here from its configuration; totals sent by a client
are never trusted. The resulting breakdown is frozen on the OrderItem so
receipts and reprints show exactly what was charged.
"""
from datetime import datetime
from decimal import Decimal
from typing import List

from sqlalchemy import desc
from sqlalchemy.orm import Session, selectinload

from gangrun.core.pricing_config import ZERO, round_currency
from gangrun.core.settings import settings
from gangrun.core.status_config import OrderStatus, SHIPPING_EDITABLE_STATUSES
from gangrun.exceptions import InvalidStateError, NotFoundError
from gangrun.models.customer import Customer
from gangrun.models.order import Order, OrderItem
from gangrun.schemas.order import OrderCreate, OrderUpdateShipping
from gangrun.services.catalog_repository import SqlCatalogRepository
from gangrun.services.order_status import order_status_service
from gangrun.services.pricing_engine import PricingEngine
from gangrun.services.shipping import apply_carrier_markup
from gangrun.logging_config import get_logger

logger = get_logger(__name__)


def generate_order_number(db: Session) -> str:
    """
    Next order number for the current year, e.g. GRP-2026-0042.

    Locks the latest row so concurrent checkouts don't read the same
    sequence value; the unique constraint on order_number backs this up.
    """
    prefix = f"{settings.ORDER_NUMBER_PREFIX}-{datetime.utcnow().year}-"
    last = (
        db.query(Order)
        .filter(Order.order_number.like(f"{prefix}%"))
        .order_by(desc(Order.order_number))
        .with_for_update()
        .first()
    )
    next_num = int(last.order_number.rsplit("-", 1)[1]) + 1 if last else 1
    return f"{prefix}{next_num:04d}"


def get_order(db: Session, order_id: int) -> Order:
    order = (
        db.query(Order)
        .options(selectinload(Order.items), selectinload(Order.status_history))
        .filter(Order.id == order_id)
        .first()
    )
    if order is None:
        raise NotFoundError("Order", order_id)
    return order


def create_order(db: Session, request: OrderCreate) -> Order:
    """
    Create an order from configured lines.

    Args:
        db: Database session
        request: Lines (configurations only), customer and shipping details

    Returns:
        Persisted Order in PENDING_PAYMENT

    Raises:
        NotFoundError: unknown customer or product
        ConfigurationValidationError: a line fails validation
        PricingModelMismatchError: a line cannot be priced
        ShippingUnavailableError: carrier cannot serve the region
    """
    customer = None
    if request.customer_id is not None:
        customer = db.query(Customer).filter(Customer.id == request.customer_id).first()
        if customer is None or not customer.is_active:
            raise NotFoundError("Customer", request.customer_id)

    engine = PricingEngine(SqlCatalogRepository(db))

    items: List[OrderItem] = []
    for line_number, configuration in enumerate(request.lines, start=1):
        validated = engine.validate_configuration(configuration)
        breakdown = engine.calculate_price(validated, customer_id=request.customer_id)
        items.append(OrderItem(
            line_number=line_number,
            product_id=breakdown.product_id,
            product_name=breakdown.product_name,
            quantity=breakdown.quantity,
            configuration_snapshot=validated.snapshot(),
            price_breakdown=breakdown.model_dump(mode="json"),
            catalog_version=breakdown.catalog_version,
            unit_price=breakdown.unit_price,
            line_total=breakdown.total,
        ))

    subtotal = sum((Decimal(str(item.line_total)) for item in items), ZERO)
    tax_rate = settings.tax_rate
    tax_amount = round_currency(subtotal * tax_rate)

    shipping_amount = ZERO
    if request.carrier:
        shipping_amount = apply_carrier_markup(
            db, request.carrier, request.shipping_base_rate, request.shipping_region
        )

    order = Order(
        order_number=generate_order_number(db),
        customer_id=customer.id if customer else None,
        customer_email=request.customer_email or (customer.email if customer else None),
        status=OrderStatus.PENDING_PAYMENT.value,
        subtotal=subtotal,
        tax_rate=tax_rate,
        tax_amount=tax_amount,
        shipping_amount=shipping_amount,
        grand_total=subtotal + tax_amount + shipping_amount,
        carrier=request.carrier,
        shipping_region=request.shipping_region,
        customer_notes=request.customer_notes,
    )
    order.items = items
    db.add(order)
    db.flush()
    order_status_service.record_history(db, order, None, order.status, note="Order created")
    db.commit()
    db.refresh(order)

    logger.info(
        "Order created",
        extra={
            "order_number": order.order_number,
            "lines": len(items),
            "grand_total": str(order.grand_total),
        },
    )
    return order


def update_shipping(db: Session, order: Order, update: OrderUpdateShipping) -> Order:
    """
    Record tracking details.

    Shipping charges were fixed when the order was created and stay as
    they are; only the carrier label and tracking number change.
    """
    if order.status not in SHIPPING_EDITABLE_STATUSES:
        raise InvalidStateError(
            f"Shipping details cannot be changed for an order in status {order.status}",
            current_state=order.status,
            allowed_states=sorted(s.value for s in SHIPPING_EDITABLE_STATUSES),
        )

    if update.tracking_number is not None:
        order.tracking_number = update.tracking_number
    if update.carrier is not None:
        order.carrier = update.carrier.strip().upper()
    order.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(order)

    logger.info(
        "Order shipping updated",
        extra={"order_number": order.order_number, "carrier": order.carrier},
    )
    return order
