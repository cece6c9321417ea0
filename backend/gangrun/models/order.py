"""
Order Models

An Order is the persisted result of checkout. Each OrderItem freezes the
configuration it was priced from and the full price breakdown, so
receipts and reprints never re-derive pricing.
"""
from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, Text, JSON
from sqlalchemy.orm import relationship
from datetime import datetime

from gangrun.db.base import Base


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String(50), unique=True, nullable=False, index=True)  # GRP-2026-0001

    customer_id = Column(Integer, ForeignKey("customers.id", ondelete="SET NULL"), nullable=True, index=True)
    customer_email = Column(String(255), nullable=True)

    # Lifecycle: PENDING_PAYMENT -> PAID -> IN_PRODUCTION -> SHIPPED -> DELIVERED
    # CANCELLED / REFUNDED from PENDING_PAYMENT or PAID
    status = Column(String(30), nullable=False, default="PENDING_PAYMENT", index=True)

    # Totals (frozen at creation)
    subtotal = Column(Numeric(12, 2), nullable=False)
    tax_rate = Column(Numeric(6, 4), nullable=False, default=0)
    tax_amount = Column(Numeric(12, 2), nullable=False, default=0)
    shipping_amount = Column(Numeric(12, 2), nullable=False, default=0)
    grand_total = Column(Numeric(12, 2), nullable=False)

    # Shipping
    carrier = Column(String(50), nullable=True)
    shipping_region = Column(String(50), nullable=True)
    tracking_number = Column(String(255), nullable=True)

    customer_notes = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    paid_at = Column(DateTime, nullable=True)
    shipped_at = Column(DateTime, nullable=True)
    delivered_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    refunded_at = Column(DateTime, nullable=True)

    # Relationships
    customer = relationship("Customer")
    items = relationship("OrderItem", back_populates="order", order_by="OrderItem.line_number", cascade="all, delete-orphan")
    status_history = relationship(
        "OrderStatusHistory", back_populates="order", order_by="OrderStatusHistory.id", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<Order {self.order_number} ({self.status})>"


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    line_number = Column(Integer, nullable=False)

    product_id = Column(String(50), ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)
    product_name = Column(String(255), nullable=False)
    quantity = Column(Integer, nullable=False)

    # Snapshots
    configuration_snapshot = Column(JSON, nullable=False)
    price_breakdown = Column(JSON, nullable=False)
    catalog_version = Column(Integer, nullable=True)

    unit_price = Column(Numeric(12, 4), nullable=False)
    line_total = Column(Numeric(12, 2), nullable=False)

    order = relationship("Order", back_populates="items")

    def __repr__(self):
        return f"<OrderItem {self.line_number} of order {self.order_id}>"


class OrderStatusHistory(Base):
    """Status change log entry for an order"""
    __tablename__ = "order_status_history"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)

    from_status = Column(String(30), nullable=True)  # None for the creation entry
    to_status = Column(String(30), nullable=False)
    note = Column(Text, nullable=True)
    changed_by = Column(String(255), nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    order = relationship("Order", back_populates="status_history")

    def __repr__(self):
        return f"<OrderStatusHistory {self.from_status} -> {self.to_status} for order {self.order_id}>"
