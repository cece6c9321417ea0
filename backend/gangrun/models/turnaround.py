"""
Turnaround time models - production speed tiers and their price markups
"""
from sqlalchemy import Column, Integer, String, Numeric, Boolean, Text, ForeignKey, JSON
from sqlalchemy.orm import relationship

from gangrun.db.base import Base, generate_id


class TurnaroundTime(Base):
    """
    A production speed tier.

    pricing_model:
      PERCENTAGE - subtotal * price_multiplier (1.0 = no markup)
      FLAT       - subtotal + base_price
    """
    __tablename__ = "turnaround_times"

    id = Column(String(50), primary_key=True, default=generate_id)
    name = Column(String(100), nullable=False)
    display_name = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)

    days_min = Column(Integer, default=0, nullable=False)
    days_max = Column(Integer, nullable=True)

    pricing_model = Column(String(20), default="PERCENTAGE", nullable=False)
    base_price = Column(Numeric(12, 4), default=0, nullable=False)
    price_multiplier = Column(Numeric(8, 4), default=1, nullable=False)

    # Same-day tiers cannot wait for coating to cure
    requires_no_coating = Column(Boolean, default=False, nullable=False)
    restricted_coatings = Column(JSON, nullable=False, default=list)  # coating ids

    is_active = Column(Boolean, default=True, nullable=False)

    def __repr__(self):
        return f"<TurnaroundTime {self.id}: {self.name}>"


class TurnaroundTimeSet(Base):
    """Named, ordered collection of turnaround times"""
    __tablename__ = "turnaround_time_sets"

    id = Column(String(50), primary_key=True, default=generate_id)
    name = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    items = relationship(
        "TurnaroundTimeSetItem",
        back_populates="turnaround_time_set",
        order_by="TurnaroundTimeSetItem.sort_order",
        cascade="all, delete-orphan",
    )


class TurnaroundTimeSetItem(Base):
    __tablename__ = "turnaround_time_set_items"

    id = Column(Integer, primary_key=True, index=True)
    turnaround_time_set_id = Column(
        String(50), ForeignKey("turnaround_time_sets.id", ondelete="CASCADE"), nullable=False, index=True
    )
    turnaround_time_id = Column(String(50), ForeignKey("turnaround_times.id"), nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)
    is_default = Column(Boolean, default=False, nullable=False)

    turnaround_time_set = relationship("TurnaroundTimeSet", back_populates="items")
    turnaround_time = relationship("TurnaroundTime")
