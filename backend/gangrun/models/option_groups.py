"""
Quantity and size groups

Both are ordered lists of discrete values with an optional "custom"
entry bounded by min/max. The list is stored as JSON since entries are
never queried individually.
"""
from sqlalchemy import Column, Integer, String, Numeric, Boolean, JSON

from gangrun.db.base import Base, generate_id


class QuantityGroup(Base):
    """
    Discrete quantities, e.g. [100, 250, 500, 1000, 2500, 5000].

    When has_custom is set the customer may enter any quantity within
    [custom_min, custom_max].

    calculation_values: {"1000": {"calculation_value": 1100,
                                  "adjustment_value": null}, ...}
    Listed quantities below 5000 may print-price as a different quantity;
    adjustment_value, when set, wins over calculation_value.
    """
    __tablename__ = "quantity_groups"

    id = Column(String(50), primary_key=True, default=generate_id)
    name = Column(String(255), nullable=False)
    values = Column(JSON, nullable=False, default=list)  # [100, 250, ...] in display order
    calculation_values = Column(JSON, nullable=True)
    default_value = Column(Integer, nullable=True)
    has_custom = Column(Boolean, default=False, nullable=False)
    custom_min = Column(Integer, nullable=True)
    custom_max = Column(Integer, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    def __repr__(self):
        return f"<QuantityGroup {self.name}>"


class SizeGroup(Base):
    """
    Standard sizes plus optional custom width/height bounds (inches).

    sizes: [{"id": "4x6", "name": "4\" x 6\"", "width": 4, "height": 6,
             "square_inches": 24}, ...]
    square_inches is optional; when present it overrides width x height
    for pricing (pre-calculated backend value for standard sizes).
    """
    __tablename__ = "size_groups"

    id = Column(String(50), primary_key=True, default=generate_id)
    name = Column(String(255), nullable=False)
    sizes = Column(JSON, nullable=False, default=list)
    default_size_id = Column(String(50), nullable=True)
    has_custom = Column(Boolean, default=False, nullable=False)
    custom_min_width = Column(Numeric(8, 2), nullable=True)
    custom_max_width = Column(Numeric(8, 2), nullable=True)
    custom_min_height = Column(Numeric(8, 2), nullable=True)
    custom_max_height = Column(Numeric(8, 2), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    def __repr__(self):
        return f"<SizeGroup {self.name}>"
