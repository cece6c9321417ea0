"""
Add-on models

An AddOn is an optional service (corner rounding, banding, digital proof,
...) with a pricing model and a configuration payload whose shape depends
on that model. See gangrun.services.addon_pricing for the accepted shapes.
"""
from sqlalchemy import Column, Integer, String, Boolean, Text, ForeignKey, JSON
from sqlalchemy.orm import relationship

from gangrun.db.base import Base, generate_id


class AddOn(Base):
    __tablename__ = "add_ons"

    id = Column(String(50), primary_key=True, default=generate_id)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    # FLAT, PERCENTAGE, PER_UNIT, CUSTOM
    pricing_model = Column(String(20), nullable=False)
    configuration = Column(JSON, nullable=False, default=dict)

    # Sub-options the customer fills in, e.g.
    # [{"key": "items_per_bundle", "type": "number", "required": false, "min": 1},
    #  {"key": "same_image", "exclusive_group": "image"}, ...]
    sub_options = Column(JSON, nullable=False, default=list)

    # Ids of add-ons that cannot be selected together with this one
    conflicts_with = Column(JSON, nullable=False, default=list)

    additional_turnaround_days = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    def __repr__(self):
        return f"<AddOn {self.id}: {self.name} ({self.pricing_model})>"


class AddOnSet(Base):
    """Named, ordered collection of add-ons"""
    __tablename__ = "add_on_sets"

    id = Column(String(50), primary_key=True, default=generate_id)
    name = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    items = relationship(
        "AddOnSetItem",
        back_populates="add_on_set",
        order_by="AddOnSetItem.sort_order",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<AddOnSet {self.name}>"


class AddOnSetItem(Base):
    __tablename__ = "add_on_set_items"

    id = Column(Integer, primary_key=True, index=True)
    add_on_set_id = Column(String(50), ForeignKey("add_on_sets.id", ondelete="CASCADE"), nullable=False, index=True)
    add_on_id = Column(String(50), ForeignKey("add_ons.id"), nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)
    is_default = Column(Boolean, default=False, nullable=False)  # pre-selected on the storefront
    display_position = Column(String(20), default="IN_DROPDOWN", nullable=False)

    add_on_set = relationship("AddOnSet", back_populates="items")
    add_on = relationship("AddOn")
