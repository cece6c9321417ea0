"""
Paper stock models

A PaperStock carries its own coating and sides compatibility lists
(which ones are offered and which is pre-selected). PaperStockSets are
named, ordered collections of stocks shared across products.
"""
from sqlalchemy import Column, Integer, String, Numeric, Boolean, ForeignKey
from sqlalchemy.orm import relationship

from gangrun.db.base import Base, generate_id


class Coating(Base):
    """Coating finish (No Coating, UV High Gloss, Matte Aqueous, ...)"""
    __tablename__ = "coatings"

    id = Column(String(50), primary_key=True, default=generate_id)
    name = Column(String(100), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    def __repr__(self):
        return f"<Coating {self.id}: {self.name}>"


class SidesOption(Base):
    """Printed sides (4/0 single sided, 4/4 both sides, ...)"""
    __tablename__ = "sides_options"

    id = Column(String(50), primary_key=True, default=generate_id)
    name = Column(String(100), nullable=False)
    is_double_sided = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    def __repr__(self):
        return f"<SidesOption {self.id}: {self.name}>"


class PaperStock(Base):
    """A paper stock and its print cost"""
    __tablename__ = "paper_stocks"

    id = Column(String(50), primary_key=True, default=generate_id)
    name = Column(String(255), nullable=False)
    paper_type = Column(String(20), default="cardstock", nullable=False)  # cardstock, text, specialty
    weight = Column(Numeric(10, 4), nullable=True)

    # Print cost per square inch per piece; 0 means the stock only carries a flat delta
    price_per_sq_inch = Column(Numeric(14, 8), default=0, nullable=False)
    price_delta = Column(Numeric(12, 4), default=0, nullable=False)

    # Text papers cost more to print on both sides
    is_exception_paper = Column(Boolean, default=False, nullable=False)
    double_sided_multiplier = Column(Numeric(6, 4), nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)

    coatings = relationship("PaperStockCoating", back_populates="paper_stock", cascade="all, delete-orphan")
    sides = relationship("PaperStockSides", back_populates="paper_stock", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<PaperStock {self.id}: {self.name}>"


class PaperStockCoating(Base):
    """Coating offered for a paper stock"""
    __tablename__ = "paper_stock_coatings"

    paper_stock_id = Column(String(50), ForeignKey("paper_stocks.id", ondelete="CASCADE"), primary_key=True)
    coating_id = Column(String(50), ForeignKey("coatings.id"), primary_key=True)
    is_default = Column(Boolean, default=False, nullable=False)
    price_delta = Column(Numeric(12, 4), default=0, nullable=False)

    paper_stock = relationship("PaperStock", back_populates="coatings")
    coating = relationship("Coating")


class PaperStockSides(Base):
    """Sides option offered for a paper stock"""
    __tablename__ = "paper_stock_sides"

    paper_stock_id = Column(String(50), ForeignKey("paper_stocks.id", ondelete="CASCADE"), primary_key=True)
    sides_option_id = Column(String(50), ForeignKey("sides_options.id"), primary_key=True)
    is_default = Column(Boolean, default=False, nullable=False)
    price_delta = Column(Numeric(12, 4), default=0, nullable=False)

    paper_stock = relationship("PaperStock", back_populates="sides")
    sides_option = relationship("SidesOption")


class PaperStockSet(Base):
    """Named, ordered collection of paper stocks"""
    __tablename__ = "paper_stock_sets"

    id = Column(String(50), primary_key=True, default=generate_id)
    name = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    items = relationship(
        "PaperStockSetItem",
        back_populates="paper_stock_set",
        order_by="PaperStockSetItem.sort_order",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<PaperStockSet {self.name}>"


class PaperStockSetItem(Base):
    __tablename__ = "paper_stock_set_items"

    id = Column(Integer, primary_key=True, index=True)
    paper_stock_set_id = Column(
        String(50), ForeignKey("paper_stock_sets.id", ondelete="CASCADE"), nullable=False, index=True
    )
    paper_stock_id = Column(String(50), ForeignKey("paper_stocks.id"), nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)
    is_default = Column(Boolean, default=False, nullable=False)

    paper_stock_set = relationship("PaperStockSet", back_populates="items")
    paper_stock = relationship("PaperStock")
