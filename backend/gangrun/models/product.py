"""
Product model - a configurable print product and the option sets it draws from
"""
from sqlalchemy import Column, Integer, String, Numeric, DateTime, Boolean, Text, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime

from gangrun.db.base import Base, generate_id


class ProductCategory(Base):
    """Storefront category (flyers, business cards, ...); broker discounts key off it"""
    __tablename__ = "product_categories"

    id = Column(String(50), primary_key=True, default=generate_id)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)

    products = relationship("Product", back_populates="category")

    def __repr__(self):
        return f"<ProductCategory {self.slug}>"


class Product(Base):
    """
    A printable product. Pricing options come from shared, reusable sets:
    one paper stock set, one quantity group, one size group, one
    turnaround time set, and zero or more add-on sets.
    """
    __tablename__ = "products"

    id = Column(String(50), primary_key=True, default=generate_id)
    sku = Column(String(50), unique=True, nullable=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category_id = Column(String(50), ForeignKey("product_categories.id"), nullable=True, index=True)

    # Pricing
    base_price = Column(Numeric(12, 4), default=0, nullable=False)
    setup_fee = Column(Numeric(12, 4), default=0, nullable=False)

    # Flags
    is_active = Column(Boolean, default=True, nullable=False)
    rush_eligible = Column(Boolean, default=True, nullable=False)
    gang_run_eligible = Column(Boolean, default=False, nullable=False)

    # Option sets
    paper_stock_set_id = Column(String(50), ForeignKey("paper_stock_sets.id"), nullable=True)
    quantity_group_id = Column(String(50), ForeignKey("quantity_groups.id"), nullable=True)
    size_group_id = Column(String(50), ForeignKey("size_groups.id"), nullable=True)
    turnaround_time_set_id = Column(String(50), ForeignKey("turnaround_time_sets.id"), nullable=True)

    # Bumped on every admin edit; quotes carry it as the catalog snapshot version
    version = Column(Integer, nullable=False, default=1)

    # Metadata
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    # Relationships
    category = relationship("ProductCategory", back_populates="products")
    paper_stock_set = relationship("PaperStockSet")
    quantity_group = relationship("QuantityGroup")
    size_group = relationship("SizeGroup")
    turnaround_time_set = relationship("TurnaroundTimeSet")
    add_on_sets = relationship(
        "ProductAddOnSet",
        back_populates="product",
        order_by="ProductAddOnSet.sort_order",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<Product {self.id}: {self.name}>"


class ProductAddOnSet(Base):
    """Link between a product and one of its add-on sets"""
    __tablename__ = "product_add_on_sets"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(String(50), ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    add_on_set_id = Column(String(50), ForeignKey("add_on_sets.id"), nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)

    product = relationship("Product", back_populates="add_on_sets")
    add_on_set = relationship("AddOnSet")
