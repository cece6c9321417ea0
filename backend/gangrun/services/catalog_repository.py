"""
Catalog data access

Read-only lookups the pricing engine needs. The engine depends on the
CatalogRepository protocol; SqlCatalogRepository is the SQLAlchemy
implementation used by the API.
"""
from typing import Dict, List, Optional, Protocol

from sqlalchemy.orm import Session, selectinload

from gangrun.models import (
    AddOnSet, AddOnSetItem, Coating, Customer, PaperStock, PaperStockCoating,
    PaperStockSet, PaperStockSetItem, PaperStockSides, Product, ProductAddOnSet,
    QuantityGroup, SizeGroup, TurnaroundTimeSet, TurnaroundTimeSetItem,
)


class CatalogRepository(Protocol):
    """Lookup interface consumed by the pricing engine. No writes."""

    def get_product(self, product_id: str) -> Optional[Product]: ...

    def get_paper_stock_set(self, set_id: str) -> Optional[PaperStockSet]: ...

    def get_quantity_group(self, group_id: str) -> Optional[QuantityGroup]: ...

    def get_size_group(self, group_id: str) -> Optional[SizeGroup]: ...

    def get_add_on_sets(self, product_id: str) -> List[AddOnSet]: ...

    def get_turnaround_time_set(self, set_id: str) -> Optional[TurnaroundTimeSet]: ...

    def get_coating_names(self) -> Dict[str, str]: ...

    def get_broker_discounts(self, customer_id: int) -> Optional[Dict[str, float]]: ...


class SqlCatalogRepository:
    """CatalogRepository backed by a SQLAlchemy session"""

    def __init__(self, db: Session):
        self.db = db

    def get_product(self, product_id: str) -> Optional[Product]:
        return self.db.query(Product).filter(Product.id == product_id).first()

    def get_paper_stock_set(self, set_id: str) -> Optional[PaperStockSet]:
        return (
            self.db.query(PaperStockSet)
            .options(
                selectinload(PaperStockSet.items)
                .selectinload(PaperStockSetItem.paper_stock)
                .selectinload(PaperStock.coatings)
                .selectinload(PaperStockCoating.coating),
                selectinload(PaperStockSet.items)
                .selectinload(PaperStockSetItem.paper_stock)
                .selectinload(PaperStock.sides)
                .selectinload(PaperStockSides.sides_option),
            )
            .filter(PaperStockSet.id == set_id)
            .first()
        )

    def get_quantity_group(self, group_id: str) -> Optional[QuantityGroup]:
        return self.db.query(QuantityGroup).filter(QuantityGroup.id == group_id).first()

    def get_size_group(self, group_id: str) -> Optional[SizeGroup]:
        return self.db.query(SizeGroup).filter(SizeGroup.id == group_id).first()

    def get_add_on_sets(self, product_id: str) -> List[AddOnSet]:
        links = (
            self.db.query(ProductAddOnSet)
            .options(
                selectinload(ProductAddOnSet.add_on_set)
                .selectinload(AddOnSet.items)
                .selectinload(AddOnSetItem.add_on)
            )
            .filter(ProductAddOnSet.product_id == product_id)
            .order_by(ProductAddOnSet.sort_order, ProductAddOnSet.id)
            .all()
        )
        return [link.add_on_set for link in links]

    def get_turnaround_time_set(self, set_id: str) -> Optional[TurnaroundTimeSet]:
        return (
            self.db.query(TurnaroundTimeSet)
            .options(
                selectinload(TurnaroundTimeSet.items).selectinload(TurnaroundTimeSetItem.turnaround_time)
            )
            .filter(TurnaroundTimeSet.id == set_id)
            .first()
        )

    def get_coating_names(self) -> Dict[str, str]:
        coatings = self.db.query(Coating).filter(Coating.is_active.is_(True)).all()
        return {coating.id: coating.name for coating in coatings}

    def get_broker_discounts(self, customer_id: int) -> Optional[Dict[str, float]]:
        """Discount map for a broker account; None for regular customers."""
        customer = self.db.query(Customer).filter(Customer.id == customer_id).first()
        if customer is None or not customer.is_active or not customer.is_broker:
            return None
        return dict(customer.broker_discounts or {})
