"""Database models"""
from gangrun.models.product import ProductCategory, Product, ProductAddOnSet
from gangrun.models.paper_stock import (
    Coating, SidesOption, PaperStock, PaperStockCoating, PaperStockSides,
    PaperStockSet, PaperStockSetItem,
)
from gangrun.models.option_groups import QuantityGroup, SizeGroup
from gangrun.models.add_on import AddOn, AddOnSet, AddOnSetItem
from gangrun.models.turnaround import TurnaroundTime, TurnaroundTimeSet, TurnaroundTimeSetItem
from gangrun.models.customer import Customer
from gangrun.models.carrier import CarrierSettings
from gangrun.models.order import Order, OrderItem, OrderStatusHistory

__all__ = [
    # Products
    "ProductCategory",
    "Product",
    "ProductAddOnSet",
    # Paper stocks
    "Coating",
    "SidesOption",
    "PaperStock",
    "PaperStockCoating",
    "PaperStockSides",
    "PaperStockSet",
    "PaperStockSetItem",
    # Option groups
    "QuantityGroup",
    "SizeGroup",
    # Add-ons
    "AddOn",
    "AddOnSet",
    "AddOnSetItem",
    # Turnaround
    "TurnaroundTime",
    "TurnaroundTimeSet",
    "TurnaroundTimeSetItem",
    # Customers & shipping
    "Customer",
    "CarrierSettings",
    # Orders
    "Order",
    "OrderItem",
    "OrderStatusHistory",
]
