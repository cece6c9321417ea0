"""
API Dependencies

Request-scoped pricing engine built on the request's database session.
"""
from fastapi import Depends
from sqlalchemy.orm import Session

from gangrun.db.session import get_db
from gangrun.services.catalog_repository import SqlCatalogRepository
from gangrun.services.pricing_engine import PricingEngine


def get_pricing_engine(db: Session = Depends(get_db)) -> PricingEngine:
    """One engine per request, reading the catalog through the request session"""
    return PricingEngine(SqlCatalogRepository(db))
