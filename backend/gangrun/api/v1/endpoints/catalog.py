"""
Catalog Endpoints

Selectable options for a product, as the storefront configurator shows them.
"""
from fastapi import APIRouter, Depends

from gangrun.api.v1.deps import get_pricing_engine
from gangrun.schemas.catalog import CatalogResponse
from gangrun.schemas.common import ERROR_RESPONSES
from gangrun.services.pricing_engine import PricingEngine

router = APIRouter(prefix="/catalog", tags=["Catalog"], responses=ERROR_RESPONSES)


@router.get("/products/{product_id}", response_model=CatalogResponse)
async def get_product_catalog(
    product_id: str,
    engine: PricingEngine = Depends(get_pricing_engine),
):
    """
    Resolve every selectable option for a product.

    Returns 404 for a missing or inactive product and 500 when the
    product's option sets are incomplete.
    """
    catalog = engine.resolve_catalog(product_id)
    return CatalogResponse.model_validate(catalog, from_attributes=True)
