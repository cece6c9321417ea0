"""
Pricing Endpoints

Validate a configuration or get an itemized quote for it. Quotes are
informational; the order endpoint prices every line again at checkout.
"""
from fastapi import APIRouter, Depends

from gangrun.api.v1.deps import get_pricing_engine
from gangrun.schemas.common import ERROR_RESPONSES
from gangrun.schemas.pricing import ConfigurationRequest, PriceBreakdown, QuoteRequest, ValidateResponse
from gangrun.services.pricing_engine import PricingEngine
from gangrun.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/pricing", tags=["Pricing"], responses=ERROR_RESPONSES)


@router.post("/validate", response_model=ValidateResponse)
async def validate_configuration(
    request: ConfigurationRequest,
    engine: PricingEngine = Depends(get_pricing_engine),
):
    """
    Check a configuration without pricing it.

    Rejections come back as 400 with the offending field in
    details.field; rules are applied in a fixed order so the same input
    always reports the same error.
    """
    validated = engine.validate_configuration(request)
    return ValidateResponse(
        product_id=validated.catalog.product_id,
        catalog_version=validated.catalog.version,
        paper_stock=validated.paper_stock.name,
        coating=validated.coating.name,
        sides=validated.sides.name,
        quantity=validated.quantity,
        width=validated.width,
        height=validated.height,
        square_inches=validated.square_inches,
        turnaround_time=validated.turnaround.display_name,
        add_ons=[selected.add_on.name for selected in validated.add_ons],
    )


@router.post("/quote", response_model=PriceBreakdown)
async def quote_configuration(
    request: QuoteRequest,
    engine: PricingEngine = Depends(get_pricing_engine),
):
    """Itemized price for a configuration; broker discounts apply when customer_id is a broker"""
    return engine.quote(request, customer_id=request.customer_id)
