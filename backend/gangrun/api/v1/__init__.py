"""
API v1 Router - GangRun Pricing
"""
from fastapi import APIRouter
from gangrun.api.v1.endpoints import (
    catalog,
    pricing,
    orders,
)

router = APIRouter()

# Product option catalog
router.include_router(catalog.router)

# Validation and quotes
router.include_router(pricing.router)

# Orders
router.include_router(orders.router)
