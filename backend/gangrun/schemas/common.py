"""
Common API Response Schemas

Standardized error bodies shared by every endpoint.
"""
from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Standardized error response for all API errors.

    Error Codes:
        - VALIDATION_ERROR: Request body failed schema validation (422)
        - INVALID_OPTION: Selected id is not part of the product's catalog (400)
        - OUT_OF_RANGE: Custom value or sub-option value outside its bounds (400)
        - INCOMPATIBLE_OPTION: Selections that cannot be combined (400)
        - INCOMPATIBLE_TURNAROUND: Turnaround not available with the coating (400)
        - INVALID_STATE: Order status does not allow the operation (400)
        - NOT_FOUND: Product, customer or order not found (404)
        - SHIPPING_UNAVAILABLE: Carrier disabled or region not served (422)
        - INCOMPLETE_CATALOG: Product option sets are inconsistent (500)
        - PRICING_MODEL_MISMATCH: Add-on configuration unusable (500)
        - DATABASE_ERROR: Database operation failed (500)
        - INTERNAL_ERROR: Unexpected internal error (500)

    Example:
        {
            "error": "INCOMPATIBLE_TURNAROUND",
            "message": "Turnaround 'fastest' is not available with coating 'coating_1'",
            "details": {
                "field": "turnaround_time_id",
                "value": "fastest",
                "coating_id": "coating_1"
            },
            "timestamp": "2026-03-02T10:30:00Z"
        }
    """
    error: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(
        None,
        description="Additional error context (offending field, bounds, ...)"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the error occurred (UTC)"
    )


class ValidationErrorResponse(ErrorResponse):
    """Request body failed schema validation; details carry an 'errors' list."""
    error: str = Field(default="VALIDATION_ERROR", description="Always VALIDATION_ERROR")
    details: Dict[str, Any] = Field(
        ...,
        description="Validation error details with 'errors' list"
    )


# Shared `responses=` mapping for routers
ERROR_RESPONSES: Dict[int, Dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Configuration rejected"},
    404: {"model": ErrorResponse, "description": "Not found"},
    422: {"model": ValidationErrorResponse, "description": "Request validation failed"},
    500: {"model": ErrorResponse, "description": "Catalog or pricing data error"},
}
