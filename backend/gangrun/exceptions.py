"""
GangRun Pricing - Custom Exception Hierarchy

Provides structured, typed exceptions with error codes for consistent
error handling across the pricing engine and the order API.

The engine only raises these; mapping to HTTP responses happens in the
exception handlers registered in gangrun.main.

Usage:
    from gangrun.exceptions import NotFoundError, InvalidOptionError

    raise NotFoundError("Product", product_id)
    raise InvalidOptionError("paper_stock_id", value)
"""
from typing import Any, Dict, List, Optional


class PricingEngineException(Exception):
    """
    Base exception for all pricing engine errors.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code (e.g., "NOT_FOUND", "OUT_OF_RANGE")
        status_code: HTTP status code to return
        details: Additional context for debugging
    """

    error_code: str = "PRICING_ENGINE_ERROR"
    status_code: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API response."""
        result = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


# ===================
# 400 Bad Request Errors
# ===================


class ConfigurationValidationError(PricingEngineException):
    """Raised when a submitted product configuration is rejected."""

    error_code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(
        self,
        message: str = "Configuration is not valid",
        *,
        field: Optional[str] = None,
        value: Any = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        self.field = field
        super().__init__(message, details=details)


class InvalidOptionError(ConfigurationValidationError):
    """Raised when a selected id is not part of the product's catalog."""

    error_code = "INVALID_OPTION"

    def __init__(
        self,
        field: str,
        value: Any = None,
        *,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        if message is None:
            message = f"Invalid option for {field}"
            if value is not None:
                message = f"Invalid option for {field}: '{value}'"
        super().__init__(message, field=field, value=value, details=details)


class OutOfRangeError(ConfigurationValidationError):
    """Raised when a custom value falls outside its declared bounds or grid."""

    error_code = "OUT_OF_RANGE"

    def __init__(
        self,
        field: str,
        value: Any,
        *,
        minimum: Any = None,
        maximum: Any = None,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        if minimum is not None:
            details["min"] = str(minimum)
        if maximum is not None:
            details["max"] = str(maximum)
        if message is None:
            message = f"{field} must be between {minimum} and {maximum}, got {value}"
        super().__init__(message, field=field, value=value, details=details)


class IncompatibleOptionError(ConfigurationValidationError):
    """Raised when two selections cannot be combined."""

    error_code = "INCOMPATIBLE_OPTION"

    def __init__(
        self,
        field: str,
        value: Any = None,
        *,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message or f"Option '{value}' for {field} is not compatible with the selection",
            field=field,
            value=value,
            details=details,
        )


class IncompatibleTurnaroundError(ConfigurationValidationError):
    """Raised when a turnaround time forbids the chosen coating."""

    error_code = "INCOMPATIBLE_TURNAROUND"

    def __init__(
        self,
        turnaround_time_id: str,
        coating_id: str,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["coating_id"] = coating_id
        super().__init__(
            f"Turnaround '{turnaround_time_id}' is not available with coating '{coating_id}'",
            field="turnaround_time_id",
            value=turnaround_time_id,
            details=details,
        )


class InvalidStateError(PricingEngineException):
    """Raised when an operation is invalid for the current state."""

    error_code = "INVALID_STATE"
    status_code = 400

    def __init__(
        self,
        message: str = "Operation not allowed in current state",
        *,
        current_state: Optional[str] = None,
        allowed_states: Optional[list] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        if current_state:
            details["current_state"] = current_state
        if allowed_states is not None:
            details["allowed_states"] = allowed_states
        super().__init__(message, details=details)


# ===================
# 404 Not Found Errors
# ===================


class NotFoundError(PricingEngineException):
    """Raised when a resource is missing or inactive."""

    error_code = "NOT_FOUND"
    status_code = 404

    def __init__(
        self,
        resource: str = "Resource",
        resource_id: Any = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["resource"] = resource
        if resource_id is not None:
            details["resource_id"] = str(resource_id)
        message = f"{resource} not found"
        if resource_id is not None:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(message, details=details)


# ===================
# 422 Unprocessable Entity Errors
# ===================


class ShippingUnavailableError(PricingEngineException):
    """Raised when a carrier cannot serve the requested shipment."""

    error_code = "SHIPPING_UNAVAILABLE"
    status_code = 422

    def __init__(
        self,
        carrier: str,
        *,
        reason: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["carrier"] = carrier
        details["reason"] = reason
        super().__init__(f"Carrier {carrier} unavailable: {reason}", details=details)


# ===================
# 500 Internal Server Errors
# ===================


class IncompleteCatalogError(PricingEngineException):
    """Raised when a product references an empty or inconsistent option set."""

    error_code = "INCOMPLETE_CATALOG"
    status_code = 500

    def __init__(
        self,
        product_id: Any,
        *,
        component: str,
        reason: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["product_id"] = str(product_id)
        details["component"] = component
        details["reason"] = reason
        super().__init__(
            f"Catalog for product {product_id} is incomplete: {component} {reason}",
            details=details,
        )


class PricingModelMismatchError(PricingEngineException):
    """
    Raised when an add-on's configuration does not fit its pricing model.

    The message stays generic for customers; details carry what operators need.
    """

    error_code = "PRICING_MODEL_MISMATCH"
    status_code = 500

    def __init__(
        self,
        add_on_id: Any,
        pricing_model: str,
        *,
        missing_fields: Optional[List[str]] = None,
        reason: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["add_on_id"] = str(add_on_id)
        details["pricing_model"] = pricing_model
        if missing_fields:
            details["missing_fields"] = missing_fields
        if reason:
            details["reason"] = reason
        self.add_on_id = add_on_id
        self.pricing_model = pricing_model
        self.missing_fields = missing_fields or []
        super().__init__("Unable to calculate price", details=details)


class InvalidBrokerDiscountError(PricingEngineException):
    """Raised when a broker account's discount map holds a non-numeric percent."""

    error_code = "INVALID_BROKER_DISCOUNT"
    status_code = 500

    def __init__(
        self,
        key: str,
        value: Any,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["key"] = key
        details["value"] = str(value)
        super().__init__("Unable to calculate price", details=details)
