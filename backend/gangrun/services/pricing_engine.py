"""
Pricing engine facade

Bundles the three engine operations behind one object bound to a catalog
repository. Holds no state besides the repository, so build one per
request.
"""
from typing import Optional

from gangrun.schemas.pricing import ConfigurationRequest, PriceBreakdown
from gangrun.services.catalog_repository import CatalogRepository
from gangrun.services.catalog_resolver import Catalog, resolve_catalog
from gangrun.services.configuration_validator import ValidatedConfiguration, validate_configuration
from gangrun.services.price_calculator import calculate_price


class PricingEngine:

    def __init__(self, repository: CatalogRepository):
        self.repository = repository

    def resolve_catalog(self, product_id: str) -> Catalog:
        return resolve_catalog(self.repository, product_id)

    def validate_configuration(self, request: ConfigurationRequest) -> ValidatedConfiguration:
        return validate_configuration(self.repository, request)

    def calculate_price(
        self,
        validated: ValidatedConfiguration,
        quantity: Optional[int] = None,
        customer_id: Optional[int] = None,
    ) -> PriceBreakdown:
        broker_discounts = None
        if customer_id is not None:
            broker_discounts = self.repository.get_broker_discounts(customer_id)
        return calculate_price(validated, quantity=quantity, broker_discounts=broker_discounts)

    def quote(self, request: ConfigurationRequest, customer_id: Optional[int] = None) -> PriceBreakdown:
        """Validate, then price at the configured quantity"""
        validated = self.validate_configuration(request)
        return self.calculate_price(validated, customer_id=customer_id)
