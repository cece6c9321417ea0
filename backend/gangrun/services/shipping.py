"""
Shipping charges

Carrier rates come from outside (the carrier integration or the
storefront); this module only applies the shop's per-carrier markup and
checks that the carrier is enabled for the destination region.
"""
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from gangrun.core.pricing_config import ZERO, percent_to_rate, round_currency, to_decimal
from gangrun.core.settings import settings
from gangrun.exceptions import ShippingUnavailableError
from gangrun.models.carrier import CarrierSettings
from gangrun.logging_config import get_logger

logger = get_logger(__name__)


def apply_carrier_markup(
    db: Session,
    carrier: str,
    base_rate: Decimal,
    region: Optional[str] = None,
) -> Decimal:
    """
    Shipping charge for a carrier rate, markup included.

    Args:
        db: Database session
        carrier: Carrier code (FEDEX, UPS, SOUTHWEST_CARGO)
        base_rate: Carrier rate before markup
        region: Destination region code; checked against the service area

    Returns:
        Marked-up rate rounded to the cent

    Raises:
        ShippingUnavailableError: unknown or disabled carrier, or region
            outside the carrier's service area
    """
    code = carrier.strip().upper()
    config = db.query(CarrierSettings).filter(CarrierSettings.carrier == code).first()
    if config is None:
        raise ShippingUnavailableError(code, reason="carrier is not configured")
    if not config.enabled:
        raise ShippingUnavailableError(code, reason="carrier is disabled")

    service_area = [str(r).upper() for r in (config.service_area or [])]
    if service_area and (region is None or region.strip().upper() not in service_area):
        raise ShippingUnavailableError(code, reason=f"region {region} is outside the service area")

    rate = to_decimal(base_rate)
    markup = rate * percent_to_rate(config.markup_percentage)
    charge = round_currency(rate + markup)
    logger.debug(
        "Carrier markup applied",
        extra={"carrier": code, "base_rate": str(rate), "markup_percentage": str(config.markup_percentage)},
    )
    return charge


def seed_carrier_settings(db: Session) -> int:
    """
    Create CarrierSettings rows for configured carriers that have none yet.

    Returns:
        Number of rows created
    """
    created = 0
    for code, values in settings.carrier_defaults.items():
        code = code.upper()
        exists = db.query(CarrierSettings).filter(CarrierSettings.carrier == code).first()
        if exists:
            continue
        db.add(CarrierSettings(
            carrier=code,
            markup_percentage=to_decimal(values.get("markup_percentage"), default=ZERO),
            enabled=bool(values.get("enabled", True)),
            service_area=list(values.get("service_area") or []),
        ))
        created += 1
    if created:
        db.commit()
        logger.info("Seeded carrier settings", extra={"carriers_created": created})
    return created
