"""
Carrier settings - per-carrier markup and service area used for order shipping totals
"""
from sqlalchemy import Column, Integer, String, Numeric, Boolean, DateTime, JSON
from datetime import datetime

from gangrun.db.base import Base


class CarrierSettings(Base):
    __tablename__ = "carrier_settings"

    id = Column(Integer, primary_key=True, index=True)
    carrier = Column(String(50), unique=True, nullable=False, index=True)  # FEDEX, UPS, SOUTHWEST_CARGO
    markup_percentage = Column(Numeric(6, 2), default=0, nullable=False)
    enabled = Column(Boolean, default=True, nullable=False)

    # Region codes served (state codes, airport codes); empty = everywhere
    service_area = Column(JSON, nullable=False, default=list)

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<CarrierSettings {self.carrier} +{self.markup_percentage}%>"
