"""
Customer model

Identity lives with the external identity provider; this table keeps
only what pricing and orders need.
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, JSON
from datetime import datetime

from gangrun.db.base import Base


class Customer(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    external_id = Column(String(255), unique=True, nullable=True, index=True)  # identity provider subject
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=True)

    # Broker accounts get per-category percentage discounts:
    # {"<category_id>": 10, "_default": 5}
    is_broker = Column(Boolean, default=False, nullable=False)
    broker_discounts = Column(JSON, nullable=False, default=dict)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<Customer {self.email}{' (broker)' if self.is_broker else ''}>"
