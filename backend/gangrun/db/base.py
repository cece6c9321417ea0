"""
SQLAlchemy declarative base shared by all models
"""
import uuid

from sqlalchemy.orm import declarative_base

Base = declarative_base()


def generate_id() -> str:
    """Opaque string id for catalog records."""
    return uuid.uuid4().hex
