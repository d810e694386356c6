"""SQLAlchemy declarative base shared by every relational model.

Constraint names follow a fixed convention so that tables created from this
metadata and tables created by hand against MySQL line up.
"""

from sqlalchemy import MetaData
from sqlalchemy.orm import DeclarativeBase

from src.infrastructure.constants import NAMING_CONVENTION


class Base(DeclarativeBase):
    """SQLAlchemy declarative base with naming conventions."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)
