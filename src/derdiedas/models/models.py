"""Database models for the drill."""
from sqlalchemy import Column, String, Text

from derdiedas.models.base import Base, TimestampMixin


class StoredValue(Base, TimestampMixin):
    """A single entry of the local key-value store."""

    __tablename__ = "stored_values"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)  # JSON document
