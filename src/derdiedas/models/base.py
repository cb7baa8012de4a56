"""Base model configuration."""
from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from derdiedas.config import settings

# Create SQLAlchemy engine
engine = create_engine(settings.storage.url, echo=settings.storage.echo)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Create declarative base class
Base = declarative_base()

class TimestampMixin:
    """Mixin to add timestamp columns to models."""
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC))
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

def init_db(bind=None) -> None:
    """Initialize database."""
    # Import models so their tables are registered on Base.metadata
    from derdiedas.models import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)  # Create tables if they don't exist
