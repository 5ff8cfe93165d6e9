"""Database initialization utilities."""

from placer.db.base import Base
from placer.db.session import engine


def init_db() -> None:
    """Create tables that do not exist yet."""
    from placer import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
