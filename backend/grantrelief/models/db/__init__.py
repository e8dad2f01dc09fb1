"""SQLAlchemy 2.0 ORM models for the relief grant service.

Import all models here so Alembic's ``env.py`` can discover them via::

    from grantrelief.models.db import Base  # noqa: F401

Every model must be imported at module level to register with the
``DeclarativeBase`` metadata.
"""

from grantrelief.models.db.base import Base, TimestampMixin  # noqa: F401
from grantrelief.models.db.relief_application import ReliefApplication  # noqa: F401
from grantrelief.models.db.token_event import TokenEventRow  # noqa: F401

__all__ = [
    "Base",
    "TimestampMixin",
    "ReliefApplication",
    "TokenEventRow",
]
