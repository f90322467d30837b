"""
Declarative base and column mixins shared by the auth tables.

All timestamps are naive UTC datetimes produced by `utcnow()`, both in the
database and in comparisons, so expiry checks never mix aware and naive
values.
"""

from typing import Tuple

from sqlalchemy import Column, DateTime, Integer
from sqlalchemy.orm import DeclarativeBase

from auth_service.core.auth import utcnow


class Base(DeclarativeBase):
    """
    Base class for all models.

    Subclasses list the columns worth showing in logs and tracebacks in
    `__repr_attrs__`; secrets (password hashes, token values) stay out.
    """

    __repr_attrs__: Tuple[str, ...] = ()

    def __repr__(self) -> str:
        attrs = ", ".join(f"{name}={getattr(self, name)!r}" for name in self.__repr_attrs__)
        return f"<{type(self).__name__}({attrs})>"


class IntegerIdMixin:
    """Surrogate integer primary key."""

    id = Column(Integer, primary_key=True, index=True)


class TimestampMixin:
    """created_at on insert, updated_at on every ORM or bulk update."""

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
