"""
Declarative base for bookmark-recall models.
"""

from __future__ import annotations

from uuid import uuid4

from sqlalchemy.orm import DeclarativeBase


def new_id() -> str:
    """Generate a portable string primary key."""
    return str(uuid4())


class Base(DeclarativeBase):
    """Base class for all ORM models."""
