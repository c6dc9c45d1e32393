"""Waitlist entry persistence adapters."""

from app.adapters.storage.base import AbstractWaitlistRepository, InsertResult
from app.adapters.storage.in_memory import InMemoryWaitlistRepository
from app.adapters.storage.sqlalchemy_repository import SqlAlchemyWaitlistRepository

__all__ = [
    "AbstractWaitlistRepository",
    "InMemoryWaitlistRepository",
    "InsertResult",
    "SqlAlchemyWaitlistRepository",
]
