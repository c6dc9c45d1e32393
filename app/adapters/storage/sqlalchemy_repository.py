"""Async SQLAlchemy waitlist repository.

Uniqueness is enforced by the database (unique constraint on ``email``); a
conflicting insert is detected through ``IntegrityError`` and reported as a
non-created result instead of an error.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from app.adapters.storage.base import AbstractWaitlistRepository, InsertResult

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base for waitlist tables."""


class WaitlistEntry(Base):
    __tablename__ = "waitlist_entries"

    id: Mapped[str] = mapped_column(
        sa.String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    email: Mapped[str] = mapped_column(
        sa.String(255),
        nullable=False,
        unique=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now()
    )
    # pending | notified | converted
    status: Mapped[str] = mapped_column(sa.String(20), server_default="pending")


class SqlAlchemyWaitlistRepository(AbstractWaitlistRepository):
    """Repository backed by any SQLAlchemy async dialect."""

    def __init__(
        self,
        url: str | None = None,
        *,
        engine: AsyncEngine | None = None,
        echo: bool = False,
    ) -> None:
        """Initialize the repository.

        Args:
            url: SQLAlchemy async database URL. Ignored when ``engine`` is given.
            engine: Pre-built async engine.
            echo: Echo SQL statements.

        Raises:
            ValueError: If neither url nor engine is provided.
        """
        if engine is None:
            if not url:
                raise ValueError("url or engine is required")
            engine = create_async_engine(url, echo=echo, pool_pre_ping=True)

        self._engine = engine
        self._sessions = async_sessionmaker(engine, expire_on_commit=False)

    async def init_schema(self) -> None:
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def insert(self, email: str) -> InsertResult:
        async with self._sessions() as session:
            entry = WaitlistEntry(id=str(uuid.uuid4()), email=email, status="pending")
            session.add(entry)
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                logger.info("waitlist.insert_conflict")
                return InsertResult(created=False, existing_id=await self._find_id(email))

            return InsertResult(created=True, entry_id=entry.id)

    async def _find_id(self, email: str) -> str | None:
        try:
            async with self._sessions() as session:
                result = await session.execute(
                    sa.select(WaitlistEntry.id).where(WaitlistEntry.email == email).limit(1)
                )
                return result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            logger.warning(
                "waitlist.lookup_failed",
                extra={"error_type": type(exc).__name__},
            )
            return None

    async def count(self) -> int:
        async with self._sessions() as session:
            result = await session.execute(sa.select(sa.func.count()).select_from(WaitlistEntry))
            return int(result.scalar_one())

    async def ping(self) -> bool:
        async with self._engine.connect() as conn:
            await conn.execute(sa.text("SELECT 1"))
        return True

    async def close(self) -> None:
        await self._engine.dispose()
