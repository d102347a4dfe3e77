"""Declarative base and portable column types shared by all models."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, BigInteger, DateTime, Integer, TypeDecorator
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import DeclarativeBase

# SQLite only auto-increments INTEGER PRIMARY KEY columns
BigIntPK = BigInteger().with_variant(Integer, "sqlite")
JSONType = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """TIMESTAMPTZ that always round-trips as an aware UTC datetime.

    SQLite drops tzinfo on read; values are normalised to UTC on write
    and re-tagged on read so comparisons with ``utcnow()`` never mix
    naive and aware datetimes.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Any) -> datetime | None:  # noqa: ANN401
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        value = value.astimezone(timezone.utc)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value: datetime | None, dialect: Any) -> datetime | None:  # noqa: ANN401
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value


class Base(DeclarativeBase):
    """Base class for all ORM models."""


async def insert_ignore(
    db: AsyncSession,
    model: type[Base],
    values: dict[str, Any],
    index_elements: list[str],
    index_where: Any = None,  # noqa: ANN401
) -> bool:
    """INSERT ... ON CONFLICT DO NOTHING. Returns True if a row was inserted.

    ``index_where`` targets a partial unique index.
    """
    dialect = db.get_bind().dialect.name
    insert = sqlite_insert if dialect == "sqlite" else pg_insert
    stmt = insert(model).values(**values).on_conflict_do_nothing(
        index_elements=index_elements,
        index_where=index_where,
    )
    result = await db.execute(stmt)
    return bool(result.rowcount)
