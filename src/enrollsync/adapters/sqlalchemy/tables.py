"""SQLAlchemy table metadata for locally persisted snapshots."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import (
    Column,
    DateTime,
    Dialect,
    Index,
    MetaData,
    String,
    Table,
    Text,
    TypeDecorator,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

metadata = MetaData()


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class JSONDocument(TypeDecorator[dict[str, Any]]):
    """JSON object stored as text; values that JSON cannot carry are stringified."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: dict[str, Any] | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return json.dumps(value, default=str, ensure_ascii=False, sort_keys=True)

    def process_result_value(self, value: str | None, dialect: Dialect) -> dict[str, Any] | None:
        _ = dialect
        if value is None:
            return None
        return json.loads(value)


deletion_snapshot_table = Table(
    "deletion_snapshot",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("root_kind", String(32), nullable=False),
    Column("root_id", String(64), nullable=False),
    Column("reason", Text, nullable=False, default=""),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("root_record", JSONDocument(), nullable=False),
    Column("collections", JSONDocument(), nullable=False),
    Index("ix_deletion_snapshot_root", "root_kind", "root_id"),
)


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the snapshot metadata."""

    log.info("Creating all tables")
    metadata.create_all(engine)
