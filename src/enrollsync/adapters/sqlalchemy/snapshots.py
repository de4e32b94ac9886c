"""SQLAlchemy-backed snapshot store for pre-delete captures."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Any

from sqlalchemy import create_engine, insert, select
from sqlalchemy.orm import Session, sessionmaker

from enrollsync.adapters.sqlalchemy.tables import create_all_tables, deletion_snapshot_table
from enrollsync.config.storage import get_snapshot_database_config
from enrollsync.domain.deletion.plan import DeletionSnapshot
from enrollsync.domain.errors import NotFoundError
from enrollsync.domain.model import EntityKind

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = getLogger(__name__)


class StartupError(RuntimeError):
    """Raised when the snapshot store is used before initialisation."""


@dataclass(slots=True)
class _AdapterState:
    _engine: Engine | None = None
    _session_factory: sessionmaker[Session] | None = None

    @property
    def engine(self) -> Engine | None:
        return self._engine

    @engine.setter
    def engine(self, value: Engine | None) -> None:
        self._session_factory = None
        self._engine = value

    @property
    def session_factory(self) -> sessionmaker[Session]:
        if self._engine is None:
            raise StartupError(
                "Snapshot store not initialised. Call enrollsync.adapters.sqlalchemy."
                "snapshots.startup() before saving or loading snapshots."
            )
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        return self._session_factory


_STATE = _AdapterState()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Initialise the SQLAlchemy engine, tables, and session factory."""

    if _STATE.engine is not None and not force:
        raise StartupError("Snapshot store already initialised. Pass force=True to reconfigure.")

    resolved_engine = engine or create_engine(
        database_uri or get_snapshot_database_config().uri, future=True
    )
    create_all_tables(resolved_engine)
    _STATE.engine = resolved_engine


def is_started() -> bool:
    """Return whether the adapter has been initialised."""

    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the managed engine and reset state (primarily for tests)."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None


class SqlAlchemySnapshotStore:
    """:class:`SnapshotStore` writing one row per snapshot; committed before return."""

    def __init__(self, session_factory: sessionmaker[Session] | None = None) -> None:
        self._session_factory = session_factory

    @property
    def session_factory(self) -> sessionmaker[Session]:
        return self._session_factory or _STATE.session_factory

    def save(self, snapshot: DeletionSnapshot) -> str:
        collections = {
            name: [dict(record) for record in records]
            for name, records in snapshot.collections.items()
        }
        with self.session_factory() as session, session.begin():
            session.execute(
                insert(deletion_snapshot_table).values(
                    id=snapshot.id,
                    root_kind=str(snapshot.root_kind),
                    root_id=snapshot.root_id,
                    reason=snapshot.reason,
                    created_at=snapshot.created_at,
                    root_record=dict(snapshot.root_record),
                    collections=collections,
                )
            )
        log.info("Stored snapshot %s for %s %s", snapshot.id, snapshot.root_kind, snapshot.root_id)
        return snapshot.id

    def load(self, snapshot_id: str) -> DeletionSnapshot:
        with self.session_factory() as session:
            row = session.execute(
                select(deletion_snapshot_table).where(deletion_snapshot_table.c.id == snapshot_id)
            ).one_or_none()
        if row is None:
            raise NotFoundError("snapshot", snapshot_id)
        return _snapshot_from_row(row._mapping)  # noqa: SLF001

    def list_for(self, root_id: str) -> list[DeletionSnapshot]:
        """Return every snapshot taken for ``root_id``, newest first."""
        with self.session_factory() as session:
            rows = session.execute(
                select(deletion_snapshot_table)
                .where(deletion_snapshot_table.c.root_id == root_id)
                .order_by(deletion_snapshot_table.c.created_at.desc())
            ).all()
        return [_snapshot_from_row(row._mapping) for row in rows]  # noqa: SLF001


def _snapshot_from_row(row: Any) -> DeletionSnapshot:
    collections: dict[str, list[dict[str, Any]]] = row["collections"]
    return DeletionSnapshot(
        id=row["id"],
        root_kind=EntityKind(row["root_kind"]),
        root_id=row["root_id"],
        reason=row["reason"],
        root_record=row["root_record"],
        collections={name: tuple(records) for name, records in collections.items()},
        created_at=row["created_at"],
    )
