"""
SqlDocumentStore -- DocumentStore on top of a SQLAlchemy session factory.

Contract:
    - ``scan()`` runs a single query per call and yields snapshots lazily.
    - ``commit()`` applies every operation in ONE transaction: either all
      rows change or none do.
    - ``SERVER_TIMESTAMP`` values are replaced by the injected clock's time
      (ISO-8601 string) when the commit runs.
    - Update of a missing document is skipped and reported in
      ``CommitResult.missing``; it does not fail the commit.

Architecture: supper_kernel/store.  The session factory and clock are
    injected; the store never reaches for a global engine.

Failure modes:
    - ScanFailedError on any SQLAlchemy error while querying.
    - CommitLimitExceededError before touching the database when the
      operation count is above ``max_operations_per_commit``.
    - CommitFailedError on any SQLAlchemy error while committing; the
      transaction is rolled back.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Iterator, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from supper_kernel.clock import Clock, SystemClock
from supper_kernel.exceptions import (
    CommitFailedError,
    CommitLimitExceededError,
    DocumentReadError,
    ScanFailedError,
)
from supper_kernel.logging_config import get_logger
from supper_kernel.store.models import DocumentModel
from supper_kernel.store.types import (
    SERVER_TIMESTAMP,
    CommitResult,
    DocumentPath,
    DocumentSnapshot,
    SetOperation,
    UpdateOperation,
    WriteOperation,
)

logger = get_logger("store.sql")

DEFAULT_MAX_OPERATIONS_PER_COMMIT = 500


def _resolve_sentinels(data: dict[str, Any], now: datetime) -> dict[str, Any]:
    stamp = now.isoformat()
    return {
        key: (stamp if value is SERVER_TIMESTAMP else value)
        for key, value in data.items()
    }


class SqlDocumentStore:
    """Document store backed by the ``documents`` table."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        clock: Clock | None = None,
        max_operations_per_commit: int = DEFAULT_MAX_OPERATIONS_PER_COMMIT,
    ):
        if max_operations_per_commit <= 0:
            raise ValueError(
                f"max_operations_per_commit must be positive, got {max_operations_per_commit}"
            )
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._max_operations = max_operations_per_commit

    @property
    def max_operations_per_commit(self) -> int:
        return self._max_operations

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def scan(
        self, collection: str, field: str, value: Any,
    ) -> Iterator[DocumentSnapshot]:
        """Query ``collection`` once and return matching snapshots lazily.

        The equality predicate is evaluated on the decoded JSON body so the
        same code runs on SQLite and PostgreSQL.
        """
        try:
            with self._session_factory() as session:
                rows = session.execute(
                    select(DocumentModel.collection, DocumentModel.document_id, DocumentModel.data)
                    .where(DocumentModel.collection == collection)
                ).all()
        except SQLAlchemyError as exc:
            logger.error(
                "store_scan_failed",
                extra={"collection": collection, "field": field},
            )
            raise ScanFailedError(collection, str(exc)) from exc

        logger.debug(
            "store_scan_executed",
            extra={"collection": collection, "field": field, "rows": len(rows)},
        )
        return self._iter_matching(rows, field, value)

    @staticmethod
    def _iter_matching(rows, field: str, value: Any) -> Iterator[DocumentSnapshot]:
        for row_collection, document_id, data in rows:
            data = data or {}
            if field in data and data[field] == value and type(data[field]) is type(value):
                yield DocumentSnapshot(
                    path=DocumentPath.of(row_collection, document_id),
                    data=dict(data),
                )

    def get(self, path: DocumentPath) -> DocumentSnapshot | None:
        try:
            with self._session_factory() as session:
                model = self._load(session, path)
                return model.to_snapshot() if model is not None else None
        except SQLAlchemyError as exc:
            raise DocumentReadError(str(path), str(exc)) from exc

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def commit(self, operations: Sequence[WriteOperation]) -> CommitResult:
        count = len(operations)
        if count > self._max_operations:
            raise CommitLimitExceededError(count, self._max_operations)

        now = self._clock.now()
        applied = 0
        missing: list[DocumentPath] = []

        session = self._session_factory()
        try:
            with session.begin():
                for op in operations:
                    if isinstance(op, SetOperation):
                        self._apply_set(session, op, now)
                        applied += 1
                    elif isinstance(op, UpdateOperation):
                        if self._apply_update(session, op, now):
                            applied += 1
                        else:
                            missing.append(op.path)
                    else:
                        raise TypeError(f"Unsupported write operation: {op!r}")
        except SQLAlchemyError as exc:
            logger.error(
                "store_commit_failed",
                extra={"operations": count, "error": str(exc)},
            )
            raise CommitFailedError(count, str(exc)) from exc
        finally:
            session.close()

        for path in missing:
            logger.warning(
                "store_update_target_missing",
                extra={"path": str(path)},
            )

        logger.debug(
            "store_commit_applied",
            extra={"operations": count, "applied": applied, "missing": len(missing)},
        )
        return CommitResult(
            operations=count,
            applied=applied,
            missing=tuple(missing),
            committed_at=now,
        )

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _load(session: Session, path: DocumentPath) -> DocumentModel | None:
        return session.execute(
            select(DocumentModel).where(
                DocumentModel.collection == path.collection,
                DocumentModel.document_id == path.document_id,
            )
        ).scalar_one_or_none()

    def _apply_set(self, session: Session, op: SetOperation, now: datetime) -> None:
        data = _resolve_sentinels(op.data, now)
        model = self._load(session, op.path)
        if model is None:
            session.add(
                DocumentModel(
                    collection=op.path.collection,
                    document_id=op.path.document_id,
                    data=data,
                )
            )
            # Later operations in the same commit may target this path.
            session.flush()
        else:
            model.data = data

    def _apply_update(self, session: Session, op: UpdateOperation, now: datetime) -> bool:
        model = self._load(session, op.path)
        if model is None:
            return False
        merged = dict(model.data or {})
        merged.update(_resolve_sentinels(op.fields, now))
        # Reassign so the JSON column registers the change.
        model.data = merged
        return True
