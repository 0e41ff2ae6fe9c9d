"""
supper_kernel.store.types -- Pure value types for the document store.

ZERO I/O.  Paths, write operations and snapshots are frozen dataclasses
so that a batch of pending operations can be inspected, compared and
replayed without touching the database.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Union

from supper_kernel.exceptions import InvalidDocumentPathError


class _ServerTimestamp:
    """Sentinel resolved to the store clock's time when a commit applies."""

    _instance: _ServerTimestamp | None = None

    def __new__(cls) -> _ServerTimestamp:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"

    def __reduce__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


# =============================================================================
# Paths
# =============================================================================


@dataclass(frozen=True)
class DocumentPath:
    """Slash-separated document path: ``collection/doc[/collection/doc...]``.

    The last two segments name the containing collection path and the
    document id, e.g. ``business_daily_stats/biz_1/days/2024-05-01`` lives
    in collection ``business_daily_stats/biz_1/days`` with id ``2024-05-01``.
    """

    value: str

    def __post_init__(self) -> None:
        segments = self.value.split("/")
        if any(not s.strip() for s in segments):
            raise InvalidDocumentPathError(self.value, "empty segment")
        if len(segments) % 2 != 0:
            raise InvalidDocumentPathError(
                self.value, "expected an even number of segments"
            )

    @classmethod
    def of(cls, collection: str, document_id: str) -> DocumentPath:
        return cls(f"{collection}/{document_id}")

    @property
    def collection(self) -> str:
        return self.value.rsplit("/", 1)[0]

    @property
    def document_id(self) -> str:
        return self.value.rsplit("/", 1)[1]

    def child(self, collection: str, document_id: str) -> DocumentPath:
        return DocumentPath(f"{self.value}/{collection}/{document_id}")

    def __str__(self) -> str:
        return self.value


# =============================================================================
# Write operations
# =============================================================================


@dataclass(frozen=True)
class SetOperation:
    """Full-document overwrite.  Creates the document when missing.

    Re-applying the same operation leaves the same document behind, which
    is what makes archive writes safe to replay.
    """

    path: DocumentPath
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def kind(self) -> str:
        return "set"


@dataclass(frozen=True)
class UpdateOperation:
    """Partial update of named fields on an existing document."""

    path: DocumentPath
    fields: dict[str, Any] = field(default_factory=dict)

    @property
    def kind(self) -> str:
        return "update"


WriteOperation = Union[SetOperation, UpdateOperation]


# =============================================================================
# Read / commit results
# =============================================================================


@dataclass(frozen=True)
class DocumentSnapshot:
    """Immutable view of one stored document at read time."""

    path: DocumentPath
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def id(self) -> str:
        return self.path.document_id


@dataclass(frozen=True)
class CommitResult:
    """Outcome of one atomic commit.

    ``missing`` lists update targets that no longer existed; those
    operations were skipped without failing the commit.
    """

    operations: int
    applied: int
    missing: tuple[DocumentPath, ...] = ()
    committed_at: datetime | None = None
