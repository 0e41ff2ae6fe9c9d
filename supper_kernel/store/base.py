"""
DocumentStore protocol.

Contract:
    The rollover engine and the notification collaborators only see this
    interface.  Implementations provide:

    1. a filtered scan returning every document in a collection whose
       field equals a value;
    2. an atomic multi-operation commit with a published ceiling on
       operations per commit;
    3. server-assigned timestamps (``SERVER_TIMESTAMP`` values resolved
       at commit time);
    4. partial-update semantics (only named fields change).

Non-goals:
    - No ordering guarantee on scan results.
    - No cross-commit transactions.
"""

from __future__ import annotations

from typing import Any, Iterator, Protocol, Sequence, runtime_checkable

from supper_kernel.store.types import (
    CommitResult,
    DocumentPath,
    DocumentSnapshot,
    WriteOperation,
)


@runtime_checkable
class DocumentStore(Protocol):

    @property
    def max_operations_per_commit(self) -> int: ...

    def scan(
        self, collection: str, field: str, value: Any,
    ) -> Iterator[DocumentSnapshot]:
        """Return a lazy, single-use sequence of matching documents.

        Raises:
            ScanFailedError: If the query cannot be executed.  Raised by the
                call itself, before any snapshot is produced.
        """
        ...

    def get(self, path: DocumentPath) -> DocumentSnapshot | None:
        """Return the document at ``path`` or None when it does not exist.

        Raises:
            DocumentReadError: If the read cannot be executed.
        """
        ...

    def commit(self, operations: Sequence[WriteOperation]) -> CommitResult:
        """Apply ``operations`` all-or-nothing.

        Raises:
            CommitLimitExceededError: More operations than the ceiling.
            CommitFailedError: The transaction was rejected; nothing applied.
        """
        ...
