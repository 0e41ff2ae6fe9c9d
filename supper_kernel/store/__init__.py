"""
supper_kernel.store -- Document store interface and SQL implementation.
"""

from supper_kernel.store.base import DocumentStore
from supper_kernel.store.sql_store import (
    DEFAULT_MAX_OPERATIONS_PER_COMMIT,
    SqlDocumentStore,
)
from supper_kernel.store.types import (
    SERVER_TIMESTAMP,
    CommitResult,
    DocumentPath,
    DocumentSnapshot,
    SetOperation,
    UpdateOperation,
    WriteOperation,
)

__all__ = [
    "DEFAULT_MAX_OPERATIONS_PER_COMMIT",
    "SERVER_TIMESTAMP",
    "CommitResult",
    "DocumentPath",
    "DocumentSnapshot",
    "DocumentStore",
    "SetOperation",
    "SqlDocumentStore",
    "UpdateOperation",
    "WriteOperation",
]
