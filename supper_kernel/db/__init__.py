"""supper_kernel.db -- ORM base classes and engine helpers."""

from supper_kernel.db.base import Base, TrackedBase, UUIDString
from supper_kernel.db.engine import (
    create_session_factory,
    create_store_engine,
    create_tables,
    drop_tables,
)

__all__ = [
    "Base",
    "TrackedBase",
    "UUIDString",
    "create_session_factory",
    "create_store_engine",
    "create_tables",
    "drop_tables",
]
