"""
supper_batch.domain.types -- Pure frozen dataclasses for the rollover engine.

ZERO I/O.  Entity snapshots, run summaries and run results are frozen
dataclasses with enum status fields and tuples for collections.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from numbers import Real
from types import MappingProxyType
from typing import Any, Mapping

from supper_kernel.exceptions import MalformedSnapshotError, RolloverFailedError
from supper_kernel.store.types import DocumentSnapshot, SetOperation, UpdateOperation

# An archive write overwrites the whole period document; a reset write is
# a partial update on the live entity.
ArchiveWrite = SetOperation
ResetWrite = UpdateOperation

# archive + reset
MAX_OPERATIONS_PER_ENTITY = 2


# =============================================================================
# Status enums
# =============================================================================


class RolloverState(str, Enum):
    """Driver lifecycle state."""

    INIT = "init"  # Computing the period key
    SCANNING = "scanning"  # Opening the entity source
    DECIDING = "deciding"  # Archive/reset decisions for one entity
    ACCUMULATING = "accumulating"  # Appending writes, flushing at threshold
    FINAL_FLUSH = "final_flush"  # Committing the remainder
    DONE = "done"
    FAILED = "failed"


class RolloverErrorKind(str, Enum):
    """Why a run ended in FAILED.  All kinds are retryable by re-running."""

    SCAN_FAILED = "scan_failed"
    COMMIT_FAILED = "commit_failed"
    UNEXPECTED = "unexpected"


# =============================================================================
# Entity snapshot
# =============================================================================


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


@dataclass(frozen=True)
class EntitySnapshot:
    """Immutable view of one entity at scan time.

    ``counters`` is a read-only mapping of every numeric field the plan
    reads (rolled and carried); fields absent from the document read as 0.
    """

    id: str
    is_active: bool
    counters: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "counters", MappingProxyType(dict(self.counters)))

    def counter(self, name: str) -> Any:
        return self.counters.get(name, 0)

    @classmethod
    def from_document(
        cls,
        document: DocumentSnapshot,
        counter_fields: tuple[str, ...],
        active_field: str = "isActive",
    ) -> EntitySnapshot:
        """Build a snapshot from a stored document.

        Raises:
            MalformedSnapshotError: blank id, or a counter that is present
                but not a number (None counts as absent).
        """
        entity_id = document.id
        if not isinstance(entity_id, str) or not entity_id.strip():
            raise MalformedSnapshotError(entity_id, "missing entity id")

        counters: dict[str, Any] = {}
        for name in counter_fields:
            value = document.data.get(name)
            if value is None:
                counters[name] = 0
            elif _is_number(value):
                counters[name] = value
            else:
                raise MalformedSnapshotError(
                    entity_id, f"counter '{name}' is not numeric: {value!r}"
                )

        return cls(
            id=entity_id,
            is_active=document.data.get(active_field) is True,
            counters=counters,
        )


# =============================================================================
# Run DTOs
# =============================================================================


@dataclass(frozen=True)
class RolloverSummary:
    """Counts reported by a run (complete on DONE, progress-so-far on FAILED)."""

    entities_processed: int = 0
    archives_written: int = 0
    entities_skipped: int = 0
    batches_committed: int = 0
    operations_committed: int = 0
    missing_targets: int = 0


@dataclass(frozen=True)
class RolloverResult:
    """Outcome of one ``RolloverDriver.run()``.

    Either ``status == DONE`` with a complete summary, or ``status ==
    FAILED`` with ``error_kind`` / ``error_message`` set.  The driver never
    retries; the caller decides.
    """

    run_id: str
    plan: str
    status: RolloverState
    period_key: str | None = None
    summary: RolloverSummary = field(default_factory=RolloverSummary)
    error_kind: RolloverErrorKind | None = None
    error_message: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.status == RolloverState.DONE

    def raise_for_status(self) -> RolloverResult:
        """Return self when DONE, raise RolloverFailedError otherwise."""
        if self.ok:
            return self
        raise RolloverFailedError(
            plan=self.plan,
            period_key=self.period_key,
            kind=self.error_kind.value if self.error_kind else "unknown",
            reason=self.error_message or "",
        )
