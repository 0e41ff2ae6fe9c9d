"""
Pure archive and reset decisions.

Contract:
    ``decide_archive(entity, period_key, plan)`` returns the archive write
    for the closed period, or None when every rolled counter is exactly
    zero.  ``decide_reset(entity, plan)`` always returns the partial
    update that zeroes the rolled counters and stamps the reset time.

Architecture: supper_batch/domain.  ZERO I/O.  Server timestamps are
    placeholders (``SERVER_TIMESTAMP``) that the store fills in at commit.
"""

from __future__ import annotations

from supper_kernel.store.types import SERVER_TIMESTAMP

from supper_batch.domain.plan import RolloverPlan
from supper_batch.domain.types import ArchiveWrite, EntitySnapshot, ResetWrite


def has_activity(entity: EntitySnapshot, plan: RolloverPlan) -> bool:
    return any(entity.counter(live) != 0 for live in plan.rolled_fields)


def decide_archive(
    entity: EntitySnapshot,
    period_key: str,
    plan: RolloverPlan,
) -> ArchiveWrite | None:
    """Archive record for ``period_key``, or None for a zero-activity entity.

    The document is written with overwrite semantics at
    ``plan.archive_path(entity.id, period_key)``, so replaying the same
    decision leaves the same record behind.
    """
    if not has_activity(entity, plan):
        return None

    data = {plan.period_field: period_key}
    for live, archived in plan.rolled_fields.items():
        data[archived] = entity.counter(live)
    for live, archived in plan.carried_fields.items():
        data[archived] = entity.counter(live)
    data[plan.archived_at_field] = SERVER_TIMESTAMP

    return ArchiveWrite(path=plan.archive_path(entity.id, period_key), data=data)


def decide_reset(entity: EntitySnapshot, plan: RolloverPlan) -> ResetWrite:
    fields = {live: 0 for live in plan.rolled_fields}
    fields[plan.reset_timestamp_field] = SERVER_TIMESTAMP
    return ResetWrite(path=plan.entity_path(entity.id), fields=fields)
