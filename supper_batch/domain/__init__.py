"""
supper_batch.domain -- Pure types, plans and decisions for the rollover engine.

ZERO I/O.  All types are frozen dataclasses.
"""

from supper_batch.domain.decisions import decide_archive, decide_reset, has_activity
from supper_batch.domain.periods import PeriodGranularity, previous_period_key
from supper_batch.domain.plan import (
    DAILY_BUSINESS_STATS,
    MONTHLY_BUSINESS_STATS,
    PRESETS,
    RolloverPlan,
)
from supper_batch.domain.schedule import CronExpression
from supper_batch.domain.types import (
    MAX_OPERATIONS_PER_ENTITY,
    ArchiveWrite,
    EntitySnapshot,
    ResetWrite,
    RolloverErrorKind,
    RolloverResult,
    RolloverState,
    RolloverSummary,
)

__all__ = [
    "DAILY_BUSINESS_STATS",
    "MAX_OPERATIONS_PER_ENTITY",
    "MONTHLY_BUSINESS_STATS",
    "PRESETS",
    "ArchiveWrite",
    "CronExpression",
    "EntitySnapshot",
    "PeriodGranularity",
    "ResetWrite",
    "RolloverErrorKind",
    "RolloverPlan",
    "RolloverResult",
    "RolloverState",
    "RolloverSummary",
    "decide_archive",
    "decide_reset",
    "has_activity",
    "previous_period_key",
]
