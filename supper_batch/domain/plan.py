"""
RolloverPlan -- what a rollover run closes, archives and resets.

Contract:
    One ``RolloverDriver`` runs any plan.  A plan names the period
    granularity, the entity collection and its active flag, the live
    counters that roll over (and the archive field each lands in), any
    lifetime counters carried into the archive unchanged, the archive path
    template and the field stamped on reset.

Architecture: supper_batch/domain.  ZERO I/O.

Invariants enforced:
    - At least one rolled field.
    - Archive template contains ``{entity_id}`` and ``{period_key}`` and
      renders to a valid document path.
    - A field is never both rolled and carried.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from supper_kernel.store.types import DocumentPath

from supper_batch.domain.periods import PeriodGranularity


@dataclass(frozen=True)
class RolloverPlan:
    name: str
    granularity: PeriodGranularity
    rolled_fields: Mapping[str, str]  # live field -> archive field
    archive_path_template: str
    period_field: str  # archive field holding the period key
    reset_timestamp_field: str
    entity_collection: str = "businesses"
    active_field: str = "isActive"
    carried_fields: Mapping[str, str] = field(default_factory=dict)
    archived_at_field: str = "archivedAt"

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("RolloverPlan.name is required")
        if not self.rolled_fields:
            raise ValueError(f"Plan '{self.name}' must roll at least one field")
        overlap = set(self.rolled_fields) & set(self.carried_fields)
        if overlap:
            raise ValueError(
                f"Plan '{self.name}' both rolls and carries {sorted(overlap)}"
            )
        for placeholder in ("{entity_id}", "{period_key}"):
            if placeholder not in self.archive_path_template:
                raise ValueError(
                    f"Plan '{self.name}' archive path must contain {placeholder}"
                )
        # Fails with InvalidDocumentPathError on a malformed template.
        self.archive_path("probe", "probe")

        object.__setattr__(self, "granularity", PeriodGranularity(self.granularity))
        object.__setattr__(
            self, "rolled_fields", MappingProxyType(dict(self.rolled_fields)),
        )
        object.__setattr__(
            self, "carried_fields", MappingProxyType(dict(self.carried_fields)),
        )

    def __hash__(self) -> int:
        return hash((self.name, self.granularity, self.archive_path_template))

    @property
    def counter_fields(self) -> tuple[str, ...]:
        """Every live field the engine reads from an entity."""
        return tuple(self.rolled_fields) + tuple(self.carried_fields)

    def archive_path(self, entity_id: str, period_key: str) -> DocumentPath:
        return DocumentPath(
            self.archive_path_template.format(
                entity_id=entity_id, period_key=period_key,
            )
        )

    def entity_path(self, entity_id: str) -> DocumentPath:
        return DocumentPath.of(self.entity_collection, entity_id)


# =============================================================================
# Presets
# =============================================================================

DAILY_BUSINESS_STATS = RolloverPlan(
    name="daily_business_stats",
    granularity=PeriodGranularity.DAILY,
    rolled_fields={"todayOrders": "orders", "todayEarnings": "earnings"},
    archive_path_template="business_daily_stats/{entity_id}/days/{period_key}",
    period_field="date",
    reset_timestamp_field="lastDailyReset",
)

MONTHLY_BUSINESS_STATS = RolloverPlan(
    name="monthly_business_stats",
    granularity=PeriodGranularity.MONTHLY,
    rolled_fields={"monthlyEarnings": "earnings"},
    carried_fields={
        "totalOrders": "totalOrders",
        "completedOrders": "completedOrders",
        "cancelledOrders": "cancelledOrders",
    },
    archive_path_template="business_monthly_stats/{entity_id}/months/{period_key}",
    period_field="month",
    reset_timestamp_field="lastMonthlyReset",
)

PRESETS: dict[str, RolloverPlan] = {
    DAILY_BUSINESS_STATS.name: DAILY_BUSINESS_STATS,
    MONTHLY_BUSINESS_STATS.name: MONTHLY_BUSINESS_STATS,
}
