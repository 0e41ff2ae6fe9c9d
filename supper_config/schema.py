"""
Rollover configuration schema.

Frozen dataclasses parsed from YAML by ``supper_config.loader``.  These
are source artifacts (what an operator writes); the orchestrator turns
them into wired drivers and schedule entries.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from supper_batch.domain.plan import RolloverPlan

# ---------------------------------------------------------------------------
# Store / batching
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StoreConfig:
    database_url: str
    max_operations_per_commit: int = 500


@dataclass(frozen=True)
class BatchingConfig:
    safety_margin: int = 10
    operation_limit: int | None = None  # None = the store's ceiling


# ---------------------------------------------------------------------------
# Plans and schedules
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ScheduleConfig:
    """When a plan runs and how often the scheduler retries it."""

    cron: str
    timezone: str = "UTC"
    retry_count: int = 3
    backoff_seconds: float = 60.0


@dataclass(frozen=True)
class PlanConfig:
    plan: RolloverPlan
    schedule: ScheduleConfig | None = None
    enabled: bool = True


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NotificationConfig:
    fcm_project_id: str | None = None
    timeout_seconds: float = 5.0


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RolloverConfig:
    store: StoreConfig
    batching: BatchingConfig = field(default_factory=BatchingConfig)
    plans: tuple[PlanConfig, ...] = ()
    notifications: NotificationConfig = field(default_factory=NotificationConfig)
    scheduler_tick_seconds: float = 30.0
    checksum: str = ""

    def plan(self, name: str) -> PlanConfig:
        for plan_config in self.plans:
            if plan_config.plan.name == name:
                return plan_config
        raise KeyError(
            f"No plan named '{name}'. Available: {sorted(p.plan.name for p in self.plans)}"
        )
