"""
Configuration loader (``supper_config.loader``).

Responsibility
--------------
Loads the rollover YAML file and parses it into the frozen dataclasses
of ``supper_config.schema``.  Runtime callers go through
``supper_config.get_config()``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Invalid values (unknown preset, unsupported timezone, bad cron,
  safety margin below 2)  -> ``ValueError``.
"""

from __future__ import annotations

import dataclasses
import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from supper_batch.domain.periods import PeriodGranularity
from supper_batch.domain.plan import PRESETS, RolloverPlan
from supper_batch.domain.schedule import CronExpression
from supper_batch.domain.types import MAX_OPERATIONS_PER_ENTITY
from supper_config.schema import (
    BatchingConfig,
    NotificationConfig,
    PlanConfig,
    RolloverConfig,
    ScheduleConfig,
    StoreConfig,
)

_PLAN_FIELD_KEYS = {
    "name": "name",
    "granularity": "granularity",
    "entity_collection": "entity_collection",
    "active_field": "active_field",
    "rolled_fields": "rolled_fields",
    "carried_fields": "carried_fields",
    "archive_path": "archive_path_template",
    "period_field": "period_field",
    "reset_timestamp_field": "reset_timestamp_field",
    "archived_at_field": "archived_at_field",
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """Deterministic SHA-256 of the parsed YAML, for change detection."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_store(data: dict[str, Any]) -> StoreConfig:
    limit = int(data.get("max_operations_per_commit", 500))
    if limit <= 0:
        raise ValueError(f"store.max_operations_per_commit must be positive, got {limit}")
    return StoreConfig(
        database_url=data["database_url"],
        max_operations_per_commit=limit,
    )


def parse_batching(data: dict[str, Any]) -> BatchingConfig:
    margin = int(data.get("safety_margin", 10))
    if margin < MAX_OPERATIONS_PER_ENTITY:
        raise ValueError(
            f"batching.safety_margin must be >= {MAX_OPERATIONS_PER_ENTITY}, got {margin}"
        )
    limit = data.get("operation_limit")
    return BatchingConfig(
        safety_margin=margin,
        operation_limit=int(limit) if limit is not None else None,
    )


def parse_schedule(data: dict[str, Any]) -> ScheduleConfig:
    """
    Parse a ScheduleConfig.

    Raises:
        KeyError: if ``cron`` is missing.
        ValueError: on an invalid cron, a non-UTC timezone or negative retries.
    """
    cron = data["cron"]
    CronExpression.parse(cron)

    timezone = data.get("timezone", "UTC")
    if timezone != "UTC":
        raise ValueError(f"Only UTC schedules are supported, got {timezone!r}")

    retry_count = int(data.get("retry_count", 3))
    if retry_count < 0:
        raise ValueError(f"schedule.retry_count must be >= 0, got {retry_count}")

    return ScheduleConfig(
        cron=cron,
        timezone=timezone,
        retry_count=retry_count,
        backoff_seconds=float(data.get("backoff_seconds", 60.0)),
    )


def parse_plan(data: dict[str, Any]) -> RolloverPlan:
    """
    Parse a RolloverPlan from either a preset reference or full fields.

    A ``preset`` entry starts from the named preset; any plan keys given
    alongside it override the preset's values.

    Raises:
        KeyError: full definition missing a required key.
        ValueError: unknown preset or granularity, invalid plan.
    """
    overrides = {
        attr: data[key] for key, attr in _PLAN_FIELD_KEYS.items() if key in data
    }
    if "granularity" in overrides:
        overrides["granularity"] = PeriodGranularity(overrides["granularity"])

    preset_name = data.get("preset")
    if preset_name is not None:
        if preset_name not in PRESETS:
            raise ValueError(
                f"Unknown plan preset '{preset_name}'. Available: {sorted(PRESETS)}"
            )
        return dataclasses.replace(PRESETS[preset_name], **overrides)

    return RolloverPlan(
        name=data["name"],
        granularity=PeriodGranularity(data["granularity"]),
        rolled_fields=dict(data["rolled_fields"]),
        archive_path_template=data["archive_path"],
        period_field=data["period_field"],
        reset_timestamp_field=data["reset_timestamp_field"],
        entity_collection=data.get("entity_collection", "businesses"),
        active_field=data.get("active_field", "isActive"),
        carried_fields=dict(data.get("carried_fields") or {}),
        archived_at_field=data.get("archived_at_field", "archivedAt"),
    )


def parse_plan_config(data: dict[str, Any]) -> PlanConfig:
    schedule_data = data.get("schedule")
    return PlanConfig(
        plan=parse_plan(data),
        schedule=parse_schedule(schedule_data) if schedule_data else None,
        enabled=bool(data.get("enabled", True)),
    )


def parse_notifications(data: dict[str, Any]) -> NotificationConfig:
    return NotificationConfig(
        fcm_project_id=data.get("fcm_project_id"),
        timeout_seconds=float(data.get("timeout_seconds", 5.0)),
    )


def parse_config(data: dict[str, Any], database_url: str | None = None) -> RolloverConfig:
    """
    Parse a full RolloverConfig.

    Args:
        data: Parsed YAML mapping.
        database_url: Optional override for ``store.database_url``.

    Raises:
        KeyError: ``store`` section or ``store.database_url`` missing.
        ValueError: duplicate plan names or invalid sections.
    """
    store_data = dict(data["store"])
    if database_url:
        store_data["database_url"] = database_url

    plans = tuple(parse_plan_config(p) for p in data.get("plans", []))
    names = [p.plan.name for p in plans]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise ValueError(f"Duplicate plan names: {duplicates}")

    return RolloverConfig(
        store=parse_store(store_data),
        batching=parse_batching(data.get("batching") or {}),
        plans=plans,
        notifications=parse_notifications(data.get("notifications") or {}),
        scheduler_tick_seconds=float((data.get("scheduler") or {}).get("tick_seconds", 30.0)),
        checksum=compute_checksum(data),
    )
