"""
supper_config -- single entrypoint for rollover configuration.

Responsibility:
    ``get_config()`` is the way runtime code obtains configuration.  It
    reads the YAML file (an explicit path, ``SUPPER_CONFIG``, or the
    packaged default), applies the ``SUPPER_DATABASE_URL`` override and
    returns a frozen ``RolloverConfig``.

Failure modes:
    - ``FileNotFoundError`` -- the requested file does not exist.
    - ``KeyError`` / ``ValueError`` -- schema validation failures.

Every successful load emits a ``config_loaded`` log entry with the file,
checksum and plan names.
"""

from __future__ import annotations

import os
from pathlib import Path

from supper_kernel.logging_config import get_logger

from supper_config.loader import load_yaml_file, parse_config
from supper_config.schema import (
    BatchingConfig,
    NotificationConfig,
    PlanConfig,
    RolloverConfig,
    ScheduleConfig,
    StoreConfig,
)

_logger = get_logger("config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults" / "rollover.yaml"

CONFIG_ENV_VAR = "SUPPER_CONFIG"
DATABASE_URL_ENV_VAR = "SUPPER_DATABASE_URL"


def get_config(path: str | Path | None = None) -> RolloverConfig:
    """Load, validate and return the active rollover configuration."""
    resolved = Path(path or os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH)
    data = load_yaml_file(resolved)
    config = parse_config(data, database_url=os.environ.get(DATABASE_URL_ENV_VAR))

    _logger.info(
        "config_loaded",
        extra={
            "config_path": str(resolved),
            "checksum": config.checksum,
            "plans": [p.plan.name for p in config.plans],
        },
    )
    return config


__all__ = [
    "CONFIG_ENV_VAR",
    "DATABASE_URL_ENV_VAR",
    "DEFAULT_CONFIG_PATH",
    "BatchingConfig",
    "NotificationConfig",
    "PlanConfig",
    "RolloverConfig",
    "ScheduleConfig",
    "StoreConfig",
    "get_config",
]
