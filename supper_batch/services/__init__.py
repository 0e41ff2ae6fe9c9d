"""
supper_batch.services -- Entity source, accumulator, driver, history, scheduler.
"""

from supper_batch.services.accumulator import DEFAULT_SAFETY_MARGIN, BatchAccumulator
from supper_batch.services.driver import RolloverDriver
from supper_batch.services.history import RunHistory
from supper_batch.services.scheduler import RolloverScheduler, ScheduleEntry
from supper_batch.services.source import EntitySource

__all__ = [
    "DEFAULT_SAFETY_MARGIN",
    "BatchAccumulator",
    "EntitySource",
    "RolloverDriver",
    "RolloverScheduler",
    "RunHistory",
    "ScheduleEntry",
]
