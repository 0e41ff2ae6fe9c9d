"""
supper_batch.models -- ORM models for rollover run history.
"""

from supper_batch.models.run import RolloverRunModel

__all__ = ["RolloverRunModel"]
