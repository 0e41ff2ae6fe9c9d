"""
EntitySource -- read-only scan of the entities a plan rolls over.

Contract:
    ``open()`` performs one filtered scan (``active_field == True``) and
    returns a lazy, finite, single-use sequence of stored documents.
    Calling ``open()`` again scans again and may see a different set.
    No ordering is guaranteed or relied upon.

Failure modes:
    - ScanFailedError propagates from ``open()`` before any document is
      produced; the run is then failed and retried as a whole.
"""

from __future__ import annotations

from typing import Iterator

from supper_kernel.logging_config import get_logger
from supper_kernel.store.base import DocumentStore
from supper_kernel.store.types import DocumentSnapshot

from supper_batch.domain.plan import RolloverPlan

logger = get_logger("batch.source")


class EntitySource:

    def __init__(self, store: DocumentStore, plan: RolloverPlan):
        self._store = store
        self._plan = plan

    def open(self) -> Iterator[DocumentSnapshot]:
        documents = self._store.scan(
            self._plan.entity_collection, self._plan.active_field, True,
        )
        logger.info(
            "entity_scan_opened",
            extra={
                "collection": self._plan.entity_collection,
                "filter": f"{self._plan.active_field} == true",
            },
        )
        return iter(documents)
