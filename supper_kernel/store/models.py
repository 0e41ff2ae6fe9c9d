"""
ORM model backing the document store.

Contract:
    One row per document.  ``collection`` holds the full collection path
    (``businesses``, ``business_daily_stats/biz_1/days``) and
    ``document_id`` the last path segment; the pair is UNIQUE, so a
    document path maps to at most one row.

Architecture: supper_kernel/store.  Imports from supper_kernel.db.base only.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import JSON, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from supper_kernel.db.base import TrackedBase
from supper_kernel.store.types import DocumentPath, DocumentSnapshot


class DocumentModel(TrackedBase):
    """Persistent document (collection path + id + JSON body)."""

    __tablename__ = "documents"

    __table_args__ = (
        UniqueConstraint("collection", "document_id", name="uq_documents_path"),
        Index("ix_documents_collection", "collection"),
    )

    collection: Mapped[str] = mapped_column(String(500), nullable=False)
    document_id: Mapped[str] = mapped_column(String(200), nullable=False)
    data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    @property
    def path(self) -> DocumentPath:
        return DocumentPath.of(self.collection, self.document_id)

    def to_snapshot(self) -> DocumentSnapshot:
        return DocumentSnapshot(path=self.path, data=dict(self.data or {}))
