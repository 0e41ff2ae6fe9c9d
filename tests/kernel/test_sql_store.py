"""
Tests for supper_kernel.store -- paths, scans, atomic commits.

Uses in-memory SQLite with the real DocumentModel.
"""

import pytest
from sqlalchemy.exc import OperationalError

from supper_kernel.exceptions import (
    CommitFailedError,
    CommitLimitExceededError,
    DocumentReadError,
    InvalidDocumentPathError,
    ScanFailedError,
)
from supper_kernel.store import (
    SERVER_TIMESTAMP,
    DocumentPath,
    DocumentStore,
    SetOperation,
    SqlDocumentStore,
    UpdateOperation,
)


# =============================================================================
# DocumentPath
# =============================================================================


class TestDocumentPath:
    def test_top_level_document(self):
        path = DocumentPath.of("businesses", "biz_1")
        assert path.collection == "businesses"
        assert path.document_id == "biz_1"
        assert str(path) == "businesses/biz_1"

    def test_nested_document(self):
        path = DocumentPath("business_daily_stats/biz_1/days/2024-05-01")
        assert path.collection == "business_daily_stats/biz_1/days"
        assert path.document_id == "2024-05-01"

    def test_child(self):
        parent = DocumentPath.of("users", "u1")
        assert parent.child("inquiries", "i1") == DocumentPath("users/u1/inquiries/i1")

    def test_odd_segment_count_rejected(self):
        with pytest.raises(InvalidDocumentPathError):
            DocumentPath("businesses")

    def test_empty_segment_rejected(self):
        with pytest.raises(InvalidDocumentPathError):
            DocumentPath("businesses//x/y")

    def test_server_timestamp_is_singleton(self):
        from supper_kernel.store.types import _ServerTimestamp

        assert _ServerTimestamp() is SERVER_TIMESTAMP


# =============================================================================
# Scan
# =============================================================================


class TestScan:
    def test_satisfies_protocol(self, store):
        assert isinstance(store, DocumentStore)

    def test_returns_matching_documents_only(self, store, seed):
        seed("businesses", "a", {"isActive": True})
        seed("businesses", "b", {"isActive": False})
        seed("businesses", "c", {"name": "no flag"})
        seed("users", "d", {"isActive": True})

        ids = sorted(doc.id for doc in store.scan("businesses", "isActive", True))
        assert ids == ["a"]

    def test_equality_is_type_strict(self, store, seed):
        seed("businesses", "one", {"isActive": 1})
        seed("businesses", "yes", {"isActive": True})

        ids = [doc.id for doc in store.scan("businesses", "isActive", True)]
        assert ids == ["yes"]

    def test_scan_is_single_use(self, store, seed):
        seed("businesses", "a", {"isActive": True})
        documents = store.scan("businesses", "isActive", True)
        assert len(list(documents)) == 1
        assert list(documents) == []

    def test_query_failure_raises_scan_failed(self, clock):
        def broken_factory():
            raise OperationalError("SELECT", {}, Exception("database is locked"))

        broken = SqlDocumentStore(broken_factory, clock=clock)
        with pytest.raises(ScanFailedError) as exc_info:
            broken.scan("businesses", "isActive", True)
        assert exc_info.value.collection == "businesses"

    def test_read_failure_raises_document_read_error(self, clock):
        def broken_factory():
            raise OperationalError("SELECT", {}, Exception("disk I/O error"))

        broken = SqlDocumentStore(broken_factory, clock=clock)
        with pytest.raises(DocumentReadError):
            broken.get(DocumentPath.of("users", "u1"))


# =============================================================================
# Commit
# =============================================================================


class TestCommit:
    def test_set_creates_and_overwrites(self, store):
        path = DocumentPath("business_daily_stats/biz_1/days/2024-05-01")
        store.commit([SetOperation(path=path, data={"orders": 5, "extra": "x"})])
        store.commit([SetOperation(path=path, data={"orders": 7})])

        assert store.get(path).data == {"orders": 7}

    def test_update_merges_fields(self, store, seed):
        path = seed("businesses", "biz_1", {"isActive": True, "todayOrders": 5, "name": "A"})
        store.commit([UpdateOperation(path=path, fields={"todayOrders": 0})])

        assert store.get(path).data == {"isActive": True, "todayOrders": 0, "name": "A"}

    def test_server_timestamp_resolved_from_clock(self, store, seed, clock):
        path = seed("businesses", "biz_1", {"isActive": True})
        store.commit([UpdateOperation(path=path, fields={"lastDailyReset": SERVER_TIMESTAMP})])

        assert store.get(path).data["lastDailyReset"] == clock.now().isoformat()

    def test_update_of_missing_document_is_reported_not_fatal(self, store, seed):
        present = seed("businesses", "here", {"todayOrders": 3})
        gone = DocumentPath.of("businesses", "gone")

        result = store.commit([
            UpdateOperation(path=gone, fields={"todayOrders": 0}),
            UpdateOperation(path=present, fields={"todayOrders": 0}),
        ])

        assert result.operations == 2
        assert result.applied == 1
        assert result.missing == (gone,)
        assert store.get(gone) is None
        assert store.get(present).data["todayOrders"] == 0

    def test_set_then_update_in_same_commit(self, store):
        path = DocumentPath.of("businesses", "new")
        store.commit([
            SetOperation(path=path, data={"todayOrders": 4}),
            UpdateOperation(path=path, fields={"todayOrders": 0}),
        ])
        assert store.get(path).data == {"todayOrders": 0}

    def test_over_ceiling_rejected_before_any_write(self, session_factory, clock):
        small = SqlDocumentStore(session_factory, clock=clock, max_operations_per_commit=2)
        ops = [
            SetOperation(path=DocumentPath.of("businesses", f"b{i}"), data={})
            for i in range(3)
        ]
        with pytest.raises(CommitLimitExceededError) as exc_info:
            small.commit(ops)
        assert exc_info.value.operation_count == 3
        assert exc_info.value.limit == 2
        assert small.get(DocumentPath.of("businesses", "b0")) is None

    def test_commit_is_all_or_nothing(self, store, seed, monkeypatch):
        path = seed("businesses", "biz_1", {"todayOrders": 5})
        original = SqlDocumentStore._apply_update

        def failing_update(self, session, op, now):
            if op.path.document_id == "boom":
                raise OperationalError("UPDATE", {}, Exception("constraint"))
            return original(self, session, op, now)

        monkeypatch.setattr(SqlDocumentStore, "_apply_update", failing_update)

        with pytest.raises(CommitFailedError) as exc_info:
            store.commit([
                UpdateOperation(path=path, fields={"todayOrders": 0}),
                UpdateOperation(path=DocumentPath.of("businesses", "boom"), fields={}),
            ])
        assert exc_info.value.operation_count == 2
        assert store.get(path).data["todayOrders"] == 5

    def test_non_positive_ceiling_rejected(self, session_factory):
        with pytest.raises(ValueError):
            SqlDocumentStore(session_factory, max_operations_per_commit=0)

    def test_missing_target_logged(self, store, captured_logs):
        store.commit([UpdateOperation(path=DocumentPath.of("businesses", "gone"), fields={})])
        logs = captured_logs()
        missing = [r for r in logs if r["message"] == "store_update_target_missing"]
        assert missing and missing[0]["path"] == "businesses/gone"
        assert missing[0]["level"] == "WARNING"
