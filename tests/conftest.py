"""
Pytest fixtures for the supper test suite.

Provides:
- In-memory SQLite engine with every table created
- A SqlDocumentStore over that engine, pinned to a DeterministicClock
- Seeding helpers for business documents
- Structured log capture
"""

import json
import logging
from datetime import datetime, timezone
from io import StringIO

import pytest

from supper_kernel.clock import DeterministicClock
from supper_kernel.db.engine import (
    create_session_factory,
    create_store_engine,
    create_tables,
    drop_tables,
)
from supper_kernel.exceptions import CommitFailedError, ScanFailedError
from supper_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from supper_kernel.store import DocumentPath, SetOperation, SqlDocumentStore

import supper_batch.models  # noqa: F401  (registers rollover_runs)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG, stream=StringIO())
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture supper logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, driver):
            driver.run()
            logs = captured_logs()
            assert any(r["message"] == "rollover_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("supper")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def engine():
    eng = create_store_engine("sqlite://")
    create_tables(eng)
    yield eng
    drop_tables(eng)
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def clock():
    return DeterministicClock(datetime(2024, 5, 2, 0, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def store(session_factory, clock):
    return SqlDocumentStore(session_factory, clock=clock)


@pytest.fixture
def seed(store):
    """
    Write documents directly through the store.

    Usage::

        seed("businesses", "biz_1", {"isActive": True, "todayOrders": 5})
    """

    def _seed(collection: str, document_id: str, data: dict) -> DocumentPath:
        path = DocumentPath.of(collection, document_id)
        store.commit([SetOperation(path=path, data=data)])
        return path

    return _seed


@pytest.fixture
def seed_businesses(store):
    """Bulk-insert businesses in chunks that respect the commit ceiling."""

    def _seed(businesses: dict[str, dict]) -> None:
        ops = [
            SetOperation(path=DocumentPath.of("businesses", bid), data=data)
            for bid, data in businesses.items()
        ]
        limit = store.max_operations_per_commit
        for i in range(0, len(ops), limit):
            store.commit(ops[i:i + limit])

    return _seed


# =============================================================================
# Failure injection
# =============================================================================


class FaultyStore:
    """
    DocumentStore wrapper that records commits and injects failures.

    ``fail_on_commits`` holds 1-based commit numbers that raise
    CommitFailedError instead of reaching the wrapped store.
    ``extra_documents`` are appended to every scan result.
    ``on_scan`` is called before each scan (e.g. to advance a clock).
    """

    def __init__(
        self, inner, fail_scan=False, fail_on_commits=(), extra_documents=(), on_scan=None,
    ):
        self.inner = inner
        self.fail_scan = fail_scan
        self.fail_on_commits = set(fail_on_commits)
        self.extra_documents = tuple(extra_documents)
        self.on_scan = on_scan
        self.commit_sizes: list[int] = []
        self.commits: list[tuple] = []
        self.commit_attempts = 0

    @property
    def max_operations_per_commit(self) -> int:
        return self.inner.max_operations_per_commit

    def scan(self, collection, field, value):
        if self.on_scan is not None:
            self.on_scan()
        if self.fail_scan:
            raise ScanFailedError(collection, "backend unavailable")
        documents = list(self.inner.scan(collection, field, value))
        return iter(documents + list(self.extra_documents))

    def get(self, path):
        return self.inner.get(path)

    def commit(self, operations):
        self.commit_attempts += 1
        if self.commit_attempts in self.fail_on_commits:
            raise CommitFailedError(len(operations), "deadline exceeded")
        result = self.inner.commit(operations)
        self.commits.append(tuple(operations))
        self.commit_sizes.append(len(operations))
        return result


@pytest.fixture
def faulty_store(store):
    """Factory wrapping the SQL store: ``faulty_store(fail_on_commits={2})``."""

    def _make(**kwargs) -> FaultyStore:
        return FaultyStore(store, **kwargs)

    return _make
