"""
Typed exception hierarchy for the supper services.

Every error carries a machine-readable ``code`` class attribute and its
structured data as instance attributes, so callers catch by type and
read fields instead of parsing messages::

    try:
        store.commit(operations)
    except CommitLimitExceededError as e:
        logger.error("batch_too_large", extra={"count": e.operation_count})

Hierarchy:

    SupperError (base)
    |
    +-- StoreError
    |   +-- ScanFailedError
    |   +-- CommitFailedError
    |   +-- CommitLimitExceededError
    |   +-- DocumentReadError
    |   +-- InvalidDocumentPathError
    |
    +-- RolloverError
    |   +-- MalformedSnapshotError
    |   +-- InvalidBatchLimitsError
    |   +-- RolloverFailedError
    |
    +-- NotificationError
        +-- PushSendError
"""


class SupperError(Exception):
    """Base exception for all supper errors."""

    code: str = "SUPPER_ERROR"


# Store


class StoreError(SupperError):
    """Base exception for document store failures."""

    code: str = "STORE_ERROR"


class ScanFailedError(StoreError):
    """A filtered collection scan could not be executed."""

    code: str = "SCAN_FAILED"

    def __init__(self, collection: str, reason: str):
        self.collection = collection
        self.reason = reason
        super().__init__(f"Scan of collection '{collection}' failed: {reason}")


class CommitFailedError(StoreError):
    """An atomic multi-operation commit was rejected; nothing was applied."""

    code: str = "COMMIT_FAILED"

    def __init__(self, operation_count: int, reason: str):
        self.operation_count = operation_count
        self.reason = reason
        super().__init__(
            f"Commit of {operation_count} operation(s) failed: {reason}"
        )


class CommitLimitExceededError(StoreError):
    """A commit or pending batch would exceed the per-commit ceiling."""

    code: str = "COMMIT_LIMIT_EXCEEDED"

    def __init__(self, operation_count: int, limit: int):
        self.operation_count = operation_count
        self.limit = limit
        super().__init__(
            f"{operation_count} operation(s) exceed the per-commit limit of {limit}"
        )


class DocumentReadError(StoreError):
    """A single-document read could not be executed."""

    code: str = "DOCUMENT_READ_FAILED"

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Read of '{path}' failed: {reason}")


class InvalidDocumentPathError(StoreError):
    """A document path does not have the collection/document shape."""

    code: str = "INVALID_DOCUMENT_PATH"

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid document path '{path}': {reason}")


# Rollover


class RolloverError(SupperError):
    """Base exception for rollover engine errors."""

    code: str = "ROLLOVER_ERROR"


class MalformedSnapshotError(RolloverError):
    """An entity snapshot cannot be rolled over (missing id, bad counter)."""

    code: str = "MALFORMED_SNAPSHOT"

    def __init__(self, entity_id: str | None, reason: str):
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(f"Entity {entity_id!r} is malformed: {reason}")


class InvalidBatchLimitsError(RolloverError):
    """Operation limit / safety margin combination cannot bound a batch."""

    code: str = "INVALID_BATCH_LIMITS"

    def __init__(self, operation_limit: int, safety_margin: int, reason: str):
        self.operation_limit = operation_limit
        self.safety_margin = safety_margin
        self.reason = reason
        super().__init__(
            f"Invalid batch limits (limit={operation_limit}, "
            f"margin={safety_margin}): {reason}"
        )


class RolloverFailedError(RolloverError):
    """A rollover run ended in FAILED; raised by ``raise_for_status()``."""

    code: str = "ROLLOVER_FAILED"

    def __init__(self, plan: str, period_key: str | None, kind: str, reason: str):
        self.plan = plan
        self.period_key = period_key
        self.kind = kind
        self.reason = reason
        super().__init__(
            f"Rollover '{plan}' for period {period_key} failed ({kind}): {reason}"
        )


# Notifications


class NotificationError(SupperError):
    """Base exception for push notification errors."""

    code: str = "NOTIFICATION_ERROR"


class PushSendError(NotificationError):
    """The push provider rejected or failed to deliver a message."""

    code: str = "PUSH_SEND_FAILED"

    INVALID_TOKEN_CODES = frozenset({"UNREGISTERED", "INVALID_ARGUMENT"})

    def __init__(self, provider_code: str, reason: str, status_code: int | None = None):
        self.provider_code = provider_code
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"Push send failed ({provider_code}): {reason}")

    @property
    def is_invalid_token(self) -> bool:
        return self.provider_code in self.INVALID_TOKEN_CODES
