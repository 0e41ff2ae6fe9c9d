"""
UserDirectory -- profile lookups against the ``users`` collection.

Lookups never raise: a failed read is logged and the caller gets the
degraded value (``None`` for token and photo, ``"Someone"`` for names).
"""

from __future__ import annotations

from typing import Any

from supper_kernel.exceptions import StoreError
from supper_kernel.logging_config import get_logger
from supper_kernel.store.base import DocumentStore
from supper_kernel.store.types import DocumentPath

logger = get_logger("notify.directory")

USERS_COLLECTION = "users"
UNKNOWN_NAME = "Someone"


class UserDirectory:

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    def _profile(self, user_id: str | None, lookup: str) -> dict[str, Any] | None:
        if not user_id:
            return None
        try:
            snapshot = self._store.get(DocumentPath.of(USERS_COLLECTION, user_id))
        except StoreError as exc:
            logger.error(
                "user_lookup_failed",
                extra={"user_id": user_id, "lookup": lookup, "error": str(exc)},
            )
            return None
        return snapshot.data if snapshot is not None else None

    def fcm_token(self, user_id: str | None) -> str | None:
        profile = self._profile(user_id, "fcm_token")
        token = profile.get("fcmToken") if profile else None
        if not token:
            logger.debug("user_has_no_token", extra={"user_id": user_id})
            return None
        return token

    def display_name(self, user_id: str | None) -> str:
        profile = self._profile(user_id, "display_name")
        if not profile:
            return UNKNOWN_NAME
        return profile.get("name") or profile.get("displayName") or UNKNOWN_NAME

    def photo_url(self, user_id: str | None) -> str | None:
        profile = self._profile(user_id, "photo_url")
        if not profile:
            return None
        return profile.get("photoUrl") or profile.get("photoURL") or None
