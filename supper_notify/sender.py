"""
Push senders.

Contract:
    ``PushSender.send(message)`` delivers one ``PushMessage`` and returns
    the provider's message id, or raises ``PushSendError``.  Senders do
    not retry; delivery is best-effort and the dispatcher decides what a
    failure means.

``FcmHttpSender`` talks to the FCM HTTP v1 API with a synchronous
``httpx.Client``.  The OAuth access token comes from an injected
callable so credential refresh stays outside this module.

Failure modes:
    - Token callable raises -> ``ACCESS_TOKEN_UNAVAILABLE``.
    - Transport error -> ``UNAVAILABLE``.
    - 2xx without a JSON ``name`` -> ``INVALID_RESPONSE``.
    - Non-2xx -> the FCM error code, else ``error.status``, else ``HTTP_<n>``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Protocol, runtime_checkable

import httpx

from supper_kernel.exceptions import PushSendError
from supper_kernel.logging_config import get_logger

logger = get_logger("notify.sender")

FCM_SEND_URL = "https://fcm.googleapis.com/v1/projects/{project_id}/messages:send"
DEFAULT_TIMEOUT_SECONDS = 5.0

_FCM_ERROR_TYPE = "type.googleapis.com/google.firebase.fcm.v1.FcmError"


@dataclass(frozen=True)
class PushMessage:
    """One push notification addressed to a single device token."""

    token: str
    title: str
    body: str
    data: Mapping[str, str] = field(default_factory=dict)
    android: Mapping[str, Any] = field(default_factory=dict)
    apns: Mapping[str, Any] = field(default_factory=dict)

    def to_payload(self) -> dict[str, Any]:
        """Request body for ``messages:send``.  Data values must be strings."""
        message: dict[str, Any] = {
            "token": self.token,
            "notification": {"title": self.title, "body": self.body},
            "data": {key: str(value) for key, value in self.data.items()},
        }
        if self.android:
            message["android"] = dict(self.android)
        if self.apns:
            message["apns"] = dict(self.apns)
        return {"message": message}


@runtime_checkable
class PushSender(Protocol):

    def send(self, message: PushMessage) -> str:
        """Deliver ``message`` and return the provider message id.

        Raises:
            PushSendError: The provider rejected the message or was unreachable.
        """
        ...


def _error_details(response: httpx.Response) -> tuple[str, str]:
    """Extract (code, message) from an FCM error body.

    FCM puts the specific reason (``UNREGISTERED``...) in an FcmError
    detail and the generic gRPC status in ``error.status``.
    """
    fallback = (f"HTTP_{response.status_code}", response.text[:200])
    try:
        body = response.json()
    except ValueError:
        return fallback
    error = body.get("error") if isinstance(body, dict) else None
    if not isinstance(error, dict):
        return fallback

    message = str(error.get("message", ""))
    for detail in error.get("details") or ():
        if isinstance(detail, dict) and detail.get("@type") == _FCM_ERROR_TYPE:
            code = detail.get("errorCode")
            if code:
                return str(code), message
    return str(error.get("status") or fallback[0]), message


def _message_name(response: httpx.Response) -> str | None:
    """``name`` of the accepted message, or None when the body is not FCM's."""
    try:
        body = response.json()
    except ValueError:
        return None
    name = body.get("name") if isinstance(body, dict) else None
    return name if isinstance(name, str) else None


class FcmHttpSender:
    """PushSender for the FCM HTTP v1 API.

    Parameters
    ----------
    project_id:
        Firebase project the messages are sent through.
    access_token:
        Callable returning a current OAuth2 bearer token.
    http_client:
        Optional ``httpx.Client`` (tests pass one with a MockTransport).
    """

    def __init__(
        self,
        project_id: str,
        access_token: Callable[[], str],
        http_client: httpx.Client | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        if not project_id:
            raise ValueError("project_id is required")
        self._url = FCM_SEND_URL.format(project_id=project_id)
        self._access_token = access_token
        self._client = http_client or httpx.Client(timeout=timeout_seconds)
        self._owns_client = http_client is None

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def send(self, message: PushMessage) -> str:
        try:
            token = self._access_token()
        except Exception as exc:
            logger.error("push_access_token_failed", extra={"error": str(exc)})
            raise PushSendError("ACCESS_TOKEN_UNAVAILABLE", str(exc)) from exc

        headers = {"Authorization": f"Bearer {token}"}
        try:
            response = self._client.post(
                self._url, json=message.to_payload(), headers=headers,
            )
        except httpx.HTTPError as exc:
            logger.error("push_transport_failed", extra={"error": str(exc)})
            raise PushSendError("UNAVAILABLE", str(exc)) from exc

        if response.is_success:
            name = _message_name(response)
            if name is None:
                raise PushSendError(
                    "INVALID_RESPONSE",
                    f"Unexpected success body: {response.text[:200]!r}",
                    status_code=response.status_code,
                )
            logger.debug("push_accepted", extra={"message_name": name})
            return name

        code, reason = _error_details(response)
        raise PushSendError(code, reason, status_code=response.status_code)
