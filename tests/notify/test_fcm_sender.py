"""
Tests for supper_notify.sender -- FCM HTTP v1 requests through httpx.MockTransport.
"""

import json

import httpx
import pytest

from supper_kernel.exceptions import PushSendError
from supper_notify.sender import FcmHttpSender, PushMessage, PushSender

MESSAGE = PushMessage(
    token="device-token",
    title="Ada",
    body="hello",
    data={"type": "message", "count": 3},
    android={"priority": "HIGH"},
)


def _sender(handler) -> FcmHttpSender:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return FcmHttpSender("supper-prod", lambda: "oauth-token", http_client=client)


def _fcm_error(status_code: int, status: str, error_code: str | None = None) -> httpx.Response:
    error = {"code": status_code, "message": f"{status} from FCM", "status": status}
    if error_code:
        error["details"] = [{
            "@type": "type.googleapis.com/google.firebase.fcm.v1.FcmError",
            "errorCode": error_code,
        }]
    return httpx.Response(status_code, json={"error": error})


class TestPushMessage:
    def test_payload_stringifies_data(self):
        payload = MESSAGE.to_payload()["message"]
        assert payload["token"] == "device-token"
        assert payload["notification"] == {"title": "Ada", "body": "hello"}
        assert payload["data"] == {"type": "message", "count": "3"}
        assert payload["android"] == {"priority": "HIGH"}
        assert "apns" not in payload


class TestFcmHttpSender:
    def test_satisfies_protocol(self):
        assert isinstance(_sender(lambda r: httpx.Response(200, json={})), PushSender)

    def test_posts_message_with_bearer_token(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"name": "projects/supper-prod/messages/42"})

        name = _sender(handler).send(MESSAGE)

        assert name == "projects/supper-prod/messages/42"
        assert seen["url"] == "https://fcm.googleapis.com/v1/projects/supper-prod/messages:send"
        assert seen["auth"] == "Bearer oauth-token"
        assert seen["body"]["message"]["token"] == "device-token"

    def test_unregistered_token(self):
        sender = _sender(lambda r: _fcm_error(404, "NOT_FOUND", "UNREGISTERED"))
        with pytest.raises(PushSendError) as exc_info:
            sender.send(MESSAGE)
        assert exc_info.value.provider_code == "UNREGISTERED"
        assert exc_info.value.status_code == 404
        assert exc_info.value.is_invalid_token

    def test_status_used_without_fcm_detail(self):
        sender = _sender(lambda r: _fcm_error(503, "UNAVAILABLE"))
        with pytest.raises(PushSendError) as exc_info:
            sender.send(MESSAGE)
        assert exc_info.value.provider_code == "UNAVAILABLE"
        assert not exc_info.value.is_invalid_token

    def test_non_json_error_body(self):
        sender = _sender(lambda r: httpx.Response(502, text="Bad Gateway"))
        with pytest.raises(PushSendError) as exc_info:
            sender.send(MESSAGE)
        assert exc_info.value.provider_code == "HTTP_502"

    def test_transport_error_wrapped(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(PushSendError) as exc_info:
            _sender(handler).send(MESSAGE)
        assert exc_info.value.provider_code == "UNAVAILABLE"

    def test_project_id_required(self):
        with pytest.raises(ValueError):
            FcmHttpSender("", lambda: "t")

    def test_non_json_success_body(self):
        sender = _sender(lambda r: httpx.Response(200, text="OK"))
        with pytest.raises(PushSendError) as exc_info:
            sender.send(MESSAGE)
        assert exc_info.value.provider_code == "INVALID_RESPONSE"
        assert exc_info.value.status_code == 200

    def test_success_body_without_name(self):
        sender = _sender(lambda r: httpx.Response(200, json=["unexpected"]))
        with pytest.raises(PushSendError) as exc_info:
            sender.send(MESSAGE)
        assert exc_info.value.provider_code == "INVALID_RESPONSE"

    def test_access_token_failure_wrapped(self):
        def no_token() -> str:
            raise RuntimeError("credentials expired")

        client = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        sender = FcmHttpSender("supper-prod", no_token, http_client=client)
        with pytest.raises(PushSendError) as exc_info:
            sender.send(MESSAGE)
        assert exc_info.value.provider_code == "ACCESS_TOKEN_UNAVAILABLE"
        assert not exc_info.value.is_invalid_token
