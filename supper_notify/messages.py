"""Pure builders for notification text and platform payloads."""

from __future__ import annotations

import math
from numbers import Real
from typing import Any, Mapping

from supper_notify.sender import PushMessage

CLICK_ACTION = "FLUTTER_NOTIFICATION_CLICK"

MESSAGE_BODY_LIMIT = 100
INQUIRY_EXCERPT_LIMIT = 50

CALL_TTL = "60s"

_CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "INR": "₹",
    "CAD": "CA$",
    "AUD": "A$",
}
_ZERO_DECIMAL_CURRENCIES = frozenset({"JPY", "KRW"})


def truncate(text: str, limit: int) -> str:
    """Cut ``text`` to ``limit`` characters, ending in an ellipsis.

    >>> truncate("abcdef", 5)
    'ab...'
    >>> truncate("abc", 5)
    'abc'
    """
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."


def message_body(text: str, has_image: bool) -> str:
    if has_image and not text:
        body = "Sent you a photo"
    elif has_image:
        body = f"[Photo] {text}"
    else:
        body = text
    return truncate(body, MESSAGE_BODY_LIMIT)


def inquiry_body(client_name: str, service_name: str, text: str) -> str:
    if text:
        return f'{client_name}: "{truncate(text, INQUIRY_EXCERPT_LIMIT)}"'
    return f"{client_name} sent an inquiry for {service_name}"


def parse_amount(value: Any) -> Real | None:
    """Order total as a number, or None when it cannot be read as one.

    Numeric strings are accepted; a missing or empty total is 0.

    >>> parse_amount("12.50")
    12.5
    >>> parse_amount(None)
    0
    >>> parse_amount("twelve") is None
    True
    """
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        return None
    if isinstance(value, Real):
        number = value
    else:
        try:
            number = float(value)
        except (TypeError, ValueError):
            return None
    return number if math.isfinite(number) else None


def format_currency(amount: Real, currency: str = "USD") -> str:
    """en-US style currency text.

    >>> format_currency(1234.5)
    '$1,234.50'
    >>> format_currency(-5, "EUR")
    '-€5.00'
    >>> format_currency(1200, "JPY")
    '¥1,200'
    >>> format_currency(10, "NGN")
    'NGN 10.00'
    """
    code = (currency or "USD").upper()
    digits = 0 if code in _ZERO_DECIMAL_CURRENCIES else 2
    number = f"{abs(amount):,.{digits}f}"
    sign = "-" if amount < 0 else ""
    symbol = _CURRENCY_SYMBOLS.get(code)
    if symbol is None:
        return f"{sign}{code} {number}"
    return f"{sign}{symbol}{number}"


def number_text(value: Real) -> str:
    """Render a number the way it was typed: 10.0 -> '10', 12.5 -> '12.5'."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def standard_message(
    token: str, title: str, body: str, data: Mapping[str, str],
) -> PushMessage:
    """High-priority chat-channel notification used by every non-call event."""
    return PushMessage(
        token=token,
        title=title,
        body=body,
        data={**data, "click_action": CLICK_ACTION},
        android={
            "priority": "HIGH",
            "notification": {
                "channel_id": "chat_messages",
                "notification_priority": "PRIORITY_HIGH",
                "default_sound": True,
                "default_vibrate_timings": True,
            },
        },
        apns={
            "payload": {
                "aps": {
                    "alert": {"title": title, "body": body},
                    "sound": "default",
                    "badge": 1,
                },
            },
        },
    )


def call_message(
    token: str, call_id: str, caller_id: str, caller_name: str, caller_photo: str | None,
) -> PushMessage:
    """Incoming-call notification: max priority, expires after a minute."""
    title = "Incoming Call"
    body = f"{caller_name} is calling you"
    return PushMessage(
        token=token,
        title=title,
        body=body,
        data={
            "type": "call",
            "callId": call_id,
            "callerId": caller_id,
            "callerName": caller_name,
            "callerPhoto": caller_photo or "",
            "click_action": CLICK_ACTION,
        },
        android={
            "priority": "HIGH",
            "ttl": CALL_TTL,
            "notification": {
                "channel_id": "calls",
                "notification_priority": "PRIORITY_MAX",
                "default_sound": True,
                "default_vibrate_timings": True,
                "visibility": "PUBLIC",
                "icon": "@mipmap/ic_launcher",
            },
        },
        apns={
            "headers": {"apns-priority": "10", "apns-push-type": "alert"},
            "payload": {
                "aps": {
                    "alert": {"title": title, "body": body},
                    "sound": "default",
                    "badge": 1,
                    "content-available": 1,
                    "mutable-content": 1,
                    "category": "INCOMING_CALL",
                },
            },
        },
    )
