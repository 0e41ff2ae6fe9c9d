"""
supper_notify -- push notifications for chat, call, inquiry, connection
and order events.

Architecture:
    Imports from supper_kernel only.  The dispatcher reads profiles through
    the same DocumentStore the rollover engine uses and delivers through an
    injected PushSender.
"""

from supper_notify.directory import UserDirectory
from supper_notify.dispatcher import NotificationDispatcher
from supper_notify.sender import FcmHttpSender, PushMessage, PushSender

__all__ = [
    "FcmHttpSender",
    "NotificationDispatcher",
    "PushMessage",
    "PushSender",
    "UserDirectory",
]
