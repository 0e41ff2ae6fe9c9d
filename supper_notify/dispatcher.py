"""
NotificationDispatcher -- turns created documents into push notifications.

Contract:
    One handler per event source.  Each handler receives the path
    parameters and the created document's data, and returns True only
    when a push was accepted by the sender.

Invariants:
    - Only the recipient is notified; an event whose sender is also its
      recipient is skipped.  Messages and calls need only a recipient;
      inquiries and connection requests also need a sender.
    - Send failures never propagate.  Invalid-token rejections are logged
      at warning, everything else at error.
    - An order total that is not a number is logged and shown as 0.
    - Calls notify only while ringing (``calling``, ``ringing``, ``pending``).
"""

from __future__ import annotations

from typing import Any, Mapping

from supper_kernel.exceptions import PushSendError, StoreError
from supper_kernel.logging_config import get_logger
from supper_kernel.store.base import DocumentStore
from supper_kernel.store.types import DocumentPath

from supper_notify.directory import UserDirectory
from supper_notify.messages import (
    call_message,
    format_currency,
    inquiry_body,
    message_body,
    number_text,
    parse_amount,
    standard_message,
)
from supper_notify.sender import PushMessage, PushSender

logger = get_logger("notify.dispatcher")

RINGING_STATUSES = frozenset({"calling", "ringing", "pending"})
BUSINESSES_COLLECTION = "businesses"


class NotificationDispatcher:

    def __init__(
        self,
        store: DocumentStore,
        sender: PushSender,
        directory: UserDirectory | None = None,
    ) -> None:
        self._store = store
        self._sender = sender
        self._directory = directory or UserDirectory(store)

    # -------------------------------------------------------------------------
    # Handlers
    # -------------------------------------------------------------------------

    def on_message_created(self, conversation_id: str, message: Mapping[str, Any]) -> bool:
        """conversations/{conversation_id}/messages/{message_id}"""
        sender_id = message.get("senderId")
        receiver_id = message.get("receiverId")
        if not self._is_distinct_recipient(
            "message", sender_id, receiver_id, sender_required=False,
        ):
            return False

        token = self._token_for("message", receiver_id)
        if token is None:
            return False

        sender_name = self._directory.display_name(sender_id)
        body = message_body(message.get("text") or "", bool(message.get("imageUrl")))
        return self._deliver(
            "message",
            receiver_id,
            standard_message(
                token,
                sender_name,
                body,
                {
                    "type": "message",
                    "conversationId": conversation_id,
                    "senderId": sender_id or "",
                    "senderName": sender_name,
                },
            ),
        )

    def on_call_created(self, call_id: str, call: Mapping[str, Any]) -> bool:
        """calls/{call_id}"""
        caller_id = call.get("callerId")
        receiver_id = call.get("receiverId") or call.get("calleeId")
        if not self._is_distinct_recipient(
            "call", caller_id, receiver_id, sender_required=False,
        ):
            return False

        status = call.get("status")
        if status not in RINGING_STATUSES:
            logger.info(
                "notification_skipped_call_status",
                extra={"call_id": call_id, "status": status},
            )
            return False

        token = self._token_for("call", receiver_id)
        if token is None:
            return False

        caller_name = call.get("callerName") or self._directory.display_name(caller_id)
        caller_photo = call.get("callerPhoto") or self._directory.photo_url(caller_id)
        return self._deliver(
            "call",
            receiver_id,
            call_message(token, call_id, caller_id or "", caller_name, caller_photo),
        )

    def on_inquiry_created(
        self, professional_id: str, inquiry_id: str, inquiry: Mapping[str, Any],
    ) -> bool:
        """users/{professional_id}/inquiries/{inquiry_id}"""
        client_id = inquiry.get("clientId") or inquiry.get("userId")
        if not self._is_distinct_recipient("inquiry", client_id, professional_id):
            return False

        token = self._token_for("inquiry", professional_id)
        if token is None:
            return False

        client_name = self._directory.display_name(client_id)
        service_name = inquiry.get("serviceName") or "your service"
        body = inquiry_body(client_name, service_name, inquiry.get("message") or "")
        return self._deliver(
            "inquiry",
            professional_id,
            standard_message(
                token,
                "New Inquiry",
                body,
                {
                    "type": "inquiry",
                    "inquiryId": inquiry_id,
                    "clientId": client_id,
                    "clientName": client_name,
                    "serviceName": service_name,
                },
            ),
        )

    def on_connection_request_created(
        self, recipient_id: str, request_id: str, request: Mapping[str, Any],
    ) -> bool:
        """users/{recipient_id}/connection_requests/{request_id}"""
        sender_id = request.get("fromUserId") or request.get("senderId")
        if not self._is_distinct_recipient("connection_request", sender_id, recipient_id):
            return False

        token = self._token_for("connection_request", recipient_id)
        if token is None:
            return False

        sender_name = self._directory.display_name(sender_id)
        return self._deliver(
            "connection_request",
            recipient_id,
            standard_message(
                token,
                "Connection Request",
                f"{sender_name} wants to connect with you",
                {
                    "type": "connection_request",
                    "requestId": request_id,
                    "senderId": sender_id,
                    "senderName": sender_name,
                },
            ),
        )

    def on_business_order_created(self, order_id: str, order: Mapping[str, Any]) -> bool:
        """business_orders/{order_id} -- notifies the business owner."""
        business_id = order.get("businessId")
        if not business_id:
            logger.warning("notification_skipped_no_business", extra={"order_id": order_id})
            return False

        try:
            business = self._store.get(DocumentPath.of(BUSINESSES_COLLECTION, business_id))
        except StoreError as exc:
            logger.error(
                "business_lookup_failed",
                extra={"order_id": order_id, "business_id": business_id, "error": str(exc)},
            )
            return False
        if business is None:
            logger.warning(
                "notification_skipped_business_not_found",
                extra={"order_id": order_id, "business_id": business_id},
            )
            return False

        owner_id = business.data.get("userId")
        token = self._token_for("business_order", owner_id)
        if token is None:
            return False

        customer_id = order.get("customerId")
        customer_name = order.get("customerName") or self._directory.display_name(customer_id)
        total = parse_amount(order.get("totalAmount"))
        if total is None:
            logger.warning(
                "order_amount_invalid",
                extra={"order_id": order_id, "total_amount": str(order.get("totalAmount"))},
            )
            total = 0
        formatted_total = format_currency(total, order.get("currency") or "USD")
        return self._deliver(
            "business_order",
            owner_id,
            standard_message(
                token,
                "New Order Received!",
                f"{customer_name} placed an order for {formatted_total}",
                {
                    "type": "business_order",
                    "orderId": order_id,
                    "businessId": business_id,
                    "customerId": customer_id or "",
                    "customerName": customer_name,
                    "amount": number_text(total),
                },
            ),
        )

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _is_distinct_recipient(
        kind: str,
        sender_id: str | None,
        recipient_id: str | None,
        sender_required: bool = True,
    ) -> bool:
        missing_sender = sender_required and not sender_id
        if missing_sender or not recipient_id or sender_id == recipient_id:
            logger.warning(
                "notification_skipped_recipient",
                extra={"kind": kind, "sender_id": sender_id, "recipient_id": recipient_id},
            )
            return False
        return True

    def _token_for(self, kind: str, recipient_id: str | None) -> str | None:
        token = self._directory.fcm_token(recipient_id)
        if token is None:
            logger.warning(
                "notification_skipped_no_token",
                extra={"kind": kind, "recipient_id": recipient_id},
            )
        return token

    def _deliver(self, kind: str, recipient_id: str, message: PushMessage) -> bool:
        try:
            message_name = self._sender.send(message)
        except PushSendError as exc:
            log = logger.warning if exc.is_invalid_token else logger.error
            log(
                "notification_send_failed",
                extra={
                    "kind": kind,
                    "recipient_id": recipient_id,
                    "provider_code": exc.provider_code,
                    "invalid_token": exc.is_invalid_token,
                    "error": exc.reason,
                },
            )
            return False
        except Exception:
            logger.exception(
                "notification_send_failed",
                extra={"kind": kind, "recipient_id": recipient_id},
            )
            return False

        logger.info(
            "notification_sent",
            extra={"kind": kind, "recipient_id": recipient_id, "message_name": message_name},
        )
        return True
