"""
Notification Reconciler
=======================
Turns an untrusted, possibly duplicated or reordered Comgate callback into
at most one UNPAID -> PAID transition per order, and at most one pair of
confirmation emails.

    UNPAID --(live status PAID/AUTHORIZED)--> PAID   (emails sent once)
    UNPAID --(any other live status)-------> UNPAID  (no-op, Comgate retries)
    PAID   --(anything)-------------------> PAID    (no-op)

The callback body is only used to find the order. Whether money moved is
decided by a server-to-server status query, never by the claimed status.
"""

import asyncio
import uuid
from enum import Enum
from typing import Any, Optional

import structlog

from gateway.comgate import ComgateClient, is_paid_status
from schemas.checkout import NotificationPayload
from schemas.order import Order
from services.notifier import EmailMessage, INotifier
from services.order_emails import customer_message, owner_message
from storage.order_store import IOrderStore
from tasks.background import BackgroundWorker


ACK = "OK"


class ReconcileOutcome(str, Enum):
    NO_TRANSACTION = "no_transaction"
    STATUS_CHECK_FAILED = "status_check_failed"
    NOT_PAID = "not_paid"
    ORDER_NOT_FOUND = "order_not_found"
    REF_MISMATCH = "ref_mismatch"
    ALREADY_PAID = "already_paid"
    MARKED_PAID = "marked_paid"


class NotificationReconciler:

    def __init__(
        self,
        store: IOrderStore,
        gateway: ComgateClient,
        notifier: INotifier,
        worker: BackgroundWorker,
        owner_email: Optional[str] = None,
    ):
        self.store = store
        self.gateway = gateway
        self.notifier = notifier
        self.worker = worker
        self.owner_email = owner_email
        self._base_logger = structlog.get_logger()

    def _get_logger(self, correlation_id: str = None):
        return self._base_logger.bind(
            component="reconciler",
            correlation_id=correlation_id or uuid.uuid4().hex[:12],
        )

    # =========================================================================
    # ENTRY POINT
    # =========================================================================

    def handle_notification(self, raw: Any) -> str:
        """
        Acknowledge first, reconcile later. Comgate marks a callback as failed
        and keeps retrying when the answer is slow, so the caller gets "OK"
        right away and the real work runs on the background worker.
        """
        correlation_id = uuid.uuid4().hex[:12]
        try:
            payload = NotificationPayload.from_payload(raw)
        except Exception as e:
            self._get_logger(correlation_id).warning("notification_unparseable", error=str(e))
            payload = NotificationPayload()

        self._get_logger(correlation_id).info("notification_received",
                                              ref_id=payload.ref_id,
                                              trans_id=payload.trans_id,
                                              claimed_status=payload.claimed_status)
        self.worker.submit(
            self.reconcile(payload, correlation_id),
            label=f"reconcile:{payload.ref_id or payload.trans_id or '-'}",
        )
        return ACK

    # =========================================================================
    # RECONCILIATION
    # =========================================================================

    async def resolve_order(self, payload: NotificationPayload) -> Optional[Order]:
        order = None
        if payload.ref_id:
            order = await self.store.get_by_ref(payload.ref_id)
        if order is None and payload.trans_id:
            order = await self.store.get_by_transaction_id(payload.trans_id)
        return order

    async def reconcile(
        self, payload: NotificationPayload, correlation_id: str = None
    ) -> ReconcileOutcome:
        log = self._get_logger(correlation_id).bind(ref_id=payload.ref_id)

        order = await self.resolve_order(payload)
        trans_id = payload.trans_id
        if order is not None and order.transaction_id != trans_id:
            if trans_id:
                # The stored id is the only one that belongs to this order
                log.warning("notification_id_mismatch",
                            payload_trans_id=trans_id,
                            stored_trans_id=order.transaction_id)
            trans_id = order.transaction_id
        if not trans_id:
            log.info("notification_ignored", reason="no transaction id")
            return ReconcileOutcome.NO_TRANSACTION
        log = log.bind(trans_id=trans_id, order_ref=order.ref_id if order else None)

        status = await self.gateway.get_status(trans_id)
        if not status.ok:
            log.error("status_check_failed",
                      http_status=status.http_status,
                      code=status.code,
                      message=status.message)
            return ReconcileOutcome.STATUS_CHECK_FAILED

        if not is_paid_status(status.status):
            log.info("payment_not_completed",
                     status=status.status,
                     claimed_status=payload.claimed_status)
            return ReconcileOutcome.NOT_PAID

        if order is None:
            # Money moved but nothing local matches it; someone has to look
            log.error("paid_notification_without_order",
                      status=status.status,
                      payload_ref_id=payload.ref_id)
            return ReconcileOutcome.ORDER_NOT_FOUND

        if status.ref_id and status.ref_id != order.ref_id:
            log.error("status_ref_mismatch", status_ref_id=status.ref_id, status=status.status)
            return ReconcileOutcome.REF_MISMATCH

        if not await self.store.mark_paid(order.ref_id):
            log.info("order_already_paid", status=status.status)
            return ReconcileOutcome.ALREADY_PAID

        log.info("order_marked_paid", status=status.status, price=order.price_halers)
        paid_order = await self.store.get_by_ref(order.ref_id) or order
        await self._send_confirmations(paid_order, log)
        return ReconcileOutcome.MARKED_PAID

    # =========================================================================
    # CONFIRMATION EMAILS
    # =========================================================================

    async def _send_confirmations(self, order: Order, log) -> None:
        messages = []
        if self.owner_email:
            messages.append(("owner", owner_message(order, self.owner_email)))
        else:
            log.warning("owner_email_skipped", reason="OWNER_EMAIL not set")
        messages.append(("customer", customer_message(order)))

        await asyncio.gather(*(
            self._send_one(recipient, message, log) for recipient, message in messages
        ))

    async def _send_one(self, recipient: str, message: EmailMessage, log) -> bool:
        # One recipient failing must not affect the other or the paid flag
        try:
            return await self.notifier.send(message)
        except Exception as e:
            log.error("confirmation_mail_failed",
                      recipient=recipient,
                      to=message.to,
                      error=str(e),
                      error_type=type(e).__name__)
            return False
