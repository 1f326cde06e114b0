"""
Status Reconciler.

Applies authenticated gateway notifications to local payments.

    pending --AUTHORISATION--> authorized --CAPTURE--> acquired
    pending/authorized --(success=false)--> declined

Terminal payments (acquired, declined, cancelled, refunded) ignore
further notifications, so duplicate deliveries are no-ops.
"""

import asyncio
import logging
from typing import Callable, Dict, Iterable, List, Optional

from models.notification import EventCode, NotificationItem
from models.payment import Payment, PaymentStatus
from .reference_resolver import PaymentStore
from .signature import SignatureVerifier

logger = logging.getLogger(__name__)


# Successful events that move a payment forward
SUCCESS_TRANSITIONS: Dict[EventCode, PaymentStatus] = {
    EventCode.AUTHORISATION: PaymentStatus.AUTHORIZED,
    EventCode.CAPTURE: PaymentStatus.ACQUIRED,
}


def next_status(item: NotificationItem) -> Optional[PaymentStatus]:
    """
    Target status for a notification item.

    Returns:
        The new status, or None if the item does not change status
    """
    if not item.success:
        return PaymentStatus.DECLINED
    return SUCCESS_TRANSITIONS.get(item.event)


class StatusReconciler:
    """
    State machine driving a payment's status from notifications.

    Registered order-processing callbacks run after a payment has
    been authorised or captured and saved.
    """

    def __init__(self, store: PaymentStore, verifier: SignatureVerifier):
        """
        Initialize the reconciler.

        Args:
            store: Persistence collaborator used to save payments
            verifier: Signature verifier for the payment method
        """
        self.store = store
        self.verifier = verifier
        self._callbacks: List[Callable[[Payment], asyncio.Future]] = []

    def on_payment_processed(self, callback: Callable[[Payment], asyncio.Future]) -> None:
        """
        Register a downstream order-processing callback.

        Args:
            callback: Async function called with the updated payment
        """
        self._callbacks.append(callback)
        name = getattr(callback, '__name__', repr(callback))
        logger.debug(f"Registered order processing callback: {name}")

    def first_verified(self, items: Iterable[NotificationItem]) -> Optional[NotificationItem]:
        """
        Return the first item whose signature verifies.

        Items that fail verification are logged and skipped.
        """
        for item in items:
            if self.verifier.verify(item):
                return item

            logger.info(f"Failed verifying HMAC signature for {item.psp_reference}")

        return None

    async def apply(self, payment: Payment, item: NotificationItem) -> bool:
        """
        Apply one authenticated notification item to a payment.

        Args:
            payment: Payment the item refers to
            item: Verified notification item

        Returns:
            True if the payment status changed and was saved
        """
        if payment.status.is_terminal:
            logger.info(
                f"Ignoring {item.event_code} for payment {payment.short_reference()} "
                f"in terminal status {payment.status.value}"
            )
            return False

        new_status = next_status(item)

        if new_status is None:
            logger.info(
                f"No status change for event {item.event_code or '<empty>'} "
                f"on payment {payment.short_reference()}"
            )
            return False

        if new_status == payment.status:
            logger.info(
                f"Duplicate {item.event_code} for payment {payment.short_reference()}, "
                f"already {payment.status.value}"
            )
            return False

        previous = payment.status
        payment.status = new_status

        if new_status in (PaymentStatus.AUTHORIZED, PaymentStatus.ACQUIRED):
            psp_reference = item.psp_reference
            if new_status == PaymentStatus.ACQUIRED and item.original_reference:
                psp_reference = item.original_reference

            if not payment.record_transaction_id(psp_reference) and \
                    psp_reference and payment.transaction_id != psp_reference:
                logger.warning(
                    f"Payment {payment.short_reference()} keeps transaction id "
                    f"{payment.transaction_id}, ignoring {psp_reference}"
                )

        await self.store.save_payment(payment)

        logger.info(
            f"Payment {payment.short_reference()} moved from {previous.value} "
            f"to {new_status.value} ({item.event_code})"
        )

        if new_status in (PaymentStatus.AUTHORIZED, PaymentStatus.ACQUIRED):
            await self._process_order(payment)

        return True

    async def reconcile(
        self,
        payment: Payment,
        items: Iterable[NotificationItem]
    ) -> Optional[NotificationItem]:
        """
        Process a delivery for an already resolved payment.

        Items naming another merchant reference are skipped. Of the
        rest, only the first verified item is acted upon; it ends the
        delivery.

        Returns:
            The item that was acted upon, or None if none verified
        """
        own_items = []
        for item in items:
            if item.merchant_reference != payment.reference_id:
                logger.warning(
                    f"Skipping notification {item.psp_reference} for reference "
                    f"{item.merchant_reference}: delivery resolved to payment "
                    f"{payment.short_reference()}"
                )
                continue
            own_items.append(item)

        item = self.first_verified(own_items)

        if item is None:
            logger.warning(
                f"No verifiable notification item for payment {payment.short_reference()}"
            )
            return None

        await self.apply(payment, item)
        return item

    async def _process_order(self, payment: Payment) -> None:
        """Run downstream order processing callbacks."""
        for callback in self._callbacks:
            try:
                await callback(payment)
            except Exception as e:
                logger.error(f"Error in order processing callback: {e}", exc_info=True)
