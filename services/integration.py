"""
Payment gateway integration.

``PaymentGatewayIntegration`` is the contract the order system calls;
``AdyenPaymentIntegration`` implements it on top of the parser,
verifier, resolver, reconciler, dispatcher and link initiator.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional, Tuple

from config import PaymentMethodConfig
from models.notification import NotificationItem
from models.order import PaymentRequest
from models.payment import Payment, PaymentStatus
from .command_dispatcher import GatewayCommandDispatcher
from .notification_parser import first_merchant_reference, parse_notification
from .payment_link import PaymentLinkInitiator, Redirect
from .reference_resolver import PaymentStore, ReferenceResolver
from .signature import SignatureVerifier
from .status_reconciler import StatusReconciler
from .urls import AbsoluteUrlResolver

logger = logging.getLogger(__name__)


class PaymentGatewayIntegration(ABC):
    """Operations the order system invokes on a payment gateway."""

    @abstractmethod
    async def extract(self, body: bytes) -> Payment:
        """Find the payment a webhook delivery refers to."""

    @abstractmethod
    async def process_callback(self, payment: Payment, body: bytes) -> Optional[NotificationItem]:
        """Apply a webhook delivery to its payment."""

    @abstractmethod
    async def request_payment(self, payment_request: PaymentRequest, redirect: Redirect) -> Payment:
        """Start a payment and redirect the shopper to the gateway."""

    @abstractmethod
    async def capture(self, payment: Payment) -> Tuple[bool, str]:
        """Capture an authorised payment."""

    @abstractmethod
    async def refund(self, payment: Payment) -> Tuple[bool, str]:
        """Refund a captured payment."""

    @abstractmethod
    async def cancel(self, payment: Payment) -> Tuple[bool, str]:
        """Cancel an authorised payment."""


class AdyenPaymentIntegration(PaymentGatewayIntegration):
    """Adyen implementation of the payment gateway integration."""

    def __init__(
        self,
        client,
        store: PaymentStore,
        payment_method: PaymentMethodConfig,
        url_resolver: AbsoluteUrlResolver
    ):
        """
        Initialize the integration.

        Args:
            client: Adyen client providing checkout and modification calls
            store: Payment persistence collaborator
            payment_method: Payment method settings (validated here)
            url_resolver: Resolves the return URL to an absolute URL

        Raises:
            ConfigurationError: If the payment method settings are invalid
        """
        payment_method.validate()

        self.store = store
        self.payment_method = payment_method
        self.resolver = ReferenceResolver(store)
        self.reconciler = StatusReconciler(store, SignatureVerifier(payment_method.hmac_key))
        self.dispatcher = GatewayCommandDispatcher(client, payment_method)
        self.link_initiator = PaymentLinkInitiator(
            client, payment_method, url_resolver, self.create_payment
        )

    def on_payment_processed(self, callback) -> None:
        """Register a downstream order-processing callback."""
        self.reconciler.on_payment_processed(callback)

    # -------------------------------------------------------------------------
    # Notifications
    # -------------------------------------------------------------------------

    async def extract(self, body: bytes) -> Payment:
        """
        Resolve the payment named by the first item of a delivery.

        Raises:
            MalformedNotification: If the body has no items
            PaymentNotFound: If no payment has the reference
            DataIntegrityError: If several payments have the reference
        """
        return await self.resolver.resolve(first_merchant_reference(body))

    async def process_callback(self, payment: Payment, body: bytes) -> Optional[NotificationItem]:
        """
        Apply a delivery to an already extracted payment.

        Returns:
            The item that was acted upon, or None if none verified
        """
        return await self.reconciler.reconcile(payment, parse_notification(body))

    async def handle_notification(self, body: bytes) -> Optional[Payment]:
        """
        Verify, resolve and reconcile a webhook delivery.

        Payments are only looked up for an item whose signature
        verifies, so unverified items never touch local state.

        Args:
            body: Raw request body

        Returns:
            The payment the delivery was applied to, or None if no
            item verified

        Raises:
            MalformedNotification: If the body is not a notification
            PaymentNotFound: If the verified item's payment is unknown
            DataIntegrityError: If its reference is ambiguous
        """
        items = parse_notification(body)
        item = self.reconciler.first_verified(items)

        if item is None:
            logger.warning(f"None of {len(items)} notification item(s) could be verified")
            return None

        payment = await self.resolver.resolve(item.merchant_reference)
        await self.reconciler.apply(payment, item)
        return payment

    # -------------------------------------------------------------------------
    # Payment links
    # -------------------------------------------------------------------------

    async def create_payment(self, payment_request: PaymentRequest) -> Payment:
        """Create and save a pending payment for a request."""
        order = payment_request.purchase_order
        payment = Payment.create(
            amount=payment_request.amount,
            currency=order.billing_currency,
            order_id=order.guid,
            order_number=order.order_number,
            payment_method=self.payment_method.name
        )
        await self.store.save_payment(payment)
        logger.info(f"Created payment {payment.short_reference()} for order {order.order_number}")
        return payment

    async def request_payment(self, payment_request: PaymentRequest, redirect: Redirect) -> Payment:
        return await self.link_initiator.request_payment(payment_request, redirect)

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    async def capture(self, payment: Payment) -> Tuple[bool, str]:
        return await self.dispatcher.capture(payment)

    async def refund(self, payment: Payment) -> Tuple[bool, str]:
        return await self.dispatcher.refund(payment)

    async def cancel(self, payment: Payment) -> Tuple[bool, str]:
        return await self.dispatcher.cancel(payment)

    async def acquire_payment(self, payment: Payment) -> Tuple[bool, str]:
        """Capture a payment and mark it acquired on success."""
        return await self._run_command(self.capture, payment, PaymentStatus.ACQUIRED)

    async def refund_payment(self, payment: Payment) -> Tuple[bool, str]:
        """Refund a payment and mark it refunded on success."""
        return await self._run_command(self.refund, payment, PaymentStatus.REFUNDED)

    async def cancel_payment(self, payment: Payment) -> Tuple[bool, str]:
        """Cancel a payment and mark it cancelled on success."""
        return await self._run_command(self.cancel, payment, PaymentStatus.CANCELLED)

    async def _run_command(self, command, payment: Payment, status: PaymentStatus) -> Tuple[bool, str]:
        success, gateway_status = await command(payment)

        if success:
            payment.status = status
            await self.store.save_payment(payment)

        return success, gateway_status
