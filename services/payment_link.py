"""
Payment Link Initiator.

Requests a hosted Adyen payment page for a payment attempt and hands
its URL to the redirect collaborator.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Protocol

from config import PaymentMethodConfig
from errors import RedirectUnavailable
from models.order import PaymentRequest
from models.payment import Payment, to_minor_units
from .urls import AbsoluteUrlResolver

logger = logging.getLogger(__name__)


class CheckoutClient(Protocol):
    """Gateway collaborator for checkout operations."""

    async def payment_links(self, request: Dict[str, Any]) -> Dict[str, Any]:
        ...


PaymentFactory = Callable[[PaymentRequest], Awaitable[Payment]]
Redirect = Callable[[str], None]


class PaymentLinkInitiator:
    """Builds payment link requests and redirects the shopper."""

    def __init__(
        self,
        client: CheckoutClient,
        payment_method: PaymentMethodConfig,
        url_resolver: AbsoluteUrlResolver,
        payment_factory: PaymentFactory
    ):
        """
        Initialize the initiator.

        Args:
            client: Checkout API client
            payment_method: Validated payment method settings
            url_resolver: Makes the return URL absolute
            payment_factory: Creates a payment when the request has none
        """
        self.client = client
        self.payment_method = payment_method
        self.url_resolver = url_resolver
        self.payment_factory = payment_factory

    def build_request(self, payment_request: PaymentRequest) -> Dict[str, Any]:
        """
        Build the ``CreatePaymentLinkRequest`` body.

        Args:
            payment_request: Request carrying an existing payment

        Returns:
            JSON-ready request body
        """
        order = payment_request.purchase_order
        payment = payment_request.payment
        currency = order.billing_currency

        request = {
            'amount': {
                'currency': currency,
                'value': to_minor_units(payment_request.amount, currency)
            },
            'merchantAccount': self.payment_method.merchant_account,
            'reference': payment.reference_id,
            'returnUrl': self.url_resolver.resolve(self.payment_method.return_url),
            'metadata': {
                'orderReference': payment.reference_id,
                'orderId': order.guid,
                'orderNumber': order.order_number
            }
        }

        if order.customer:
            request['shopperReference'] = order.customer.guid
            if order.customer.email:
                request['shopperEmail'] = order.customer.email

        address = order.billing_address
        if address:
            request['shopperName'] = {
                'firstName': address.first_name,
                'lastName': address.last_name
            }
            if address.country_code:
                request['countryCode'] = address.country_code

        return request

    async def request_payment(self, payment_request: PaymentRequest, redirect: Redirect) -> Payment:
        """
        Request a hosted payment page and redirect the shopper to it.

        Args:
            payment_request: Order and amount to pay
            redirect: Called with the payment page URL

        Returns:
            The payment the link was created for

        Raises:
            RedirectUnavailable: If the gateway returned no URL
        """
        if payment_request.payment is None:
            payment_request.payment = await self.payment_factory(payment_request)

        payment = payment_request.payment
        result = await self.client.payment_links(self.build_request(payment_request))

        url = (result or {}).get('url')
        if not url or not str(url).strip():
            logger.error(f"No payment link returned for payment {payment.short_reference()}")
            raise RedirectUnavailable("Could not redirect to Adyen payment page.")

        logger.info(f"Redirecting payment {payment.short_reference()} to Adyen payment page")
        redirect(url)
        return payment
