"""
Payment Gateway API.

HTTP surface of the Adyen integration: webhook receiver, payment link
requests and payment commands.
"""

import logging
from typing import Optional

from aiohttp import web

from config import config
from errors import (
    ConcurrentModificationError,
    DataIntegrityError,
    GatewayRequestError,
    MalformedNotification,
    PaymentNotFound,
    RedirectUnavailable,
)
from models.order import PaymentRequest, PurchaseOrder
from services.integration import AdyenPaymentIntegration

logger = logging.getLogger(__name__)

# Acknowledgement body Adyen expects for a received delivery
NOTIFICATION_ACCEPTED = '[accepted]'


class ResponseRedirect:
    """Redirect collaborator that records the target for the handler."""

    def __init__(self):
        self.location: Optional[str] = None

    def __call__(self, url: str) -> None:
        self.location = url


class PaymentGatewayAPI:
    """
    REST API for the Adyen integration.

    Endpoints:
    - POST /api/adyen/notifications - Receive an Adyen webhook delivery
    - POST /api/payments - Request a payment link and redirect to it
    - GET /api/payments/{reference} - Get payment details
    - POST /api/payments/{reference}/capture - Capture a payment
    - POST /api/payments/{reference}/refund - Refund a payment
    - POST /api/payments/{reference}/cancel - Cancel a payment
    - GET /api/health - Health check
    """

    def __init__(self, integration: AdyenPaymentIntegration):
        """
        Initialize the API.

        Args:
            integration: Adyen integration handling all operations
        """
        self.integration = integration

    def setup_routes(self, app: web.Application) -> None:
        """
        Set up API routes.

        Args:
            app: aiohttp web application
        """
        app.router.add_post('/api/adyen/notifications', self.receive_notification)
        app.router.add_post('/api/payments', self.request_payment)
        app.router.add_get('/api/payments/{reference}', self.get_payment)
        app.router.add_post('/api/payments/{reference}/capture', self.capture_payment)
        app.router.add_post('/api/payments/{reference}/refund', self.refund_payment)
        app.router.add_post('/api/payments/{reference}/cancel', self.cancel_payment)
        app.router.add_get('/api/health', self.health_check)

    async def receive_notification(self, request: web.Request) -> web.Response:
        """
        Receive an Adyen webhook delivery.

        The body is read once as raw bytes and passed on unchanged.
        Deliveries with no verifiable item are still acknowledged.
        """
        body = await request.read()

        payment = await self.integration.handle_notification(body)

        if payment is not None:
            logger.info(
                f"Notification applied to payment {payment.short_reference()} "
                f"({payment.status.value})"
            )

        return web.Response(text=NOTIFICATION_ACCEPTED)

    async def request_payment(self, request: web.Request) -> web.Response:
        """
        Request a hosted payment page and redirect to it.

        Request body:
        {
            "order_id": "4f0c...",
            "order_number": "WEB-1001",
            "currency": "EUR",
            "amount": "19.99",
            "customer": {"guid": "...", "email": "..."} (optional),
            "billing_address": {"first_name": "...", "last_name": "...",
                                "country_culture": "en-GB"} (optional)
        }
        """
        try:
            data = await request.json()
        except Exception:
            return web.json_response(
                {"error": "Invalid JSON body"},
                status=400
            )

        try:
            order = PurchaseOrder.from_dict(data)
            payment_request = PaymentRequest(
                purchase_order=order,
                amount=data['amount']
            )
        except (KeyError, TypeError, ArithmeticError) as e:
            return web.json_response(
                {"error": f"Invalid payment request: {e}"},
                status=400
            )

        redirect = ResponseRedirect()
        await self.integration.request_payment(payment_request, redirect)

        raise web.HTTPFound(redirect.location)

    async def get_payment(self, request: web.Request) -> web.Response:
        """Get payment details."""
        payment = await self.integration.resolver.resolve(request.match_info['reference'])

        return web.json_response({
            "payment": payment.to_dict()
        })

    async def capture_payment(self, request: web.Request) -> web.Response:
        """Capture a payment."""
        return await self._command(request, self.integration.acquire_payment)

    async def refund_payment(self, request: web.Request) -> web.Response:
        """Refund a payment."""
        return await self._command(request, self.integration.refund_payment)

    async def cancel_payment(self, request: web.Request) -> web.Response:
        """Cancel a payment."""
        return await self._command(request, self.integration.cancel_payment)

    async def _command(self, request: web.Request, command) -> web.Response:
        payment = await self.integration.resolver.resolve(request.match_info['reference'])

        if not payment.transaction_id:
            return web.json_response(
                {"error": "Payment has no gateway transaction to modify"},
                status=409
            )

        success, status = await command(payment)

        return web.json_response({
            "success": success,
            "status": status,
            "payment": payment.to_dict()
        })

    async def health_check(self, request: web.Request) -> web.Response:
        """Health check endpoint."""
        return web.json_response({
            "status": "healthy",
            "service": config.service.name
        })


def create_app(integration: AdyenPaymentIntegration) -> web.Application:
    """
    Create and configure the aiohttp web application.

    Args:
        integration: Adyen integration

    Returns:
        Configured aiohttp Application
    """
    app = web.Application()

    # Create API handler
    api = PaymentGatewayAPI(integration=integration)

    # Setup routes
    api.setup_routes(app)

    # Error handling middleware
    @web.middleware
    async def error_middleware(request, handler):
        try:
            return await handler(request)
        except web.HTTPException:
            raise
        except MalformedNotification as e:
            logger.warning(f"Malformed notification: {e}")
            return web.json_response({"error": str(e)}, status=400)
        except PaymentNotFound as e:
            logger.error(str(e))
            return web.json_response({"error": str(e)}, status=404)
        except (DataIntegrityError, ConcurrentModificationError) as e:
            logger.error(str(e))
            return web.json_response({"error": str(e)}, status=500)
        except (RedirectUnavailable, GatewayRequestError) as e:
            logger.error(str(e))
            return web.json_response({"error": str(e)}, status=502)
        except Exception as e:
            logger.error(f"Unhandled error: {e}", exc_info=True)
            return web.json_response(
                {"error": "Internal server error"},
                status=500
            )

    app.middlewares.append(error_middleware)

    return app
