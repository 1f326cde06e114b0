"""
Adyen Gateway Client.

Thin aiohttp client for the two Adyen APIs the integration uses:
- Checkout API: create hosted payment links
- Payment API: capture, refund and cancel by original PSP reference

Network errors from aiohttp are not caught here.
"""

import json
import logging
from typing import Any, Dict, Optional, Tuple

import aiohttp

from config import GatewayConfig, config
from errors import GatewayRequestError
from models.notification import GatewayCommandResult

logger = logging.getLogger(__name__)


class AdyenClient:
    """
    Client for the Adyen Checkout and Payment APIs.

    Usage:
        client = AdyenClient()
        await client.start()
        link = await client.payment_links({...})
        result = await client.capture({...}, idempotency_key='capture-ABC')
        await client.stop()
    """

    # Validation rejections of a modification are business outcomes
    REJECTED_STATUSES = (422,)

    def __init__(self, gateway_config: Optional[GatewayConfig] = None):
        """
        Initialize the client.

        Args:
            gateway_config: API settings. Uses config if not provided.
        """
        self.gateway_config = gateway_config or config.gateway
        self._session: Optional[aiohttp.ClientSession] = None

    async def start(self) -> None:
        """Open the HTTP session."""
        logger.info(
            f"Starting Adyen client ({self.gateway_config.environment} environment)..."
        )
        self._session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.gateway_config.timeout),
            headers={
                'X-API-Key': self.gateway_config.api_key,
                'Content-Type': 'application/json'
            }
        )

    async def stop(self) -> None:
        """Close the HTTP session."""
        logger.info("Stopping Adyen client...")
        if self._session:
            await self._session.close()
            self._session = None

    # -------------------------------------------------------------------------
    # Checkout
    # -------------------------------------------------------------------------

    async def payment_links(self, request: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a hosted payment link.

        Args:
            request: ``CreatePaymentLinkRequest`` body

        Returns:
            Response body, with the shopper-facing ``url``

        Raises:
            GatewayRequestError: If the gateway rejects the request
        """
        url = f"{self.gateway_config.checkout_url}/paymentLinks"
        status, data = await self._post(url, request)

        if not 200 <= status < 300:
            raise GatewayRequestError(status, _error_message(data))

        return data

    # -------------------------------------------------------------------------
    # Modifications
    # -------------------------------------------------------------------------

    async def capture(self, request: Dict[str, Any], idempotency_key: Optional[str] = None) -> GatewayCommandResult:
        """Capture an authorised payment."""
        return await self._modify('capture', request, idempotency_key)

    async def refund(self, request: Dict[str, Any], idempotency_key: Optional[str] = None) -> GatewayCommandResult:
        """Refund a captured payment."""
        return await self._modify('refund', request, idempotency_key)

    async def cancel(self, request: Dict[str, Any], idempotency_key: Optional[str] = None) -> GatewayCommandResult:
        """Cancel an authorised payment."""
        return await self._modify('cancel', request, idempotency_key)

    async def _modify(
        self,
        operation: str,
        request: Dict[str, Any],
        idempotency_key: Optional[str]
    ) -> GatewayCommandResult:
        """
        Send a modification request.

        Returns:
            Parsed result; validation rejections are returned, not raised

        Raises:
            GatewayRequestError: On authentication or server errors
        """
        url = f"{self.gateway_config.payment_url}/{operation}"
        status, data = await self._post(url, request, idempotency_key)

        if 200 <= status < 300 or status in self.REJECTED_STATUSES:
            result = GatewayCommandResult.from_response(data)
            logger.debug(
                f"Adyen {operation} for {request.get('originalReference')}: {result.status}"
            )
            return result

        raise GatewayRequestError(status, _error_message(data))

    async def _post(
        self,
        url: str,
        payload: Dict[str, Any],
        idempotency_key: Optional[str] = None
    ) -> Tuple[int, Dict[str, Any]]:
        """
        POST a JSON payload.

        Returns:
            Tuple of (status code, decoded body)
        """
        if not self._session:
            await self.start()

        headers = {}
        if idempotency_key:
            headers['Idempotency-Key'] = idempotency_key

        async with self._session.post(url, json=payload, headers=headers) as response:
            body = await response.text()

        try:
            data = json.loads(body) if body else {}
        except json.JSONDecodeError:
            data = {'message': body[:200]}

        if not isinstance(data, dict):
            data = {'message': str(data)}

        return response.status, data


def _error_message(data: Dict[str, Any]) -> str:
    error_code = data.get('errorCode')
    message = data.get('message') or 'Unknown error'
    return f"{error_code}: {message}" if error_code else message
