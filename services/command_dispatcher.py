"""
Gateway Command Dispatcher.

Issues capture, refund and cancel commands for a payment's recorded
PSP reference and turns the gateway acknowledgement into a
``(success, status)`` result. A rejected command is an expected
business outcome and is never raised.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, FrozenSet, Optional, Protocol, Tuple

from config import PaymentMethodConfig
from models.notification import GatewayCommandResult, ModificationResponse
from models.payment import Payment

logger = logging.getLogger(__name__)


class ModificationClient(Protocol):
    """Gateway collaborator for modification operations."""

    async def capture(self, request: Dict[str, Any], idempotency_key: Optional[str] = None) -> GatewayCommandResult:
        ...

    async def refund(self, request: Dict[str, Any], idempotency_key: Optional[str] = None) -> GatewayCommandResult:
        ...

    async def cancel(self, request: Dict[str, Any], idempotency_key: Optional[str] = None) -> GatewayCommandResult:
        ...


CAPTURE_ACCEPTED: FrozenSet[ModificationResponse] = frozenset({
    ModificationResponse.CAPTURE_RECEIVED,
})

REFUND_ACCEPTED: FrozenSet[ModificationResponse] = frozenset({
    ModificationResponse.REFUND_RECEIVED,
    ModificationResponse.CANCEL_OR_REFUND_RECEIVED,
})

CANCEL_ACCEPTED: FrozenSet[ModificationResponse] = frozenset({
    ModificationResponse.CANCEL_RECEIVED,
    ModificationResponse.CANCEL_OR_REFUND_RECEIVED,
})


NO_TRANSACTION_ID = "Payment has no transaction id"


def idempotency_key(operation: str, payment: Payment) -> str:
    """
    Key under which the gateway deduplicates a command.

    Raises:
        ValueError: If the payment has no transaction id
    """
    if not payment.transaction_id:
        raise ValueError(f"Payment {payment.reference_id} has no transaction id")
    return f"{operation}-{payment.transaction_id}"


class GatewayCommandDispatcher:
    """Sends modification commands for payments."""

    def __init__(self, client: ModificationClient, payment_method: PaymentMethodConfig):
        """
        Initialize the dispatcher.

        Args:
            client: Modification API client
            payment_method: Validated payment method settings
        """
        self.client = client
        self.payment_method = payment_method

    async def capture(self, payment: Payment) -> Tuple[bool, str]:
        """
        Capture the authorised amount of a payment.

        Returns:
            Tuple of (success, gateway status)
        """
        request = self._request(payment)
        request['modificationAmount'] = self._amount(payment)

        return await self._send('capture', self.client.capture, payment, request, CAPTURE_ACCEPTED)

    async def refund(self, payment: Payment) -> Tuple[bool, str]:
        """
        Refund the full amount of a payment.

        Returns:
            Tuple of (success, gateway status)
        """
        request = self._request(payment)
        request['modificationAmount'] = self._amount(payment)

        return await self._send('refund', self.client.refund, payment, request, REFUND_ACCEPTED)

    async def cancel(self, payment: Payment) -> Tuple[bool, str]:
        """
        Cancel an authorised, uncaptured payment.

        Returns:
            Tuple of (success, gateway status)
        """
        request = self._request(payment)

        return await self._send('cancel', self.client.cancel, payment, request, CANCEL_ACCEPTED)

    async def _send(
        self,
        operation: str,
        send: Callable[..., Awaitable[GatewayCommandResult]],
        payment: Payment,
        request: Dict[str, Any],
        accepted: FrozenSet[ModificationResponse]
    ) -> Tuple[bool, str]:
        if not payment.transaction_id:
            logger.warning(
                f"Not sending {operation} for payment {payment.short_reference()}: "
                "no transaction id recorded"
            )
            return False, NO_TRANSACTION_ID

        result = await send(request, idempotency_key(operation, payment))
        return self._outcome(operation, payment, result, accepted)

    def _request(self, payment: Payment) -> Dict[str, Any]:
        return {
            'merchantAccount': self.payment_method.merchant_account,
            'originalReference': payment.transaction_id,
            'reference': payment.reference_id
        }

    @staticmethod
    def _amount(payment: Payment) -> Dict[str, Any]:
        return {
            'currency': payment.currency,
            'value': payment.minor_amount()
        }

    @staticmethod
    def _outcome(
        operation: str,
        payment: Payment,
        result: GatewayCommandResult,
        accepted: FrozenSet[ModificationResponse]
    ) -> Tuple[bool, str]:
        success = result.response in accepted

        if success:
            logger.info(
                f"Adyen accepted {operation} for payment {payment.short_reference()}: "
                f"{result.status}"
            )
        else:
            logger.warning(
                f"Adyen did not accept {operation} for payment {payment.short_reference()}: "
                f"{result.status}"
            )

        return success, result.status
