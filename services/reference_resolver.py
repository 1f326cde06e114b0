"""
Reference Resolver.

Maps a merchant reference echoed back by the gateway to the single
locally stored payment it identifies.
"""

import logging
from typing import List, Optional, Protocol

from errors import DataIntegrityError, PaymentNotFound
from models.payment import Payment

logger = logging.getLogger(__name__)


class PaymentStore(Protocol):
    """Persistence collaborator for payments."""

    async def find_payments_by_reference(self, reference_id: str) -> List[Payment]:
        ...

    async def save_payment(self, payment: Payment) -> Payment:
        ...


class ReferenceResolver:
    """Looks up exactly one payment per merchant reference."""

    def __init__(self, store: PaymentStore):
        self.store = store

    async def resolve(self, merchant_reference: Optional[str]) -> Payment:
        """
        Find the payment for a merchant reference.

        Args:
            merchant_reference: Reference sent with the notification

        Returns:
            The matching payment

        Raises:
            PaymentNotFound: If no payment matches
            DataIntegrityError: If more than one payment matches
        """
        if not merchant_reference:
            raise PaymentNotFound(merchant_reference)

        payments = await self.store.find_payments_by_reference(merchant_reference)

        if not payments:
            logger.warning(f"No payment found for reference {merchant_reference}")
            raise PaymentNotFound(merchant_reference)

        if len(payments) > 1:
            logger.error(
                f"Found {len(payments)} payments for reference {merchant_reference}"
            )
            raise DataIntegrityError(merchant_reference, len(payments))

        return payments[0]
