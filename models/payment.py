"""
Payment data model.

Represents a single payment attempt tracked against the Adyen gateway.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Any, Dict, Optional, Union


# ISO 4217 currencies whose minor unit is not 1/100
CURRENCY_EXPONENTS = {
    'CVE': 0,
    'IDR': 0,
    'ISK': 0,
    'JPY': 0,
    'KRW': 0,
    'VND': 0,
    'XAF': 0,
    'XOF': 0,
    'XPF': 0,
    'BHD': 3,
    'JOD': 3,
    'KWD': 3,
    'LYD': 3,
    'OMR': 3,
    'TND': 3,
}

DEFAULT_CURRENCY_EXPONENT = 2


def currency_exponent(currency: Optional[str]) -> int:
    """Number of decimal places in a currency's minor unit."""
    if not currency:
        return DEFAULT_CURRENCY_EXPONENT
    return CURRENCY_EXPONENTS.get(currency.upper(), DEFAULT_CURRENCY_EXPONENT)


def to_minor_units(
    amount: Union[Decimal, float, int, str],
    currency: Optional[str] = None
) -> int:
    """
    Convert a major-unit amount to the gateway's integer minor units.

    Floats are converted through their shortest string form so that
    ``19.99`` becomes ``1999`` rather than ``1998``.

    Args:
        amount: Amount in major units (e.g. 19.99)
        currency: ISO 4217 currency code (defaults to two decimals)

    Returns:
        Amount in minor units (e.g. 1999)
    """
    if isinstance(amount, float):
        amount = Decimal(repr(amount))
    elif not isinstance(amount, Decimal):
        amount = Decimal(str(amount))

    scaled = amount.scaleb(currency_exponent(currency))
    return int(scaled.quantize(Decimal(1), rounding=ROUND_HALF_UP))


class PaymentStatus(str, Enum):
    """Local payment lifecycle states."""
    PENDING = "pending"
    AUTHORIZED = "authorized"
    ACQUIRED = "acquired"
    DECLINED = "declined"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({
    PaymentStatus.ACQUIRED,
    PaymentStatus.DECLINED,
    PaymentStatus.CANCELLED,
    PaymentStatus.REFUNDED,
})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Payment:
    """
    A payment attempt for a purchase order.

    Attributes:
        reference_id: Locally assigned merchant reference (immutable)
        amount: Amount in major units
        currency: ISO 4217 currency code
        status: Current lifecycle state
        order_id: Guid of the owning purchase order
        order_number: Human-readable order number
        transaction_id: Adyen PSP reference, set once authorised
        payment_method: Name of the payment method configuration
        version: Optimistic concurrency counter, 0 until first saved
        id: Database row id
    """

    reference_id: str
    amount: Decimal
    currency: str
    status: PaymentStatus = PaymentStatus.PENDING
    order_id: Optional[str] = None
    order_number: Optional[str] = None
    transaction_id: Optional[str] = None
    payment_method: str = 'adyen'
    version: int = 0
    id: Optional[int] = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self):
        """Normalize field types."""
        if isinstance(self.status, str):
            self.status = PaymentStatus(self.status)

        if not isinstance(self.amount, Decimal):
            self.amount = Decimal(str(self.amount))

        self.currency = self.currency.upper()

        if not self.reference_id:
            raise ValueError("Payment reference is required")

    @classmethod
    def create(
        cls,
        amount: Union[Decimal, float, str],
        currency: str,
        order_id: Optional[str] = None,
        order_number: Optional[str] = None,
        payment_method: str = 'adyen'
    ) -> 'Payment':
        """
        Factory method for a new pending payment with a fresh reference.

        Args:
            amount: Amount in major units
            currency: ISO 4217 currency code
            order_id: Owning purchase order guid
            order_number: Owning purchase order number
            payment_method: Payment method name

        Returns:
            Unsaved Payment in the pending state
        """
        return cls(
            reference_id=uuid.uuid4().hex,
            amount=amount,
            currency=currency,
            order_id=order_id,
            order_number=order_number,
            payment_method=payment_method
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Payment':
        """
        Create Payment from dictionary (e.g., database row).

        Args:
            data: Dictionary with payment data

        Returns:
            Payment instance
        """
        return cls(
            id=data.get('id'),
            reference_id=data['reference_id'],
            amount=Decimal(str(data['amount'])),
            currency=data['currency'],
            status=data.get('status', PaymentStatus.PENDING.value),
            order_id=data.get('order_id'),
            order_number=data.get('order_number'),
            transaction_id=data.get('transaction_id'),
            payment_method=data.get('payment_method') or 'adyen',
            version=int(data.get('version') or 0),
            created_at=_parse_timestamp(data.get('created_at')),
            updated_at=_parse_timestamp(data.get('updated_at'))
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'id': self.id,
            'reference_id': self.reference_id,
            'transaction_id': self.transaction_id,
            'amount': str(self.amount),
            'currency': self.currency,
            'status': self.status.value,
            'order_id': self.order_id,
            'order_number': self.order_number,
            'payment_method': self.payment_method,
            'version': self.version,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        }

    def minor_amount(self) -> int:
        """Amount in the gateway's integer minor units."""
        return to_minor_units(self.amount, self.currency)

    def record_transaction_id(self, psp_reference: Optional[str]) -> bool:
        """
        Store the gateway transaction id if none is recorded yet.

        Returns:
            True if the id was stored
        """
        if not psp_reference or self.transaction_id:
            return False
        self.transaction_id = psp_reference
        return True

    def short_reference(self) -> str:
        """Get shortened reference for display."""
        if len(self.reference_id) > 16:
            return f"{self.reference_id[:8]}...{self.reference_id[-4:]}"
        return self.reference_id

    def __repr__(self) -> str:
        return (
            f"Payment(reference={self.short_reference()}, "
            f"status={self.status.value}, "
            f"amount={self.amount} {self.currency})"
        )


def _parse_timestamp(value) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value)
    return _utcnow()
