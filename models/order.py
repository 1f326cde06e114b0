"""
Order data models.

The order system's view of a purchase, as needed to request a
hosted payment link.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional

from .payment import Payment


def _require_object(name: str, value: Any) -> None:
    if not isinstance(value, dict):
        raise TypeError(f"{name} must be an object, got {type(value).__name__}")


@dataclass
class Customer:
    """Shopper placing the order."""
    guid: str
    email: Optional[str] = None


@dataclass
class BillingAddress:
    """Billing address of the order."""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    country_culture: Optional[str] = None

    @property
    def country_code(self) -> Optional[str]:
        """Country part of a culture name, e.g. ``GB`` for ``en-GB``."""
        if not self.country_culture:
            return None
        return self.country_culture.split('-')[-1].upper()


@dataclass
class PurchaseOrder:
    """Purchase order being paid for."""
    guid: str
    order_number: str
    billing_currency: str
    customer: Optional[Customer] = None
    billing_address: Optional[BillingAddress] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PurchaseOrder':
        """
        Create PurchaseOrder from a request body.

        Args:
            data: Dictionary with order data

        Returns:
            PurchaseOrder instance

        Raises:
            KeyError: If a required field is missing
            TypeError: If the order or a nested field is not an object
        """
        _require_object('order', data)
        customer_data = data.get('customer')
        address_data = data.get('billing_address')
        if customer_data:
            _require_object('customer', customer_data)
        if address_data:
            _require_object('billing_address', address_data)

        return cls(
            guid=data['order_id'],
            order_number=data['order_number'],
            billing_currency=data['currency'],
            customer=Customer(
                guid=customer_data['guid'],
                email=customer_data.get('email')
            ) if customer_data else None,
            billing_address=BillingAddress(
                first_name=address_data.get('first_name'),
                last_name=address_data.get('last_name'),
                country_culture=address_data.get('country_culture')
            ) if address_data else None
        )


@dataclass
class PaymentRequest:
    """
    Request to pay for (part of) a purchase order.

    ``payment`` is None until a payment attempt has been created.
    """
    purchase_order: PurchaseOrder
    amount: Decimal
    payment: Optional[Payment] = None

    def __post_init__(self):
        if not isinstance(self.amount, Decimal):
            self.amount = Decimal(str(self.amount))
