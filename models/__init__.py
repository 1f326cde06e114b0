"""Data models for the Adyen payment integration."""

from .notification import EventCode, GatewayCommandResult, ModificationResponse, NotificationItem
from .order import BillingAddress, Customer, PaymentRequest, PurchaseOrder
from .payment import Payment, PaymentStatus, to_minor_units

__all__ = [
    'BillingAddress',
    'Customer',
    'EventCode',
    'GatewayCommandResult',
    'ModificationResponse',
    'NotificationItem',
    'Payment',
    'PaymentRequest',
    'PaymentStatus',
    'PurchaseOrder',
    'to_minor_units'
]
