"""Services module for the Adyen payment integration."""

from .command_dispatcher import GatewayCommandDispatcher
from .gateway_client import AdyenClient
from .integration import AdyenPaymentIntegration, PaymentGatewayIntegration
from .notification_parser import parse_notification
from .payment_link import PaymentLinkInitiator
from .reference_resolver import ReferenceResolver
from .signature import SignatureVerifier, calculate_signature, verify_signature
from .status_reconciler import StatusReconciler
from .urls import AbsoluteUrlResolver

__all__ = [
    'AbsoluteUrlResolver',
    'AdyenClient',
    'AdyenPaymentIntegration',
    'GatewayCommandDispatcher',
    'PaymentGatewayIntegration',
    'PaymentLinkInitiator',
    'ReferenceResolver',
    'SignatureVerifier',
    'StatusReconciler',
    'calculate_signature',
    'parse_notification',
    'verify_signature'
]
