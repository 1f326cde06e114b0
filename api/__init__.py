"""API module for the Adyen payment integration."""

from .gateway_api import create_app, PaymentGatewayAPI

__all__ = ['create_app', 'PaymentGatewayAPI']
