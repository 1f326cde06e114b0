"""
Configuration module for the Adyen payment integration.

Loads settings from environment variables with sensible defaults.
"""

import binascii
import os
from dataclasses import dataclass
from typing import List, Optional
from dotenv import load_dotenv

from errors import ConfigurationError

# Load environment variables from .env file
load_dotenv()


@dataclass
class GatewayConfig:
    """Adyen API connection configuration."""
    environment: str
    api_key: str
    live_url_prefix: str = ''
    timeout: int = 30

    @property
    def is_live(self) -> bool:
        return self.environment == 'live'

    @property
    def checkout_url(self) -> str:
        """Base URL of the Checkout API."""
        if self.is_live:
            return (
                f"https://{self.live_url_prefix}-checkout-live.adyenpayments.com"
                "/checkout/v71"
            )
        return "https://checkout-test.adyen.com/v71"

    @property
    def payment_url(self) -> str:
        """Base URL of the classic Payment (modification) API."""
        if self.is_live:
            return (
                f"https://{self.live_url_prefix}-pal-live.adyenpayments.com"
                "/pal/servlet/Payment/v68"
            )
        return "https://pal-test.adyen.com/pal/servlet/Payment/v68"


@dataclass
class PaymentMethodConfig:
    """
    Per payment method settings.

    Attributes:
        hmac_key: Hex-encoded HMAC key for notification signatures
        merchant_account: Adyen merchant account code
        return_url: Path or URL the shopper returns to after paying
        name: Payment method name stored on payments
    """
    hmac_key: str
    merchant_account: str
    return_url: str
    name: str = 'adyen'

    def validate(self) -> None:
        """
        Check the settings are usable.

        Raises:
            ConfigurationError: If a required value is missing or invalid
        """
        if not self.merchant_account:
            raise ConfigurationError("Merchant account is required")

        if not self.hmac_key:
            raise ConfigurationError("HMAC key is required")

        try:
            binascii.unhexlify(self.hmac_key)
        except (binascii.Error, ValueError):
            raise ConfigurationError("HMAC key must be hex-encoded")

        if not self.return_url:
            raise ConfigurationError("Return URL is required")

    def __repr__(self) -> str:
        return (
            f"PaymentMethodConfig(name={self.name}, "
            f"merchant_account={self.merchant_account}, "
            f"return_url={self.return_url})"
        )


@dataclass
class DatabaseConfig:
    """Database connection configuration."""
    url: str


@dataclass
class APIConfig:
    """API server configuration."""
    host: str
    port: int
    public_base_url: str


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str
    file: Optional[str]


@dataclass
class ServiceConfig:
    """Service-level configuration."""
    name: str


class Config:
    """
    Main configuration class that aggregates all config sections.

    Usage:
        from config import config

        print(config.gateway.checkout_url)
        print(config.payment_method.merchant_account)
    """

    def __init__(self):
        self._load_config()

    def _load_config(self):
        """Load all configuration from environment variables."""

        # Adyen API
        self.gateway = GatewayConfig(
            environment=os.getenv('ADYEN_ENVIRONMENT', 'test').lower(),
            api_key=os.getenv('ADYEN_API_KEY', ''),
            live_url_prefix=os.getenv('ADYEN_LIVE_URL_PREFIX', ''),
            timeout=int(os.getenv('ADYEN_TIMEOUT', '30'))
        )

        # Payment method settings
        self.payment_method = PaymentMethodConfig(
            hmac_key=os.getenv('ADYEN_HMAC_KEY', ''),
            merchant_account=os.getenv('ADYEN_MERCHANT_ACCOUNT', ''),
            return_url=os.getenv('ADYEN_RETURN_URL', '/checkout/complete')
        )

        # Database configuration
        self.database = DatabaseConfig(
            url=os.getenv('DATABASE_URL', 'sqlite:///./adyen_payments.db')
        )

        # API configuration
        self.api = APIConfig(
            host=os.getenv('API_HOST', '0.0.0.0'),
            port=int(os.getenv('API_PORT', '8000')),
            public_base_url=os.getenv('PUBLIC_BASE_URL', 'http://localhost:8000')
        )

        # Logging configuration
        self.logging = LoggingConfig(
            level=os.getenv('LOG_LEVEL', 'INFO'),
            file=os.getenv('LOG_FILE')
        )

        # Service configuration
        self.service = ServiceConfig(
            name=os.getenv('SERVICE_NAME', 'AdyenPaymentNotifications')
        )

    def validate(self) -> List[str]:
        """
        Validate required configuration values.

        Returns:
            List of validation error messages (empty if all valid)
        """
        errors = []

        if not self.gateway.api_key:
            errors.append("ADYEN_API_KEY is required")

        if self.gateway.environment not in ('test', 'live'):
            errors.append("ADYEN_ENVIRONMENT must be 'test' or 'live'")

        if self.gateway.is_live and not self.gateway.live_url_prefix:
            errors.append("ADYEN_LIVE_URL_PREFIX is required in the live environment")

        try:
            self.payment_method.validate()
        except ConfigurationError as e:
            errors.append(str(e))

        if not self.database.url:
            errors.append("DATABASE_URL is required")

        if not self.api.public_base_url.startswith(('http://', 'https://')):
            errors.append("PUBLIC_BASE_URL must be an absolute HTTP(S) URL")

        return errors


# Global configuration instance
config = Config()
