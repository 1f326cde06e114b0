"""
Error types for the Adyen payment integration.

Signature failures and rejected gateway commands are not exceptions:
they are reported as ``False`` / ``(False, status)`` results.
"""


class PaymentGatewayError(Exception):
    """Base class for all integration errors."""


class ConfigurationError(PaymentGatewayError):
    """Required payment method settings are missing or invalid."""


class MalformedNotification(PaymentGatewayError, ValueError):
    """Webhook body is not a notification document."""


class PaymentNotFound(PaymentGatewayError):
    """No payment matches a merchant reference."""

    def __init__(self, reference):
        self.reference = reference
        super().__init__(f"Could not find a payment with reference '{reference}'")


class DataIntegrityError(PaymentGatewayError):
    """More than one payment matches a merchant reference."""

    def __init__(self, reference, count: int):
        self.reference = reference
        self.count = count
        super().__init__(
            f"Found {count} payments with reference '{reference}', expected one"
        )


class RedirectUnavailable(PaymentGatewayError):
    """The gateway returned no payment link to send the shopper to."""


class ConcurrentModificationError(PaymentGatewayError):
    """Payment was updated by someone else since it was loaded."""

    def __init__(self, reference, version: int):
        self.reference = reference
        self.version = version
        super().__init__(
            f"Payment '{reference}' changed since version {version}"
        )


class GatewayRequestError(PaymentGatewayError):
    """Gateway rejected a request with an authentication or server error."""

    def __init__(self, status: int, message: str):
        self.status = status
        self.message = message
        super().__init__(f"Gateway request failed ({status}): {message}")
