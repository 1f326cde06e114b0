"""
Notification signature verification.

Adyen signs each notification item with HMAC-SHA256 over a colon
separated list of its fields, using the hex-encoded HMAC key
configured for the merchant account. The base64 digest is sent in
``additionalData.hmacSignature``.
"""

import base64
import binascii
import hashlib
import hmac
import logging
from typing import Optional

from models.notification import NotificationItem

logger = logging.getLogger(__name__)


def signing_string(item: NotificationItem) -> str:
    """
    Build the canonical string the gateway signs.

    Order: pspReference, originalReference, merchantAccountCode,
    merchantReference, amount value, amount currency, eventCode, success.
    Missing values are empty.
    """
    values = (
        item.psp_reference,
        item.original_reference,
        item.merchant_account_code,
        item.merchant_reference,
        item.amount_value,
        item.amount_currency,
        item.event_code,
        'true' if item.success else 'false'
    )
    return ':'.join('' if value is None else str(value) for value in values)


def calculate_signature(item: NotificationItem, hmac_key: str) -> str:
    """
    Calculate the HMAC signature of a notification item.

    Args:
        item: Notification item to sign
        hmac_key: Hex-encoded HMAC key

    Returns:
        Base64-encoded HMAC-SHA256 signature

    Raises:
        ValueError: If the key is not valid hex
    """
    try:
        key = binascii.unhexlify(hmac_key)
    except (binascii.Error, TypeError) as e:
        raise ValueError("HMAC key must be hex-encoded") from e

    digest = hmac.new(
        key,
        signing_string(item).encode('utf-8'),
        hashlib.sha256
    ).digest()

    return base64.b64encode(digest).decode('ascii')


def verify_signature(item: NotificationItem, hmac_key: Optional[str]) -> bool:
    """
    Verify that a notification item was signed with the merchant's key.

    Never raises: a missing signature, a malformed key or malformed
    fields make the item unverifiable and return False.

    Args:
        item: Notification item carrying ``hmacSignature``
        hmac_key: Hex-encoded HMAC key

    Returns:
        True if the signature is valid
    """
    signature = item.hmac_signature
    if not signature or not isinstance(signature, str) or not hmac_key:
        return False

    try:
        expected = calculate_signature(item, hmac_key)
    except (ValueError, TypeError) as e:
        logger.debug(f"Cannot compute signature for {item.psp_reference}: {e}")
        return False

    try:
        return hmac.compare_digest(expected.encode('ascii'), signature.encode('ascii'))
    except UnicodeEncodeError:
        return False


class SignatureVerifier:
    """Verifies notification items against one payment method's key."""

    def __init__(self, hmac_key: str):
        self._hmac_key = hmac_key

    def verify(self, item: NotificationItem) -> bool:
        """Check one item's signature."""
        return verify_signature(item, self._hmac_key)

    def sign(self, item: NotificationItem) -> NotificationItem:
        """Attach a signature to an item (for test and example senders)."""
        item.additional_data['hmacSignature'] = calculate_signature(item, self._hmac_key)
        return item

    def __repr__(self) -> str:
        return "SignatureVerifier(hmac_key=***)"
