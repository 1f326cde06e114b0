"""
Notification data models.

Represents notification items delivered by Adyen webhooks and the
responses of synchronous modification (capture/refund/cancel) calls.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class EventCode(str, Enum):
    """Adyen notification event codes handled or recognised locally."""
    AUTHORISATION = "AUTHORISATION"
    CAPTURE = "CAPTURE"
    CAPTURE_FAILED = "CAPTURE_FAILED"
    REFUND = "REFUND"
    REFUND_FAILED = "REFUND_FAILED"
    REFUNDED_REVERSED = "REFUNDED_REVERSED"
    CANCELLATION = "CANCELLATION"
    CANCEL_OR_REFUND = "CANCEL_OR_REFUND"
    CHARGEBACK = "CHARGEBACK"
    PENDING = "PENDING"
    REPORT_AVAILABLE = "REPORT_AVAILABLE"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional['EventCode']:
        """Return the matching event code, or None if unrecognised."""
        try:
            return cls(value)
        except ValueError:
            return None


@dataclass
class NotificationItem:
    """
    One event reported by the gateway.

    Field names follow the ``NotificationRequestItem`` JSON object.
    Raw string values are kept so the signature can be recomputed
    exactly as sent.
    """

    event_code: str
    success: bool
    merchant_reference: Optional[str] = None
    psp_reference: Optional[str] = None
    original_reference: Optional[str] = None
    merchant_account_code: Optional[str] = None
    amount_value: Optional[Any] = None
    amount_currency: Optional[str] = None
    reason: Optional[str] = None
    additional_data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'NotificationItem':
        """
        Create NotificationItem from a ``NotificationRequestItem`` object.

        Args:
            data: Decoded JSON object

        Returns:
            NotificationItem instance
        """
        amount = data.get('amount') or {}
        if not isinstance(amount, dict):
            amount = {}

        additional_data = data.get('additionalData') or {}
        if not isinstance(additional_data, dict):
            additional_data = {}

        return cls(
            event_code=str(data.get('eventCode') or ''),
            success=_parse_bool(data.get('success')),
            merchant_reference=data.get('merchantReference'),
            psp_reference=data.get('pspReference'),
            original_reference=data.get('originalReference'),
            merchant_account_code=data.get('merchantAccountCode'),
            amount_value=amount.get('value'),
            amount_currency=amount.get('currency'),
            reason=data.get('reason'),
            additional_data=additional_data
        )

    @property
    def event(self) -> Optional[EventCode]:
        """Parsed event code, None if not recognised."""
        return EventCode.parse(self.event_code)

    @property
    def hmac_signature(self) -> Optional[str]:
        """Signature sent by the gateway in ``additionalData``."""
        return self.additional_data.get('hmacSignature')

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to a ``NotificationRequestItem`` object."""
        data = {
            'eventCode': self.event_code,
            'success': 'true' if self.success else 'false',
            'merchantReference': self.merchant_reference,
            'pspReference': self.psp_reference,
            'originalReference': self.original_reference,
            'merchantAccountCode': self.merchant_account_code,
            'reason': self.reason,
            'additionalData': dict(self.additional_data)
        }
        if self.amount_value is not None or self.amount_currency is not None:
            data['amount'] = {
                'value': self.amount_value,
                'currency': self.amount_currency
            }
        return {k: v for k, v in data.items() if v is not None}

    def __repr__(self) -> str:
        return (
            f"NotificationItem(event={self.event_code}, "
            f"success={self.success}, "
            f"reference={self.merchant_reference}, "
            f"psp={self.psp_reference})"
        )


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() == 'true'
    return False


class ModificationResponse(str, Enum):
    """Acknowledgement codes returned by the modification API."""
    CAPTURE_RECEIVED = "[capture-received]"
    REFUND_RECEIVED = "[refund-received]"
    CANCEL_RECEIVED = "[cancel-received]"
    CANCEL_OR_REFUND_RECEIVED = "[cancelOrRefund-received]"

    @property
    def label(self) -> str:
        """CamelCase name, e.g. ``CaptureReceived``."""
        return ''.join(part.capitalize() for part in self.name.split('_'))

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional['ModificationResponse']:
        """Match either the wire code or the CamelCase label."""
        if not value:
            return None
        for member in cls:
            if value in (member.value, member.label):
                return member
        return None


@dataclass(frozen=True)
class GatewayCommandResult:
    """Outcome of a synchronous capture/refund/cancel call."""

    response: Optional[ModificationResponse]
    status: str
    psp_reference: Optional[str] = None

    @classmethod
    def from_response(cls, data: Dict[str, Any]) -> 'GatewayCommandResult':
        """
        Build a result from the modification API's JSON answer.

        Rejections carry ``errorCode``/``message`` instead of ``response``.
        """
        raw = data.get('response')
        response = ModificationResponse.parse(raw)

        if response is not None:
            status = response.label
        elif raw:
            status = str(raw)
        else:
            error_code = data.get('errorCode')
            message = data.get('message') or 'Unknown response'
            status = f"{error_code}: {message}" if error_code else message

        return cls(
            response=response,
            status=status,
            psp_reference=data.get('pspReference')
        )
