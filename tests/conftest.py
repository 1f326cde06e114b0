"""Shared fixtures for the Adyen integration tests."""

import json
from decimal import Decimal
from typing import List
from unittest.mock import AsyncMock, MagicMock

import pytest

from config import PaymentMethodConfig
from models.notification import GatewayCommandResult, NotificationItem
from models.payment import Payment
from services.signature import calculate_signature

HMAC_KEY = "44782DEF547AAA06C910C43932B1EB0C71FC68D9D0C057550C48EC2ACF6BA056"
OTHER_HMAC_KEY = "11112222333344445555666677778888999900001111222233334444555566AA"
MERCHANT_ACCOUNT = "TestMerchantECOM"


class FakePaymentStore:
    """In-memory payment store recording lookups and saves."""

    def __init__(self, payments=()):
        self.payments: List[Payment] = list(payments)
        self.lookups: List[str] = []
        self.saved: List[Payment] = []
        self._next_id = 1

    async def find_payments_by_reference(self, reference_id):
        self.lookups.append(reference_id)
        return [p for p in self.payments if p.reference_id == reference_id]

    async def save_payment(self, payment):
        if all(p is not payment for p in self.payments):
            payment.id = self._next_id
            self._next_id += 1
            self.payments.append(payment)
        payment.version += 1
        self.saved.append(payment)
        return payment


def make_item(
    reference="R1",
    event_code="AUTHORISATION",
    success=True,
    psp_reference="PSP1",
    hmac_key=HMAC_KEY,
    **fields
) -> NotificationItem:
    """Build a notification item, signed with ``hmac_key`` unless it is None."""
    item = NotificationItem(
        event_code=event_code,
        success=success,
        merchant_reference=reference,
        psp_reference=psp_reference,
        merchant_account_code=fields.pop('merchant_account_code', MERCHANT_ACCOUNT),
        amount_value=fields.pop('amount_value', 1999),
        amount_currency=fields.pop('amount_currency', 'EUR'),
        **fields
    )
    if hmac_key is not None:
        item.additional_data['hmacSignature'] = calculate_signature(item, hmac_key)
    return item


def make_body(*items: NotificationItem) -> bytes:
    """Serialize items into a webhook body as Adyen sends it."""
    return json.dumps({
        "live": "false",
        "notificationItems": [
            {"NotificationRequestItem": item.to_dict()} for item in items
        ]
    }, ensure_ascii=False).encode('utf-8')


def make_payment(reference="R1", **fields) -> Payment:
    fields.setdefault('amount', Decimal('19.99'))
    fields.setdefault('currency', 'EUR')
    fields.setdefault('order_id', 'order-guid-1')
    fields.setdefault('order_number', 'WEB-1001')
    fields.setdefault('id', 1)
    fields.setdefault('version', 1)
    return Payment(reference_id=reference, **fields)


@pytest.fixture
def payment_method():
    return PaymentMethodConfig(
        hmac_key=HMAC_KEY,
        merchant_account=MERCHANT_ACCOUNT,
        return_url="/checkout/complete"
    )


@pytest.fixture
def pending_payment():
    return make_payment()


@pytest.fixture
def store(pending_payment):
    return FakePaymentStore([pending_payment])


@pytest.fixture
def gateway_client():
    """Mock Adyen client with checkout and modification calls."""
    client = MagicMock()
    client.payment_links = AsyncMock(return_value={
        "id": "PL1",
        "url": "https://test.adyen.link/PL1"
    })
    client.capture = AsyncMock(return_value=GatewayCommandResult.from_response({
        "pspReference": "MOD1",
        "response": "[capture-received]"
    }))
    client.refund = AsyncMock(return_value=GatewayCommandResult.from_response({
        "pspReference": "MOD2",
        "response": "[refund-received]"
    }))
    client.cancel = AsyncMock(return_value=GatewayCommandResult.from_response({
        "pspReference": "MOD3",
        "response": "[cancel-received]"
    }))
    return client
