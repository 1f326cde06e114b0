"""
Unit tests for payment link initiation.

Run with: pytest tests/test_payment_link.py -v
"""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import MERCHANT_ACCOUNT, make_payment
from errors import RedirectUnavailable
from models.order import BillingAddress, Customer, PaymentRequest, PurchaseOrder
from services.payment_link import PaymentLinkInitiator
from services.urls import AbsoluteUrlResolver


@pytest.fixture
def purchase_order():
    return PurchaseOrder(
        guid='order-guid-1',
        order_number='WEB-1001',
        billing_currency='EUR',
        customer=Customer(guid='cust-1', email='shopper@example.com'),
        billing_address=BillingAddress(
            first_name='Ada',
            last_name='Lovelace',
            country_culture='en-GB'
        )
    )


@pytest.fixture
def factory():
    async def create(payment_request):
        return make_payment(
            reference='NEWREF',
            amount=payment_request.amount,
            currency=payment_request.purchase_order.billing_currency
        )
    return AsyncMock(side_effect=create)


@pytest.fixture
def initiator(gateway_client, payment_method, factory):
    return PaymentLinkInitiator(
        gateway_client,
        payment_method,
        AbsoluteUrlResolver('https://shop.example.com'),
        factory
    )


class TestBuildRequest:
    """Tests for the payment link request body."""

    def test_full_request(self, initiator, purchase_order):
        """Test all fields derived from the order."""
        request = initiator.build_request(PaymentRequest(
            purchase_order=purchase_order,
            amount=Decimal('19.99'),
            payment=make_payment()
        ))

        assert request == {
            'amount': {'currency': 'EUR', 'value': 1999},
            'merchantAccount': MERCHANT_ACCOUNT,
            'reference': 'R1',
            'returnUrl': 'https://shop.example.com/checkout/complete',
            'metadata': {
                'orderReference': 'R1',
                'orderId': 'order-guid-1',
                'orderNumber': 'WEB-1001'
            },
            'shopperReference': 'cust-1',
            'shopperEmail': 'shopper@example.com',
            'shopperName': {'firstName': 'Ada', 'lastName': 'Lovelace'},
            'countryCode': 'GB'
        }

    def test_minimal_order(self, initiator):
        """Test an order without customer or address."""
        order = PurchaseOrder(guid='g', order_number='1', billing_currency='JPY')

        request = initiator.build_request(PaymentRequest(
            purchase_order=order,
            amount='1500',
            payment=make_payment(currency='JPY')
        ))

        assert request['amount'] == {'currency': 'JPY', 'value': 1500}
        assert 'shopperReference' not in request
        assert 'shopperName' not in request
        assert 'countryCode' not in request

    def test_absolute_return_url_kept(self, gateway_client, payment_method, factory, purchase_order):
        """Test that an absolute return URL is used unchanged."""
        payment_method.return_url = 'https://pay.example.org/done?x=1'
        initiator = PaymentLinkInitiator(
            gateway_client,
            payment_method,
            AbsoluteUrlResolver('https://shop.example.com'),
            factory
        )

        request = initiator.build_request(PaymentRequest(
            purchase_order=purchase_order,
            amount=1,
            payment=make_payment()
        ))

        assert request['returnUrl'] == 'https://pay.example.org/done?x=1'


class TestRequestPayment:
    """Tests for request_payment."""

    async def test_redirects_to_link(self, initiator, gateway_client, purchase_order):
        """Test that the shopper is redirected to the returned URL."""
        redirect = MagicMock()
        payment = make_payment()

        result = await initiator.request_payment(
            PaymentRequest(purchase_order=purchase_order, amount=Decimal('19.99'), payment=payment),
            redirect
        )

        assert result is payment
        redirect.assert_called_once_with('https://test.adyen.link/PL1')
        gateway_client.payment_links.assert_awaited_once()

    async def test_creates_payment_when_missing(self, initiator, factory, purchase_order):
        """Test that a payment is created for a request without one."""
        payment_request = PaymentRequest(purchase_order=purchase_order, amount=Decimal('5.00'))

        result = await initiator.request_payment(payment_request, MagicMock())

        factory.assert_awaited_once_with(payment_request)
        assert result.reference_id == 'NEWREF'
        assert payment_request.payment is result

    async def test_existing_payment_is_reused(self, initiator, factory, purchase_order):
        """Test that no new payment is created when one is given."""
        await initiator.request_payment(
            PaymentRequest(purchase_order=purchase_order, amount=1, payment=make_payment()),
            MagicMock()
        )

        factory.assert_not_awaited()

    @pytest.mark.parametrize('response', [{}, {'url': ''}, {'url': '   '}, None])
    async def test_no_url(self, initiator, gateway_client, purchase_order, response):
        """Test that a missing link fails without redirecting."""
        gateway_client.payment_links.return_value = response
        redirect = MagicMock()

        with pytest.raises(RedirectUnavailable, match="Could not redirect to Adyen payment page."):
            await initiator.request_payment(
                PaymentRequest(purchase_order=purchase_order, amount=1, payment=make_payment()),
                redirect
            )

        redirect.assert_not_called()


class TestAbsoluteUrlResolver:
    """Tests for AbsoluteUrlResolver."""

    def test_relative_path(self):
        """Test joining a path to the base URL."""
        resolver = AbsoluteUrlResolver('http://localhost:8000')

        assert resolver.resolve('/checkout/complete') == 'http://localhost:8000/checkout/complete'

    def test_relative_base_rejected(self):
        """Test that the base URL must be absolute."""
        with pytest.raises(ValueError):
            AbsoluteUrlResolver('/shop')
