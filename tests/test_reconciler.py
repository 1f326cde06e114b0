"""
Unit tests for the payment status state machine.

Run with: pytest tests/test_reconciler.py -v
"""

from unittest.mock import AsyncMock

import pytest

from conftest import HMAC_KEY, OTHER_HMAC_KEY, FakePaymentStore, make_item, make_payment
from models.payment import PaymentStatus
from services.signature import SignatureVerifier
from services.status_reconciler import StatusReconciler, next_status


@pytest.fixture
def reconciler(store):
    return StatusReconciler(store, SignatureVerifier(HMAC_KEY))


class TestNextStatus:
    """Tests for the transition table."""

    def test_successful_events(self):
        """Test the forward transitions."""
        assert next_status(make_item(event_code='AUTHORISATION')) == PaymentStatus.AUTHORIZED
        assert next_status(make_item(event_code='CAPTURE')) == PaymentStatus.ACQUIRED

    def test_failed_events_decline(self):
        """Test that any unsuccessful event declines."""
        assert next_status(make_item(success=False)) == PaymentStatus.DECLINED
        assert next_status(make_item(event_code='CAPTURE', success=False)) == PaymentStatus.DECLINED

    def test_other_events_do_not_transition(self):
        """Test events without a status change."""
        for code in ('REFUND', 'CANCELLATION', 'REPORT_AVAILABLE', 'SOMETHING_NEW', ''):
            assert next_status(make_item(event_code=code)) is None


class TestApply:
    """Tests for applying verified items to a payment."""

    async def test_authorisation(self, reconciler, store, pending_payment):
        """Test pending -> authorized records the PSP reference."""
        changed = await reconciler.apply(pending_payment, make_item(psp_reference='PSP1'))

        assert changed
        assert pending_payment.status == PaymentStatus.AUTHORIZED
        assert pending_payment.transaction_id == 'PSP1'
        assert store.saved == [pending_payment]

    async def test_declined(self, reconciler, store, pending_payment):
        """Test pending -> declined on an unsuccessful authorisation."""
        changed = await reconciler.apply(pending_payment, make_item(success=False))

        assert changed
        assert pending_payment.status == PaymentStatus.DECLINED
        assert pending_payment.transaction_id is None
        assert store.saved == [pending_payment]

    async def test_capture_after_authorisation(self, reconciler, store):
        """Test authorized -> acquired keeps the authorisation reference."""
        payment = make_payment(status=PaymentStatus.AUTHORIZED, transaction_id='PSP1')
        item = make_item(event_code='CAPTURE', psp_reference='CAP1', original_reference='PSP1')

        assert await reconciler.apply(payment, item)
        assert payment.status == PaymentStatus.ACQUIRED
        assert payment.transaction_id == 'PSP1'

    async def test_capture_from_pending(self, reconciler, pending_payment):
        """Test pending -> acquired records the original reference."""
        item = make_item(event_code='CAPTURE', psp_reference='CAP1', original_reference='PSP1')

        assert await reconciler.apply(pending_payment, item)
        assert pending_payment.status == PaymentStatus.ACQUIRED
        assert pending_payment.transaction_id == 'PSP1'

    async def test_duplicate_authorisation(self, reconciler, store, pending_payment):
        """Test that a repeated delivery changes nothing."""
        item = make_item(psp_reference='PSP1')

        assert await reconciler.apply(pending_payment, item)
        assert not await reconciler.apply(pending_payment, item)

        assert pending_payment.status == PaymentStatus.AUTHORIZED
        assert pending_payment.transaction_id == 'PSP1'
        assert len(store.saved) == 1

    async def test_transaction_id_not_overwritten(self, reconciler):
        """Test that a later capture cannot replace the transaction id."""
        payment = make_payment(status=PaymentStatus.AUTHORIZED, transaction_id='PSP1')
        item = make_item(event_code='CAPTURE', psp_reference='CAP9', original_reference='OTHER')

        assert await reconciler.apply(payment, item)
        assert payment.transaction_id == 'PSP1'

    @pytest.mark.parametrize('status', [
        PaymentStatus.ACQUIRED,
        PaymentStatus.DECLINED,
        PaymentStatus.CANCELLED,
        PaymentStatus.REFUNDED,
    ])
    async def test_terminal_payments_ignore_items(self, reconciler, store, status):
        """Test that terminal payments never change."""
        payment = make_payment(status=status, transaction_id='PSP1')

        for item in (make_item(), make_item(success=False), make_item(event_code='CAPTURE')):
            assert not await reconciler.apply(payment, item)

        assert payment.status == status
        assert store.saved == []

    async def test_unknown_event(self, reconciler, store, pending_payment):
        """Test that successful non-transition events are ignored."""
        assert not await reconciler.apply(pending_payment, make_item(event_code='REPORT_AVAILABLE'))

        assert pending_payment.status == PaymentStatus.PENDING
        assert store.saved == []


class TestReconcile:
    """Tests for processing a full delivery."""

    async def test_invalid_signatures_are_skipped(self, reconciler, pending_payment):
        """Test that the first verified item is the one applied."""
        forged = make_item(event_code='CAPTURE', hmac_key=OTHER_HMAC_KEY)
        genuine = make_item(psp_reference='PSP1')

        applied = await reconciler.reconcile(pending_payment, [forged, genuine])

        assert applied is genuine
        assert pending_payment.status == PaymentStatus.AUTHORIZED

    async def test_first_verified_item_ends_delivery(self, reconciler, store, pending_payment):
        """Test that later items in the same delivery are not applied."""
        first = make_item(event_code='REPORT_AVAILABLE')
        second = make_item(psp_reference='PSP1')

        applied = await reconciler.reconcile(pending_payment, [first, second])

        assert applied is first
        assert pending_payment.status == PaymentStatus.PENDING
        assert store.saved == []

    async def test_no_verified_items(self, reconciler, store, pending_payment):
        """Test a delivery where nothing verifies."""
        items = [make_item(hmac_key=None), make_item(hmac_key=OTHER_HMAC_KEY)]

        assert await reconciler.reconcile(pending_payment, items) is None
        assert pending_payment.status == PaymentStatus.PENDING
        assert store.saved == []

    async def test_items_for_other_payments_are_skipped(self, reconciler, store, pending_payment):
        """Test that a verified item for another reference is never applied."""
        other = make_item(reference='R2', psp_reference='PSP-R2')

        assert await reconciler.reconcile(pending_payment, [other]) is None
        assert pending_payment.status == PaymentStatus.PENDING
        assert pending_payment.transaction_id is None
        assert store.saved == []


class TestCallbacks:
    """Tests for order processing callbacks."""

    async def test_callback_runs_on_authorisation(self, reconciler, pending_payment):
        """Test that callbacks get the saved payment."""
        callback = AsyncMock()
        reconciler.on_payment_processed(callback)

        await reconciler.apply(pending_payment, make_item())

        callback.assert_awaited_once_with(pending_payment)

    async def test_callback_not_run_on_decline(self, reconciler, pending_payment):
        """Test that declines skip order processing."""
        callback = AsyncMock()
        reconciler.on_payment_processed(callback)

        await reconciler.apply(pending_payment, make_item(success=False))

        callback.assert_not_awaited()

    async def test_callback_errors_are_logged(self, pending_payment, caplog):
        """Test that a failing callback does not undo the transition."""
        store = FakePaymentStore([pending_payment])
        reconciler = StatusReconciler(store, SignatureVerifier(HMAC_KEY))
        failing = AsyncMock(side_effect=RuntimeError("order system down"))
        after = AsyncMock()
        reconciler.on_payment_processed(failing)
        reconciler.on_payment_processed(after)

        assert await reconciler.apply(pending_payment, make_item())

        assert pending_payment.status == PaymentStatus.AUTHORIZED
        assert store.saved == [pending_payment]
        after.assert_awaited_once()
        assert "order system down" in caplog.text
