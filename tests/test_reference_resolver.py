"""Tests for merchant reference resolution."""

import pytest

from conftest import FakePaymentStore, make_payment
from errors import DataIntegrityError, PaymentNotFound
from services.reference_resolver import ReferenceResolver


class TestReferenceResolver:
    """Tests for ReferenceResolver."""

    async def test_single_match(self, store, pending_payment):
        """Test resolving a known reference."""
        assert await ReferenceResolver(store).resolve('R1') is pending_payment
        assert store.lookups == ['R1']

    async def test_no_match(self, store):
        """Test that unknown references are not found."""
        with pytest.raises(PaymentNotFound) as exc_info:
            await ReferenceResolver(store).resolve('R-unknown')

        assert exc_info.value.reference == 'R-unknown'
        assert str(exc_info.value) == "Could not find a payment with reference 'R-unknown'"

    @pytest.mark.parametrize('reference', ['', None])
    async def test_missing_reference(self, store, reference):
        """Test that empty references fail without a lookup."""
        with pytest.raises(PaymentNotFound):
            await ReferenceResolver(store).resolve(reference)

        assert store.lookups == []

    async def test_several_matches(self):
        """Test that duplicated references are an integrity error."""
        store = FakePaymentStore([make_payment(), make_payment(id=2)])

        with pytest.raises(DataIntegrityError) as exc_info:
            await ReferenceResolver(store).resolve('R1')

        assert exc_info.value.count == 2
