"""
Tests for the data models.
"""
import pytest
from pydantic import ValidationError

from crust_order_sdk.exceptions import (
    OrderOutcomeError, TransactionInvalidatedError, TransactionRejectedError
)
from crust_order_sdk.models import (
    ChainEvent, ChainNotification, OrderOutcome, OutcomeKind, StorageOrderRequest, TxStatus,
    INVALIDATING_STATUSES, EXTRINSIC_FAILED, EXTRINSIC_SUCCESS
)


class TestStorageOrderRequest:

    def test_defaults(self):
        request = StorageOrderRequest(content_id="QmTest1", size_bytes=1024)
        assert request.replica_count == 0

    @pytest.mark.parametrize("kwargs", [
        {"content_id": "", "size_bytes": 1},
        {"content_id": "QmTest1", "size_bytes": -1},
        {"content_id": "QmTest1", "size_bytes": 1, "replica_count": -2},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(ValidationError):
            StorageOrderRequest(**kwargs)

    def test_frozen(self):
        request = StorageOrderRequest(content_id="QmTest1", size_bytes=1)
        with pytest.raises(ValidationError):
            request.size_bytes = 2


class TestChainNotification:

    def test_status_from_string(self):
        notification = ChainNotification(status="InBlock", block_hash="0x01", events=[EXTRINSIC_SUCCESS])
        assert notification.status == TxStatus.IN_BLOCK
        assert notification.events[0].matches("system", "ExtrinsicSuccess")

    def test_invalidating_statuses(self):
        assert INVALIDATING_STATUSES == {
            TxStatus.INVALID, TxStatus.DROPPED, TxStatus.USURPED, TxStatus.RETRACTED
        }
        assert TxStatus.FINALITY_TIMEOUT not in INVALIDATING_STATUSES

    def test_event_matching(self):
        assert EXTRINSIC_FAILED.matches("system", "ExtrinsicFailed")
        assert not EXTRINSIC_FAILED.matches("System", "ExtrinsicFailed")
        assert ChainEvent(section="system", method="ExtrinsicSuccess") == EXTRINSIC_SUCCESS


class TestOrderOutcome:

    def test_confirmed(self):
        outcome = OrderOutcome.confirmed("QmTest1", nonce=3)
        assert outcome.kind == OutcomeKind.CONFIRMED
        assert outcome.reason is None
        assert outcome.is_success
        outcome.raise_for_outcome()

    def test_rejected(self):
        outcome = OrderOutcome.rejected("QmTest3", tx_hash="0xabc")

        assert outcome.reason == "execution failed"
        with pytest.raises(TransactionRejectedError) as excinfo:
            outcome.raise_for_outcome()
        assert excinfo.value.outcome is outcome
        assert "QmTest3" in str(excinfo.value)

    def test_invalidated(self):
        outcome = OrderOutcome.invalidated("QmTest2", reason="Dropped")

        with pytest.raises(TransactionInvalidatedError, match="Dropped") as excinfo:
            outcome.raise_for_outcome()
        assert isinstance(excinfo.value, OrderOutcomeError)
