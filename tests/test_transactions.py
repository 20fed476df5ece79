"""
Test suite for transaction records
"""

from decimal import Decimal
from datetime import datetime, timezone

from bank_ledger.transactions import Transaction, TransactionKind, TransactionDirection


def make_transaction(kind, amount, counterparty=None):
    return Transaction(
        kind=kind,
        amount=Decimal(amount),
        description="test",
        balance_after=Decimal("100.00"),
        timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc),
        counterparty=counterparty
    )


class TestTransaction:
    """Test Transaction classification and serialization"""

    def test_direction_from_sign(self):
        assert make_transaction(TransactionKind.DEPOSIT, "5").direction == TransactionDirection.CREDIT
        assert make_transaction(TransactionKind.WITHDRAWAL, "-5").direction == TransactionDirection.DEBIT
        assert make_transaction(TransactionKind.ADJUSTMENT, "0").direction == TransactionDirection.NON_MONETARY

    def test_transfer_legs_keep_their_kind(self):
        """Test that a transfer debit is distinguishable from a withdrawal"""
        transfer = make_transaction(TransactionKind.TRANSFER_OUT, "-5", counterparty="ACCT1002")
        withdrawal = make_transaction(TransactionKind.WITHDRAWAL, "-5")

        assert transfer.direction == withdrawal.direction
        assert transfer.is_transfer
        assert not withdrawal.is_transfer

    def test_unique_ids(self):
        first = make_transaction(TransactionKind.DEPOSIT, "1")
        second = make_transaction(TransactionKind.DEPOSIT, "1")
        assert first.id != second.id

    def test_to_dict(self):
        data = make_transaction(TransactionKind.TRANSFER_IN, "25.50", counterparty="ACCT1001").to_dict()

        assert data["kind"] == "transfer_in"
        assert data["direction"] == "credit"
        assert data["amount"] == "25.50"
        assert data["balance_after"] == "100.00"
        assert data["counterparty"] == "ACCT1001"
        assert data["timestamp"] == "2024-01-01T00:00:00+00:00"
