"""
Transaction Record Module

Immutable, timestamped records of every balance-affecting or audit-worthy
event on an account. Each record carries an explicit kind set by the
operation that produced it, so a transfer leg stays distinguishable from a
plain deposit or withdrawal.
"""

from decimal import Decimal
from datetime import datetime
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from enum import Enum
import uuid


class TransactionKind(Enum):
    """Types of account transactions"""
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    TRANSFER_OUT = "transfer_out"    # Debit leg of a transfer
    TRANSFER_IN = "transfer_in"      # Credit leg of a transfer
    INTEREST = "interest"            # Monthly interest credit
    ADJUSTMENT = "adjustment"        # Non-monetary event (credential change)
    REVERSAL = "reversal"            # Compensating credit for a failed transfer


class TransactionDirection(Enum):
    """Coarse classification derived from the sign of the amount"""
    CREDIT = "credit"
    DEBIT = "debit"
    NON_MONETARY = "non_monetary"


@dataclass(frozen=True)
class Transaction:
    """
    One entry in an account's transaction log

    amount is signed: positive credits, negative debits, zero for
    non-monetary events. balance_after is the account balance immediately
    after this entry was applied.
    """
    kind: TransactionKind
    amount: Decimal
    description: str
    balance_after: Decimal
    timestamp: datetime
    counterparty: Optional[str] = None  # Other account number for transfer legs
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def direction(self) -> TransactionDirection:
        if self.amount > 0:
            return TransactionDirection.CREDIT
        if self.amount < 0:
            return TransactionDirection.DEBIT
        return TransactionDirection.NON_MONETARY

    @property
    def is_transfer(self) -> bool:
        return self.kind in (TransactionKind.TRANSFER_OUT, TransactionKind.TRANSFER_IN)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dictionary for reporting"""
        return {
            'id': self.id,
            'timestamp': self.timestamp.isoformat(),
            'kind': self.kind.value,
            'direction': self.direction.value,
            'amount': str(self.amount),
            'description': self.description,
            'balance_after': str(self.balance_after),
            'counterparty': self.counterparty,
        }
