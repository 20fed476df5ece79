"""
Error Taxonomy Module

Business outcomes and contract violations are reported as Outcome values so
callers can branch on them without try/except. Exceptions are reserved for
construction-time contract violations, persistence faults and broken
invariants.
"""

from enum import Enum


class Outcome(Enum):
    """Result of a ledger operation. Only SUCCESS is truthy."""
    SUCCESS = "success"
    INVALID_AMOUNT = "invalid_amount"          # Non-positive or malformed amount
    INSUFFICIENT_FUNDS = "insufficient_funds"  # Balance below requested debit
    NOT_FOUND = "not_found"                    # Unknown account number
    INVALID_CREDENTIAL = "invalid_credential"
    LOCKED_OUT = "locked_out"                  # Session attempt budget exhausted

    def __bool__(self) -> bool:
        return self is Outcome.SUCCESS

    @property
    def is_business_outcome(self) -> bool:
        """Expected outcomes a caller should handle, as opposed to contract violations"""
        return self is not Outcome.INVALID_AMOUNT


class LedgerError(Exception):
    """Base exception for all ledger errors"""


class InvalidAmountError(LedgerError, ValueError):
    """Raised when an amount is rejected at a construction boundary"""


class PersistenceUnavailableError(LedgerError):
    """Raised when a snapshot is missing, corrupt, or cannot be written"""


class TransferError(LedgerError):
    """Raised when a transfer's credit leg failed after the debit was compensated"""

    def __init__(self, message: str, source_number: str, destination_number: str):
        super().__init__(message)
        self.source_number = source_number
        self.destination_number = destination_number


class LedgerInvariantError(LedgerError, AssertionError):
    """Raised when an account's balance no longer matches its transaction log"""
