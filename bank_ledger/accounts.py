"""
Account Module

A single holder's balance and append-only transaction log. Every mutation
runs under the account's own lock, appends exactly one Transaction and is
checked against the balance invariant before returning.
"""

from decimal import Decimal
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple
from enum import Enum
import hmac
import threading

from .amounts import ZERO, AmountLike, quantize, to_amount, to_positive_amount, format_amount
from .errors import Outcome, InvalidAmountError, LedgerInvariantError
from .transactions import Transaction, TransactionKind
from .logging_config import get_logger, log_action

DEFAULT_STATEMENT_LENGTH = 5
MONTHS_PER_YEAR = Decimal('12')

Clock = Callable[[], datetime]

# Marks "use the account's configured statement length"
_DEFAULT_LENGTH = object()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AccountCategory(Enum):
    """Banking product categories"""
    SAVINGS = "savings"
    CURRENT = "current"


class Account:
    """
    Bank account owning its balance and transaction history

    The account number, holder name and category are fixed at construction.
    The balance is only changed through deposit, withdraw and
    accrue_interest.
    """

    def __init__(
        self,
        account_number: str,
        holder_name: str,
        credential: str,
        category: AccountCategory,
        opening_balance: AmountLike = ZERO,
        clock: Clock = utc_now,
        statement_length: int = DEFAULT_STATEMENT_LENGTH
    ):
        balance = to_amount(opening_balance)
        if balance is None or balance < ZERO:
            raise InvalidAmountError(f"Opening balance must be a non-negative amount, got {opening_balance!r}")
        if not credential:
            raise ValueError("Credential must not be empty")
        if statement_length < 1:
            raise ValueError("statement_length must be at least 1")

        self._account_number = account_number
        self._holder_name = holder_name
        self._credential = credential
        self._category = AccountCategory(category)
        self._opening_balance = balance
        self._balance = balance
        self._transactions: List[Transaction] = []
        self._clock = clock
        self.statement_length = statement_length
        self._lock = threading.RLock()
        self.logger = get_logger("bank_ledger.accounts")

    def __repr__(self) -> str:
        return (f"Account(account_number={self._account_number!r}, "
                f"holder_name={self._holder_name!r}, category={self._category.value}, "
                f"balance={self._balance})")

    @property
    def account_number(self) -> str:
        return self._account_number

    @property
    def holder_name(self) -> str:
        return self._holder_name

    @property
    def category(self) -> AccountCategory:
        return self._category

    @property
    def balance(self) -> Decimal:
        return self._balance

    @property
    def opening_balance(self) -> Decimal:
        """Balance the account was created or restored with"""
        return self._opening_balance

    @property
    def transactions(self) -> Tuple[Transaction, ...]:
        """Full transaction log, oldest first"""
        with self._lock:
            return tuple(self._transactions)

    @property
    def lock(self) -> threading.RLock:
        """Mutation lock; held by the ledger across both legs of a transfer"""
        return self._lock

    def verify_credential(self, candidate: str) -> bool:
        """Exact match against the stored credential"""
        if not isinstance(candidate, str):
            return False
        return hmac.compare_digest(candidate.encode('utf-8'), self._credential.encode('utf-8'))

    def change_credential(self, new_credential: str) -> Transaction:
        """Replace the credential and record a non-monetary audit entry"""
        if not new_credential:
            raise ValueError("Credential must not be empty")

        with self._lock:
            self._credential = new_credential
            transaction = self._record(TransactionKind.ADJUSTMENT, ZERO, "credential changed")

        log_action(
            self.logger, "info", "Credential changed",
            action="change_credential", resource=f"account:{self._account_number}"
        )
        return transaction

    def deposit(
        self,
        amount: AmountLike,
        description: str = "Deposit",
        kind: TransactionKind = TransactionKind.DEPOSIT,
        counterparty: Optional[str] = None
    ) -> Outcome:
        """
        Credit the account

        Args:
            amount: Strictly positive amount
            description: Free text stored on the transaction
            kind: Transaction kind to record (transfer and reversal legs
                pass their own)
            counterparty: Other account number for transfer legs

        Returns:
            SUCCESS, or INVALID_AMOUNT with no state change
        """
        value = to_positive_amount(amount)
        if value is None:
            return self._reject("deposit", amount)

        with self._lock:
            self._balance = self._balance + value
            self._record(kind, value, description, counterparty)

        log_action(
            self.logger, "info", f"Credited {format_amount(value)}",
            action=kind.value, resource=f"account:{self._account_number}",
            extra={"amount": str(value), "balance": str(self._balance), "counterparty": counterparty}
        )
        return Outcome.SUCCESS

    def withdraw(
        self,
        amount: AmountLike,
        description: str = "Withdrawal",
        kind: TransactionKind = TransactionKind.WITHDRAWAL,
        counterparty: Optional[str] = None
    ) -> Outcome:
        """
        Debit the account if funds allow

        Returns:
            SUCCESS, INSUFFICIENT_FUNDS (no state change) or INVALID_AMOUNT
        """
        value = to_positive_amount(amount)
        if value is None:
            return self._reject("withdraw", amount)

        with self._lock:
            if self._balance < value:
                log_action(
                    self.logger, "warning", "Insufficient funds",
                    action=kind.value, resource=f"account:{self._account_number}",
                    extra={"requested": str(value), "balance": str(self._balance)}
                )
                return Outcome.INSUFFICIENT_FUNDS

            self._balance = self._balance - value
            self._record(kind, -value, description, counterparty)

        log_action(
            self.logger, "info", f"Debited {format_amount(value)}",
            action=kind.value, resource=f"account:{self._account_number}",
            extra={"amount": str(value), "balance": str(self._balance), "counterparty": counterparty}
        )
        return Outcome.SUCCESS

    def accrue_interest(self, annual_rate: AmountLike) -> Outcome:
        """
        Credit one month of simple interest: balance * annual_rate / 12

        The interest is rounded to cents. A non-positive rate, or interest
        that rounds to zero, is INVALID_AMOUNT and leaves the account
        untouched.
        """
        if isinstance(annual_rate, Decimal):
            rate = annual_rate
        else:
            try:
                rate = Decimal(str(annual_rate))
            except ArithmeticError:
                return self._reject("accrue_interest", annual_rate)
        if not rate.is_finite() or rate <= 0:
            return self._reject("accrue_interest", annual_rate)

        with self._lock:
            interest = quantize(self._balance * rate / MONTHS_PER_YEAR)
            if interest <= ZERO:
                return self._reject("accrue_interest", interest)

            self._balance = self._balance + interest
            self._record(TransactionKind.INTEREST, interest, "Interest Credited")

        log_action(
            self.logger, "info", f"Interest credited {format_amount(interest)}",
            action="accrue_interest", resource=f"account:{self._account_number}",
            extra={"rate": str(rate), "amount": str(interest), "balance": str(self._balance)}
        )
        return Outcome.SUCCESS

    def statement(self, max_count=_DEFAULT_LENGTH) -> Tuple[Transaction, ...]:
        """
        Most recent transactions in chronological order

        Args:
            max_count: Maximum number of entries; None returns the full log.
                Defaults to the account's statement_length

        Returns:
            Tuple of at most max_count transactions, oldest first
        """
        if max_count is _DEFAULT_LENGTH:
            max_count = self.statement_length
        if max_count is not None and max_count < 0:
            raise ValueError("max_count must be non-negative")

        with self._lock:
            if max_count is None:
                return tuple(self._transactions)
            if max_count == 0:
                return ()
            return tuple(self._transactions[-max_count:])

    def check_invariant(self) -> None:
        """Fail loudly if the balance no longer matches the log"""
        with self._lock:
            expected = self._opening_balance + sum(
                (t.amount for t in self._transactions), ZERO
            )
            if self._balance != expected:
                raise LedgerInvariantError(
                    f"Account {self._account_number} balance {self._balance} "
                    f"does not match opening balance plus log ({expected})"
                )
            if self._balance < ZERO:
                raise LedgerInvariantError(
                    f"Account {self._account_number} has negative balance {self._balance}"
                )

    def _record(
        self,
        kind: TransactionKind,
        amount: Decimal,
        description: str,
        counterparty: Optional[str] = None
    ) -> Transaction:
        """Append a transaction for a mutation already applied; caller holds the lock"""
        transaction = Transaction(
            kind=kind,
            amount=amount,
            description=description,
            balance_after=self._balance,
            timestamp=self._clock(),
            counterparty=counterparty
        )
        self._transactions.append(transaction)
        self.check_invariant()
        return transaction

    def _reject(self, action: str, amount) -> Outcome:
        log_action(
            self.logger, "warning", "Rejected non-positive amount",
            action=action, resource=f"account:{self._account_number}",
            extra={"amount": str(amount)}
        )
        return Outcome.INVALID_AMOUNT
