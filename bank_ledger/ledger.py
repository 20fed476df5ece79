"""
Ledger Engine

Owns every account keyed by account number and the operations that span
more than one account: transfers and bulk interest accrual. Also issues
account numbers and rebuilds accounts from persistence snapshots.
"""

from contextlib import ExitStack, contextmanager
from decimal import Decimal
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional, Tuple
import re
import threading

from pydantic import ValidationError

from .accounts import Account, AccountCategory, Clock, utc_now
from .amounts import AmountLike, ZERO, format_amount, to_amount, to_positive_amount
from .config import LedgerConfig, get_config
from .errors import Outcome, InvalidAmountError, PersistenceUnavailableError, TransferError
from .logging_config import get_logger, log_action
from .schemas import AccountSummary
from .sessions import AttemptBudget, AuthResult
from .transactions import TransactionKind

_TRAILING_DIGITS = re.compile(r"^(.*?)(\d+)$")
_SUMMARY_FIELDS = ("account_number", "holder_name", "category", "balance")


def _as_summary(row) -> AccountSummary:
    """Accept summaries, mappings or (number, name, category, balance) tuples"""
    if isinstance(row, AccountSummary):
        return row
    if isinstance(row, dict):
        return AccountSummary(**row)
    return AccountSummary(**dict(zip(_SUMMARY_FIELDS, row, strict=True)))


def account_number_sort_key(account_number: str) -> Tuple[str, int, str]:
    """Natural ordering so ACCT9999 sorts before ACCT10000"""
    match = _TRAILING_DIGITS.match(account_number)
    if match:
        return (match.group(1), int(match.group(2)), account_number)
    return (account_number, -1, account_number)


class AccountNumberGenerator:
    """
    Strictly increasing account number sequence

    Numbers are prefix + counter; the first number issued is start + 1.
    observe() moves the counter past numbers issued elsewhere (restored
    snapshots) so they are never handed out again.
    """

    def __init__(self, prefix: str = "ACCT", start: int = 1000):
        self.prefix = prefix
        self._last = start
        self._lock = threading.Lock()

    @property
    def last_issued(self) -> int:
        return self._last

    def next(self) -> str:
        with self._lock:
            self._last += 1
            return f"{self.prefix}{self._last}"

    def observe(self, account_number: str) -> None:
        """Advance past an externally issued number carrying this prefix"""
        if not account_number.startswith(self.prefix):
            return
        suffix = account_number[len(self.prefix):]
        if not suffix.isdigit():
            return
        with self._lock:
            self._last = max(self._last, int(suffix))


@dataclass
class AccrualReport:
    """Outcome of a bulk interest run"""
    credited: Dict[str, Decimal] = field(default_factory=dict)  # account number -> interest
    skipped: List[str] = field(default_factory=list)            # nothing to accrue
    failed: Dict[str, str] = field(default_factory=dict)        # account number -> error

    @property
    def total_interest(self) -> Decimal:
        return sum(self.credited.values(), ZERO)

    @property
    def completed(self) -> bool:
        """True when every account was processed without error"""
        return not self.failed


class Ledger:
    """
    Collection of accounts plus cross-account operations

    Single-account operations are performed on the Account returned by
    get_account or authenticate. The ledger never performs console I/O and
    trusts callers to have authorised admin operations (list_accounts,
    accrue_interest_all).
    """

    def __init__(
        self,
        config: Optional[LedgerConfig] = None,
        number_generator: Optional[AccountNumberGenerator] = None,
        clock: Clock = utc_now
    ):
        self.config = config or get_config()
        self.number_generator = number_generator or AccountNumberGenerator(
            prefix=self.config.account_number_prefix,
            start=self.config.account_number_start
        )
        self._clock = clock
        self._accounts: Dict[str, Account] = {}
        self._lock = threading.RLock()
        self.logger = get_logger("bank_ledger.ledger")

        self._rates = {
            AccountCategory.SAVINGS: self.config.savings_interest_rate,
            AccountCategory.CURRENT: self.config.current_interest_rate,
        }

    @classmethod
    def open(cls, store, config: Optional[LedgerConfig] = None, **kwargs) -> 'Ledger':
        """
        Build a ledger from a snapshot store

        A missing or corrupt snapshot is logged and the ledger starts empty.
        """
        ledger = cls(config=config, **kwargs)
        try:
            ledger.restore(store.load())
        except PersistenceUnavailableError as e:
            log_action(
                ledger.logger, "warning", f"Snapshot unavailable, starting with no accounts: {e}",
                action="open_ledger"
            )
        return ledger

    def save(self, store) -> int:
        """Write the current snapshot to a store; returns the number of rows"""
        rows = self.snapshot()
        store.save(rows)
        log_action(
            self.logger, "info", f"Saved {len(rows)} accounts",
            action="save_ledger", extra={"accounts": len(rows)}
        )
        return len(rows)

    def __len__(self) -> int:
        return len(self._accounts)

    def __contains__(self, account_number: object) -> bool:
        return account_number in self._accounts

    def rate_for(self, category: AccountCategory) -> Decimal:
        """Annual interest rate for an account category"""
        return self._rates[category]

    def get_account(self, account_number: str) -> Optional[Account]:
        """Get account by account number"""
        with self._lock:
            return self._accounts.get(account_number)

    def create_account(
        self,
        name: str,
        credential: str,
        category: AccountCategory,
        initial_deposit: AmountLike = ZERO
    ) -> Account:
        """
        Open a new account under a freshly generated account number

        Args:
            name: Holder name
            credential: Secret used to authenticate
            category: Savings or current
            initial_deposit: Opening balance, zero or more

        Returns:
            Created Account

        Raises:
            InvalidAmountError: If the opening balance is negative or malformed
            ValueError: If the name or credential is blank
        """
        if not name or not name.strip():
            raise ValueError("Holder name must not be blank")
        if not credential:
            raise ValueError("Credential must not be empty")
        opening_balance = to_amount(initial_deposit)
        if opening_balance is None or opening_balance < ZERO:
            raise InvalidAmountError(f"Initial deposit must be a non-negative amount, got {initial_deposit!r}")

        with self._lock:
            account_number = self._unused_account_number()
            account = Account(
                account_number=account_number,
                holder_name=name.strip(),
                credential=credential,
                category=AccountCategory(category),
                opening_balance=opening_balance,
                clock=self._clock,
                statement_length=self.config.statement_length
            )
            self._accounts[account_number] = account

        log_action(
            self.logger, "info", "Account created",
            action="create_account", resource=f"account:{account_number}",
            extra={"category": account.category.value, "opening_balance": str(account.balance)}
        )
        return account

    def authenticate(
        self,
        account_number: str,
        credential: str,
        budget: AttemptBudget
    ) -> AuthResult:
        """
        Start an authenticated session on an account

        Args:
            account_number: Account to log in to
            credential: Candidate secret
            budget: The caller's session attempt budget; consumed on
                failure and reset on success

        Returns:
            AuthResult with SUCCESS and the account, or a failure outcome
        """
        resource = f"account:{account_number}"

        if budget.exhausted:
            log_action(self.logger, "warning", "Login refused, attempts exhausted",
                       action="authenticate", resource=resource)
            return AuthResult(Outcome.LOCKED_OUT, attempts_remaining=0)

        account = self.get_account(account_number)

        if account is None and self.config.reveal_unknown_accounts:
            log_action(self.logger, "warning", "Login failed, unknown account",
                       action="authenticate", resource=resource)
            return AuthResult(Outcome.NOT_FOUND, attempts_remaining=budget.remaining)

        if account is None or not account.verify_credential(credential):
            remaining = budget.consume()
            reason = "unknown_account" if account is None else "invalid_credential"
            outcome = Outcome.LOCKED_OUT if budget.exhausted else Outcome.INVALID_CREDENTIAL
            log_action(
                self.logger, "warning", f"Login failed: {reason}",
                action="authenticate", resource=resource,
                extra={"attempts_remaining": remaining, "locked_out": budget.exhausted}
            )
            return AuthResult(outcome, attempts_remaining=remaining)

        budget.reset()
        log_action(self.logger, "info", "Login succeeded",
                   action="authenticate", resource=resource)
        return AuthResult(Outcome.SUCCESS, account=account, attempts_remaining=budget.remaining)

    def transfer(self, source: Account, destination_number: str, amount: AmountLike) -> Outcome:
        """
        Move money from source to another account

        The debit is recorded first, tagged with the destination, then the
        credit tagged with the source. Both accounts are locked for the
        duration in ascending account-number order. If the credit raises, the
        debit is compensated with a REVERSAL entry and TransferError is
        raised.

        Returns:
            SUCCESS, NOT_FOUND (source not held by this ledger, or unknown
            destination), INVALID_AMOUNT or INSUFFICIENT_FUNDS
        """
        if self.get_account(source.account_number) is not source:
            log_action(
                self.logger, "warning", "Transfer failed, source not held by this ledger",
                action="transfer", resource=f"account:{source.account_number}",
                extra={"destination": destination_number}
            )
            return Outcome.NOT_FOUND

        destination = self.get_account(destination_number)
        if destination is None:
            log_action(
                self.logger, "warning", "Transfer failed, unknown destination",
                action="transfer", resource=f"account:{source.account_number}",
                extra={"destination": destination_number}
            )
            return Outcome.NOT_FOUND

        value = to_positive_amount(amount)
        if value is None:
            log_action(
                self.logger, "warning", "Transfer rejected, non-positive amount",
                action="transfer", resource=f"account:{source.account_number}",
                extra={"destination": destination_number, "amount": str(amount)}
            )
            return Outcome.INVALID_AMOUNT

        with self._locked(source, destination):
            debited = source.withdraw(
                value,
                description=f"Transfer to {destination.account_number}",
                kind=TransactionKind.TRANSFER_OUT,
                counterparty=destination.account_number
            )
            if not debited:
                return debited

            try:
                credited = destination.deposit(
                    value,
                    description=f"Transfer from {source.account_number}",
                    kind=TransactionKind.TRANSFER_IN,
                    counterparty=source.account_number
                )
            except Exception as e:
                self._compensate(source, destination, value, reason=str(e), exc_info=True)
                raise TransferError(
                    f"Credit to {destination.account_number} failed; debit reversed",
                    source.account_number, destination.account_number
                ) from e

            if not credited:
                self._compensate(source, destination, value, reason=credited.value)
                raise TransferError(
                    f"Credit to {destination.account_number} rejected ({credited.value}); debit reversed",
                    source.account_number, destination.account_number
                )

        log_action(
            self.logger, "info", f"Transferred {format_amount(value)}",
            action="transfer", resource=f"account:{source.account_number}",
            extra={"destination": destination.account_number, "amount": str(value)}
        )
        return Outcome.SUCCESS

    def accrue_interest_all(self) -> AccrualReport:
        """
        Apply one month of interest to every account at its category rate

        A failure on one account is logged and recorded in the report; the
        remaining accounts are still processed.
        """
        report = AccrualReport()

        for account in self._ordered_accounts():
            with account.lock:
                try:
                    outcome = account.accrue_interest(self.rate_for(account.category))
                except Exception as e:
                    log_action(
                        self.logger, "error", f"Interest accrual failed: {e}",
                        action="accrue_interest_all", resource=f"account:{account.account_number}",
                        exc_info=True
                    )
                    report.failed[account.account_number] = str(e)
                    continue

                if outcome:
                    report.credited[account.account_number] = account.transactions[-1].amount
                else:
                    report.skipped.append(account.account_number)

        log_action(
            self.logger, "info", "Monthly interest applied",
            action="accrue_interest_all",
            extra={
                "credited": len(report.credited),
                "skipped": len(report.skipped),
                "failed": len(report.failed),
                "total_interest": str(report.total_interest)
            }
        )
        return report

    def list_accounts(self) -> List[AccountSummary]:
        """All accounts as summaries, ordered by account number"""
        return [
            AccountSummary(
                account_number=account.account_number,
                holder_name=account.holder_name,
                category=account.category,
                balance=account.balance
            )
            for account in self._ordered_accounts()
        ]

    def snapshot(self) -> List[AccountSummary]:
        """Rows for the persistence collaborator, in account-number order"""
        return self.list_accounts()

    def restore(self, rows: Iterable[AccountSummary]) -> int:
        """
        Rebuild accounts from snapshot rows

        Restored accounts get the placeholder credential and an empty
        transaction log, opening at the snapshot balance. Nothing is added if
        any row clashes with an existing or earlier account number.

        Returns:
            Number of accounts restored

        Raises:
            PersistenceUnavailableError: On duplicate account numbers
        """
        try:
            rows = [_as_summary(row) for row in rows]
        except (ValidationError, TypeError, ValueError) as e:
            raise PersistenceUnavailableError(f"Malformed snapshot row: {e}") from e

        with self._lock:
            seen = set(self._accounts)
            for row in rows:
                if row.account_number in seen:
                    raise PersistenceUnavailableError(
                        f"Duplicate account number in snapshot: {row.account_number}"
                    )
                seen.add(row.account_number)

            try:
                restored = [
                    Account(
                        account_number=row.account_number,
                        holder_name=row.holder_name,
                        credential=self.config.placeholder_credential,
                        category=row.category,
                        opening_balance=row.balance,
                        clock=self._clock,
                        statement_length=self.config.statement_length
                    )
                    for row in rows
                ]
            except InvalidAmountError as e:
                raise PersistenceUnavailableError(f"Malformed snapshot balance: {e}") from e

            for account in restored:
                self._accounts[account.account_number] = account
                self.number_generator.observe(account.account_number)

        log_action(
            self.logger, "info", f"Restored {len(rows)} accounts",
            action="restore", extra={"accounts": len(rows)}
        )
        return len(rows)

    def check_invariants(self) -> None:
        """Verify every account's balance against its log"""
        for account in self._ordered_accounts():
            account.check_invariant()

    def _unused_account_number(self) -> str:
        """Next generated number not already in the map; caller holds the lock"""
        account_number = self.number_generator.next()
        while account_number in self._accounts:
            account_number = self.number_generator.next()
        return account_number

    def _ordered_accounts(self) -> List[Account]:
        with self._lock:
            numbers = sorted(self._accounts, key=account_number_sort_key)
            return [self._accounts[n] for n in numbers]

    @contextmanager
    def _locked(self, *accounts: Account) -> Iterator[None]:
        """Hold the mutation locks of several accounts, acquired in account-number order"""
        unique = {account.account_number: account for account in accounts}
        with ExitStack() as stack:
            for number in sorted(unique, key=account_number_sort_key):
                stack.enter_context(unique[number].lock)
            yield

    def _compensate(
        self,
        source: Account,
        destination: Account,
        amount: Decimal,
        reason: str,
        exc_info: bool = False
    ) -> None:
        """Re-credit the source after a failed credit leg"""
        log_action(
            self.logger, "error", "Transfer credit leg failed, reversing debit",
            action="transfer", resource=f"account:{source.account_number}",
            extra={"destination": destination.account_number, "amount": str(amount), "reason": reason},
            exc_info=exc_info
        )
        source.deposit(
            amount,
            description=f"Transfer reversal ({destination.account_number})",
            kind=TransactionKind.REVERSAL,
            counterparty=destination.account_number
        )
