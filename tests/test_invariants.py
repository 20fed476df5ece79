"""
Property-based tests for ledger invariants

Random sequences of deposits, withdrawals, transfers and interest runs must
never break the balance invariant, overdraw an account, or create or destroy
money outside of deposits, withdrawals and interest.
"""

from decimal import Decimal

from hypothesis import given, settings
from hypothesis import strategies as st

from bank_ledger.accounts import AccountCategory
from bank_ledger.config import LedgerConfig
from bank_ledger.errors import Outcome
from bank_ledger.ledger import Ledger

ACCOUNTS = 3

amounts = st.decimals(
    min_value=Decimal("-50"), max_value=Decimal("500"),
    places=2, allow_nan=False, allow_infinity=False
)

operations = st.one_of(
    st.tuples(st.just("deposit"), st.integers(0, ACCOUNTS - 1), amounts),
    st.tuples(st.just("withdraw"), st.integers(0, ACCOUNTS - 1), amounts),
    st.tuples(st.just("transfer"), st.integers(0, ACCOUNTS - 1), st.integers(0, ACCOUNTS), amounts),
    st.tuples(st.just("interest")),
)


def build_ledger():
    ledger = Ledger(config=LedgerConfig())
    accounts = [
        ledger.create_account(f"Holder {i}", "1234", category, opening)
        for i, (category, opening) in enumerate([
            (AccountCategory.SAVINGS, "100.00"),
            (AccountCategory.CURRENT, "0"),
            (AccountCategory.SAVINGS, "2500.75"),
        ])
    ]
    return ledger, accounts


@settings(max_examples=150, deadline=None)
@given(st.lists(operations, max_size=40))
def test_balance_matches_log_after_any_sequence(ops):
    """Test balance == opening + sum(amounts) and balance >= 0 throughout"""
    ledger, accounts = build_ledger()

    for op in ops:
        if op[0] == "deposit":
            accounts[op[1]].deposit(op[2])
        elif op[0] == "withdraw":
            accounts[op[1]].withdraw(op[2])
        elif op[0] == "transfer":
            # Index ACCOUNTS is an unknown destination
            destination = accounts[op[2]].account_number if op[2] < ACCOUNTS else "ACCT0000"
            ledger.transfer(accounts[op[1]], destination, op[3])
        else:
            ledger.accrue_interest_all()

        for account in accounts:
            assert account.balance >= 0
            assert account.balance == account.opening_balance + sum(
                (t.amount for t in account.transactions), Decimal("0")
            )

    ledger.check_invariants()


@settings(max_examples=150, deadline=None)
@given(st.lists(st.tuples(st.integers(0, ACCOUNTS - 1), st.integers(0, ACCOUNTS - 1), amounts), max_size=40))
def test_transfers_conserve_money(transfers):
    """Test that transfers never change the total held across accounts"""
    ledger, accounts = build_ledger()
    total = sum(a.balance for a in accounts)

    for source, destination, amount in transfers:
        before = (accounts[source].balance, accounts[destination].balance)
        log_sizes = (len(accounts[source].transactions), len(accounts[destination].transactions))

        outcome = ledger.transfer(accounts[source], accounts[destination].account_number, amount)

        if outcome is Outcome.SUCCESS:
            assert amount > 0 and amount <= before[0]
        else:
            assert outcome in (Outcome.INVALID_AMOUNT, Outcome.INSUFFICIENT_FUNDS)
            # Nothing recorded on either side
            assert (accounts[source].balance, accounts[destination].balance) == before
            assert (len(accounts[source].transactions), len(accounts[destination].transactions)) == log_sizes

        assert sum(a.balance for a in accounts) == total


@settings(max_examples=100, deadline=None)
@given(st.lists(amounts, min_size=1, max_size=30), st.integers(0, 40))
def test_statement_is_recent_suffix(deposits, count):
    """Test statement(n) returns the last n entries, oldest first"""
    ledger, accounts = build_ledger()
    account = accounts[0]
    for amount in deposits:
        account.deposit(amount)

    statement = account.statement(count)
    log = account.transactions

    assert len(statement) == min(count, len(log))
    assert statement == (log[len(log) - len(statement):] if statement else ())
    assert statement == account.statement(count)
