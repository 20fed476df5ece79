"""
Session Module

Session-scoped authentication state. The attempt budget lives with the
caller's session, not with the account, so a lockout is advisory and
disappears with the session.
"""

from dataclasses import dataclass
from typing import Optional, TYPE_CHECKING
from enum import Enum

from .accounts import Account
from .errors import Outcome
from .logging_config import get_logger, log_action

if TYPE_CHECKING:
    from .ledger import Ledger


class SessionState(Enum):
    """Session lifecycle states"""
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"


@dataclass
class AttemptBudget:
    """Remaining login attempts for one session"""
    initial: int
    remaining: Optional[int] = None

    def __post_init__(self):
        if self.initial < 1:
            raise ValueError("Attempt budget must allow at least one attempt")
        if self.remaining is None:
            self.remaining = self.initial

    @property
    def exhausted(self) -> bool:
        return self.remaining <= 0

    def consume(self) -> int:
        """Use up one attempt; returns the attempts left"""
        if self.remaining > 0:
            self.remaining -= 1
        return self.remaining

    def reset(self) -> None:
        self.remaining = self.initial


@dataclass(frozen=True)
class AuthResult:
    """Result of an authentication attempt"""
    outcome: Outcome
    account: Optional[Account] = None
    attempts_remaining: int = 0

    def __bool__(self) -> bool:
        return bool(self.outcome)


class Session:
    """
    One interactive session against a ledger

    UNAUTHENTICATED -> login success -> AUTHENTICATED -> logout ->
    UNAUTHENTICATED. Failed logins never change the state; they only
    consume the session's attempt budget.
    """

    def __init__(self, ledger: 'Ledger', max_attempts: Optional[int] = None):
        self.ledger = ledger
        if max_attempts is None:
            max_attempts = ledger.config.max_login_attempts
        self.budget = AttemptBudget(max_attempts)
        self._account: Optional[Account] = None
        self.logger = get_logger("bank_ledger.sessions")

    @property
    def state(self) -> SessionState:
        if self._account is None:
            return SessionState.UNAUTHENTICATED
        return SessionState.AUTHENTICATED

    @property
    def is_authenticated(self) -> bool:
        return self.state == SessionState.AUTHENTICATED

    @property
    def account(self) -> Optional[Account]:
        """The logged-in account, or None"""
        return self._account

    def login(self, account_number: str, credential: str) -> AuthResult:
        """Authenticate against the ledger; a second login replaces the first"""
        result = self.ledger.authenticate(account_number, credential, self.budget)
        if result:
            self._account = result.account
        return result

    def logout(self) -> None:
        if self._account is not None:
            log_action(
                self.logger, "info", "Logged out",
                action="logout", resource=f"account:{self._account.account_number}"
            )
        self._account = None
