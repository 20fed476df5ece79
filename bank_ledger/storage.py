"""
Snapshot Storage Module

Provides the abstract snapshot store and implementations for in-memory
(testing) and flat-file CSV (persistence). Balances are stored as Decimal
strings. Only (account number, holder name, category, balance) survive a
round trip; credentials and transaction history are not persisted.
"""

from abc import ABC, abstractmethod
from typing import Iterable, List, Optional, Union
from pathlib import Path
import csv
import os
import tempfile
import threading

from pydantic import ValidationError

from .config import LedgerConfig
from .errors import PersistenceUnavailableError
from .logging_config import get_logger
from .schemas import AccountSummary

SNAPSHOT_FIELDS = ("account_number", "holder_name", "category", "balance")


class SnapshotStore(ABC):
    """Abstract interface for snapshot backends"""

    @abstractmethod
    def load(self) -> List[AccountSummary]:
        """
        Load every account row

        Raises:
            PersistenceUnavailableError: If the snapshot is missing or corrupt
        """
        pass

    @abstractmethod
    def save(self, rows: Iterable[AccountSummary]) -> None:
        """
        Replace the stored snapshot with rows

        Raises:
            PersistenceUnavailableError: If the snapshot cannot be written
        """
        pass


class InMemorySnapshotStore(SnapshotStore):
    """In-memory snapshot store for testing"""

    def __init__(self, rows: Optional[Iterable[AccountSummary]] = None):
        self._rows: Optional[List[AccountSummary]] = list(rows) if rows is not None else None
        self._lock = threading.RLock()

    def load(self) -> List[AccountSummary]:
        with self._lock:
            if self._rows is None:
                raise PersistenceUnavailableError("No snapshot has been saved")
            return list(self._rows)

    def save(self, rows: Iterable[AccountSummary]) -> None:
        with self._lock:
            # Summaries are frozen, so a shallow copy is enough
            self._rows = list(rows)


class CsvSnapshotStore(SnapshotStore):
    """
    Flat-file snapshot, one account per line:

        number,name,category,balance

    Category is written as "savings"/"current"; the numeric codes 0/1 of
    older files are accepted on load. Writes go to a temporary file that
    replaces the snapshot only once complete.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self.logger = get_logger("bank_ledger.storage")

    @classmethod
    def from_config(cls, config: LedgerConfig) -> 'CsvSnapshotStore':
        """Store at the configured snapshot path"""
        return cls(config.snapshot_path)

    def load(self) -> List[AccountSummary]:
        try:
            with self.path.open(newline='', encoding='utf-8') as handle:
                lines = list(csv.reader(handle))
        except FileNotFoundError as e:
            raise PersistenceUnavailableError(f"No existing data file found at {self.path}") from e
        except (OSError, UnicodeDecodeError, csv.Error) as e:
            raise PersistenceUnavailableError(f"Cannot read snapshot {self.path}: {e}") from e

        rows = []
        for line_number, fields in enumerate(lines, start=1):
            if not fields or all(not value.strip() for value in fields):
                continue
            if len(fields) != len(SNAPSHOT_FIELDS):
                raise PersistenceUnavailableError(
                    f"{self.path}:{line_number}: expected {len(SNAPSHOT_FIELDS)} fields, got {len(fields)}"
                )
            try:
                rows.append(AccountSummary(**dict(zip(SNAPSHOT_FIELDS, fields))))
            except ValidationError as e:
                raise PersistenceUnavailableError(f"{self.path}:{line_number}: {e}") from e

        self.logger.debug(f"Loaded {len(rows)} rows from {self.path}")
        return rows

    def save(self, rows: Iterable[AccountSummary]) -> None:
        directory = self.path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=directory)
            try:
                with os.fdopen(fd, 'w', newline='', encoding='utf-8') as handle:
                    writer = csv.writer(handle)
                    for row in rows:
                        writer.writerow([
                            row.account_number,
                            row.holder_name,
                            row.category.value,
                            str(row.balance)
                        ])
                os.replace(tmp_path, self.path)
            except BaseException:
                Path(tmp_path).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise PersistenceUnavailableError(f"Cannot write snapshot {self.path}: {e}") from e

        self.logger.debug(f"Saved snapshot to {self.path}")
