import itertools
import random
import time
from datetime import datetime, timezone
from typing import Protocol

from .models import PointHistory, TransactionType, UserPoint


class StorageError(Exception):
    pass


class AccountStore(Protocol):
    """Point reads and writes of balances plus an append-only history log.

    Implementations need not be thread-safe per user; PointService serializes
    every mutation of a user before calling in. Failures are signalled by
    raising StorageError; OSError from a backend is accepted as well.

    There is no delete. ``write_balance`` always leaves a row behind, so
    writing a previous balance back after a failed append creates a
    zero-balance account for an unseen user and refreshes ``updated_at``.
    """

    def read_balance(self, user_id: int) -> UserPoint: ...

    def write_balance(self, user_id: int, balance: int) -> UserPoint: ...

    def append_history(
        self, user_id: int, amount: int, type: TransactionType, timestamp: datetime
    ) -> int: ...

    def read_all_history(self, user_id: int) -> list[PointHistory]: ...


class InMemoryAccountStore:
    def __init__(self, latency: float = 0.0):
        self.latency = latency
        self.accounts: dict[int, UserPoint] = {}
        self.histories: dict[int, list[PointHistory]] = {}
        self._ids = itertools.count(1)

    def read_balance(self, user_id: int) -> UserPoint:
        self._simulate_latency()
        account = self.accounts.get(user_id)
        if account is None:
            return UserPoint(id=user_id, point=0, updated_at=datetime.now(timezone.utc))
        return account

    def write_balance(self, user_id: int, balance: int) -> UserPoint:
        self._simulate_latency()
        account = UserPoint(id=user_id, point=balance, updated_at=datetime.now(timezone.utc))
        self.accounts[user_id] = account
        return account

    def append_history(
        self, user_id: int, amount: int, type: TransactionType, timestamp: datetime
    ) -> int:
        self._simulate_latency()
        entry = PointHistory(
            id=next(self._ids),
            user_id=user_id,
            amount=amount,
            type=type,
            timestamp=timestamp,
        )
        self.histories.setdefault(user_id, []).append(entry)
        return entry.id

    def read_all_history(self, user_id: int) -> list[PointHistory]:
        self._simulate_latency()
        return list(self.histories.get(user_id, ()))

    def _simulate_latency(self) -> None:
        if self.latency:
            time.sleep(random.uniform(0, self.latency))
