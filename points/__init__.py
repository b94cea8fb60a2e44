"""
User Point Ledger

This module provides:
- Per-user point balances with charge and use
- Full, append-only transaction history per user
- Per-user lanes so concurrent mutations never lose an update
- Outcome values instead of exceptions for rejected requests
"""

from .models import (
    TransactionType,
    ErrorKind,
    UserPoint,
    PointHistory,
    PointError,
    PointOutcome,
    HistoryOutcome,
    PointOperationError,
    replay_balance,
)
from .lanes import UserLaneManager
from .storage import AccountStore, InMemoryAccountStore, StorageError
from .service import PointService

__all__ = [
    "TransactionType",
    "ErrorKind",
    "UserPoint",
    "PointHistory",
    "PointError",
    "PointOutcome",
    "HistoryOutcome",
    "PointOperationError",
    "replay_balance",
    "UserLaneManager",
    "AccountStore",
    "InMemoryAccountStore",
    "StorageError",
    "PointService",
]
