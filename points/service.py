from contextlib import nullcontext
from typing import Optional

from .config import Settings, get_settings
from .lanes import UserLaneManager
from .logging import get_logger
from .models import (
    ErrorKind,
    TransactionType,
    UserPoint,
    PointError,
    PointOperationError,
    PointOutcome,
    HistoryOutcome,
    replay_balance,
)
from .storage import AccountStore, InMemoryAccountStore, StorageError


# Stores signal failure with StorageError; plain I/O errors from real
# backends are treated the same way.
STORAGE_ERRORS = (StorageError, OSError)


def _is_positive_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


class PointService:
    """
    Charges, uses and looks up user points.

    Mutations of one user run one at a time through that user's lane: the
    balance read, the rule checks, the balance write and the history append
    all happen inside a single lane turn, so every mutation sees the result
    of the one before it. Failures of the four ledger operations come back
    as outcomes, never as raised exceptions; the is_consistent diagnostic
    raises PointOperationError instead.
    """

    def __init__(
        self,
        store: Optional[AccountStore] = None,
        settings: Optional[Settings] = None,
        lanes: Optional[UserLaneManager] = None,
    ):
        self.settings = settings or get_settings()
        self.store = store or InMemoryAccountStore(latency=self.settings.store_latency)
        self.lanes = lanes or UserLaneManager()
        self.logger = get_logger(__name__)

    def charge(self, user_id: int, amount: int) -> PointOutcome:
        error = self._check_input(user_id, amount)
        if error:
            return self._reject("charge_rejected", error)

        try:
            with self.lanes.hold(user_id):
                current = self.store.read_balance(user_id)
                new_balance = current.point + amount
                if new_balance > self.settings.max_balance:
                    return self._reject("charge_rejected", PointError(
                        kind=ErrorKind.BALANCE_LIMIT_EXCEEDED,
                        message=(
                            f"Balance cannot exceed {self.settings.max_balance}. "
                            f"Current balance is {current.point}, charging {amount} would make it {new_balance}."
                        ),
                        user_id=user_id,
                        amount=amount,
                        current_balance=current.point,
                        limit=self.settings.max_balance,
                    ))
                account = self._commit(current, new_balance, amount, TransactionType.CHARGE)
        except STORAGE_ERRORS as e:
            return self._storage_failure("charge", user_id, e, amount=amount)

        self.logger.info("points_charged", user_id=user_id, amount=amount, balance=account.point)
        return PointOutcome(account=account)

    def use(self, user_id: int, amount: int) -> PointOutcome:
        error = self._check_input(user_id, amount)
        if error:
            return self._reject("use_rejected", error)

        if amount < self.settings.min_use_amount:
            return self._reject("use_rejected", PointError(
                kind=ErrorKind.BELOW_MINIMUM_USE_AMOUNT,
                message=f"At least {self.settings.min_use_amount} points must be used, got {amount}.",
                user_id=user_id,
                amount=amount,
                limit=self.settings.min_use_amount,
            ))

        try:
            with self.lanes.hold(user_id):
                current = self.store.read_balance(user_id)
                if current.point < amount:
                    return self._reject("use_rejected", PointError(
                        kind=ErrorKind.INSUFFICIENT_BALANCE,
                        message=f"Insufficient balance. Current balance is {current.point}, requested {amount}.",
                        user_id=user_id,
                        amount=amount,
                        current_balance=current.point,
                    ))
                account = self._commit(current, current.point - amount, amount, TransactionType.USE)
        except STORAGE_ERRORS as e:
            return self._storage_failure("use", user_id, e, amount=amount)

        self.logger.info("points_used", user_id=user_id, amount=amount, balance=account.point)
        return PointOutcome(account=account)

    def get_balance(self, user_id: int) -> PointOutcome:
        if not _is_positive_int(user_id):
            return PointOutcome(error=self._invalid_user_id(user_id))

        try:
            with self._read_lane(user_id):
                account = self.store.read_balance(user_id)
        except STORAGE_ERRORS as e:
            return self._storage_failure("get_balance", user_id, e)

        self.logger.debug("balance_read", user_id=user_id, balance=account.point)
        return PointOutcome(account=account)

    def get_history(self, user_id: int) -> HistoryOutcome:
        if not _is_positive_int(user_id):
            return HistoryOutcome(error=self._invalid_user_id(user_id))

        try:
            with self._read_lane(user_id):
                entries = self.store.read_all_history(user_id)
        except STORAGE_ERRORS as e:
            return HistoryOutcome(error=self._storage_failure("get_history", user_id, e).error)

        self.logger.debug("history_read", user_id=user_id, entries=len(entries))
        return HistoryOutcome(entries=entries)

    def is_consistent(self, user_id: int) -> bool:
        """
        Replay the user's history and compare it with the stored balance.

        Runs inside the user's lane so no mutation lands between the two
        reads. Raises PointOperationError for an invalid user id or when the
        store is unavailable.
        """
        if not _is_positive_int(user_id):
            raise PointOperationError(self._invalid_user_id(user_id))

        try:
            with self.lanes.hold(user_id):
                account = self.store.read_balance(user_id)
                entries = self.store.read_all_history(user_id)
        except STORAGE_ERRORS as e:
            raise PointOperationError(self._storage_failure("is_consistent", user_id, e).error) from e
        return replay_balance(entries) == account.point

    def _commit(
        self, current: UserPoint, new_balance: int, amount: int, type: TransactionType
    ) -> UserPoint:
        """
        Write the new balance, then append its history entry.

        A failed append writes the previous balance back. The store has no
        delete, so the restore leaves a zero-balance row behind for a user
        it had never seen, and bumps ``updated_at`` on an existing one.
        """
        account = self.store.write_balance(current.id, new_balance)
        try:
            self.store.append_history(current.id, amount, type, account.updated_at)
        except STORAGE_ERRORS:
            self._restore(current)
            raise
        return account

    def _restore(self, previous: UserPoint) -> None:
        try:
            self.store.write_balance(previous.id, previous.point)
        except STORAGE_ERRORS as e:
            self.logger.error(
                "balance_restore_failed",
                user_id=previous.id,
                balance=previous.point,
                error=str(e),
            )

    def _read_lane(self, user_id: int):
        if self.settings.linearizable_reads:
            return self.lanes.hold(user_id)
        return nullcontext()

    def _check_input(self, user_id, amount) -> Optional[PointError]:
        if not _is_positive_int(user_id):
            return self._invalid_user_id(user_id)
        if not _is_positive_int(amount):
            return PointError(
                kind=ErrorKind.INVALID_AMOUNT,
                message=f"Amount must be a positive integer, got {amount!r}.",
                user_id=user_id,
            )
        return None

    def _invalid_user_id(self, user_id) -> PointError:
        return PointError(
            kind=ErrorKind.INVALID_USER_ID,
            message=f"User id must be a positive integer, got {user_id!r}.",
        )

    def _reject(self, event: str, error: PointError) -> PointOutcome:
        self.logger.warning(
            event,
            kind=error.kind.value,
            user_id=error.user_id,
            amount=error.amount,
            current_balance=error.current_balance,
            limit=error.limit,
        )
        return PointOutcome(error=error)

    def _storage_failure(
        self, operation: str, user_id: int, exc: Exception, amount: Optional[int] = None
    ) -> PointOutcome:
        self.logger.error(
            "storage_unavailable",
            operation=operation,
            user_id=user_id,
            amount=amount,
            error=str(exc),
        )
        return PointOutcome(error=PointError(
            kind=ErrorKind.STORAGE_UNAVAILABLE,
            message=f"Point storage is unavailable: {exc}",
            user_id=user_id,
            amount=amount,
        ))
