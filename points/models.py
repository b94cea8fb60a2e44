from datetime import datetime
from enum import Enum
from typing import Iterable, Optional
from pydantic import BaseModel, Field, ConfigDict


class TransactionType(str, Enum):
    CHARGE = "CHARGE"
    USE = "USE"


class ErrorKind(str, Enum):
    INVALID_USER_ID = "INVALID_USER_ID"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    BALANCE_LIMIT_EXCEEDED = "BALANCE_LIMIT_EXCEEDED"
    BELOW_MINIMUM_USE_AMOUNT = "BELOW_MINIMUM_USE_AMOUNT"
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    STORAGE_UNAVAILABLE = "STORAGE_UNAVAILABLE"


class PointAmountRequest(BaseModel):
    amount: int = Field(..., description="Points to charge or use")

    model_config = ConfigDict(json_schema_extra={
        "example": {"amount": 1000}
    })


class UserPoint(BaseModel):
    id: int
    point: int = 0
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True, frozen=True)


class PointHistory(BaseModel):
    id: int
    user_id: int
    amount: int
    type: TransactionType
    timestamp: datetime

    model_config = ConfigDict(from_attributes=True, frozen=True)

    @property
    def signed_amount(self) -> int:
        return self.amount if self.type == TransactionType.CHARGE else -self.amount


class PointHistoryResponse(BaseModel):
    user_id: int
    entries: list[PointHistory]
    total_count: int
    current_balance: int


class PointError(BaseModel):
    kind: ErrorKind
    message: str
    user_id: Optional[int] = None
    amount: Optional[int] = None
    current_balance: Optional[int] = None
    limit: Optional[int] = None


class PointOperationError(Exception):
    """Raised by ``unwrap()`` when an outcome carries an error."""

    def __init__(self, error: PointError):
        self.error = error
        super().__init__(error.message)

    @property
    def kind(self) -> ErrorKind:
        return self.error.kind


class _Outcome(BaseModel):
    error: Optional[PointError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise PointOperationError(self.error)


class PointOutcome(_Outcome):
    account: Optional[UserPoint] = None

    def unwrap(self) -> UserPoint:
        self.raise_for_error()
        return self.account


class HistoryOutcome(_Outcome):
    entries: list[PointHistory] = Field(default_factory=list)

    def unwrap(self) -> list[PointHistory]:
        self.raise_for_error()
        return self.entries


def replay_balance(entries: Iterable[PointHistory]) -> int:
    """Rebuild a balance from history, starting at zero."""
    return sum(entry.signed_amount for entry in entries)
