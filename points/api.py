from typing import Optional

from fastapi import FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings, get_settings
from .logging import configure_logging
from .models import (
    ErrorKind,
    PointAmountRequest,
    PointHistoryResponse,
    PointOperationError,
    UserPoint,
)
from .service import PointService


ERROR_STATUS = {
    ErrorKind.INVALID_USER_ID: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_AMOUNT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.BALANCE_LIMIT_EXCEEDED: status.HTTP_400_BAD_REQUEST,
    ErrorKind.BELOW_MINIMUM_USE_AMOUNT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INSUFFICIENT_BALANCE: status.HTTP_400_BAD_REQUEST,
    ErrorKind.STORAGE_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def _http_error(e: PointOperationError) -> HTTPException:
    return HTTPException(
        status_code=ERROR_STATUS[e.kind],
        detail=e.error.model_dump(mode="json", exclude_none=True),
    )


def create_app(
    service: Optional[PointService] = None,
    settings: Optional[Settings] = None,
    root_path: str = "",
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.debug)
    point_service = service or PointService(settings=settings)

    app = FastAPI(
        title="User Point API",
        description="Per-user point balances with charge, use and full history",
        version="1.0.0",
        root_path=root_path,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.point_service = point_service

    @app.get("/health", tags=["System"])
    def health_check():
        return {"status": "healthy", "service": "user-point"}

    @app.get("/point/{user_id}", response_model=UserPoint, tags=["Points"])
    def get_point(user_id: int) -> UserPoint:
        try:
            return point_service.get_balance(user_id).unwrap()
        except PointOperationError as e:
            raise _http_error(e)

    @app.get("/point/{user_id}/histories", response_model=PointHistoryResponse, tags=["Points"])
    def get_point_histories(user_id: int) -> PointHistoryResponse:
        try:
            entries = point_service.get_history(user_id).unwrap()
            account = point_service.get_balance(user_id).unwrap()
        except PointOperationError as e:
            raise _http_error(e)

        return PointHistoryResponse(
            user_id=user_id,
            entries=entries,
            total_count=len(entries),
            current_balance=account.point,
        )

    @app.patch("/point/{user_id}/charge", response_model=UserPoint, tags=["Points"])
    def charge_point(user_id: int, request: PointAmountRequest) -> UserPoint:
        try:
            return point_service.charge(user_id, request.amount).unwrap()
        except PointOperationError as e:
            raise _http_error(e)

    @app.patch("/point/{user_id}/use", response_model=UserPoint, tags=["Points"])
    def use_point(user_id: int, request: PointAmountRequest) -> UserPoint:
        try:
            return point_service.use(user_id, request.amount).unwrap()
        except PointOperationError as e:
            raise _http_error(e)

    return app


if __name__ == "__main__":
    import uvicorn
    app = create_app()
    uvicorn.run(app, host="0.0.0.0", port=8000)
