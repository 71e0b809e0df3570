"""Reservations endpoints.

Thin mapping between HTTP and ReservationService:
- NotFoundError -> 404
- ConflictError -> 409
- InvalidReservationError -> 422
- InventorySyncError -> 503 (the reservation was committed; detail names it)
"""

from __future__ import annotations

import os
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from pydantic import BaseModel, Field

from lendly.domain.reservations import (
    ConflictError,
    InvalidReservationError,
    InventorySyncError,
    NotFoundError,
    ReservationError,
    ReservationRead,
    ReservationStatus,
)
from lendly.observability.correlation import get_correlation_id
from lendly.observability.logging import get_logger
from lendly.observability.redaction import safe_log_context
from lendly.services.reservation_service import ReservationService


class CreateReservationRequest(BaseModel):
    user_id: int
    book_external_id: str
    start_date: date
    rental_days: int = Field(..., ge=1)


class ReturnBookRequest(BaseModel):
    return_date: date


router = APIRouter(prefix="/reservations", tags=["reservations"])

logger = get_logger(__name__)

_service: ReservationService | None = None


def _build_service() -> ReservationService:
    """Wire the service from LENDLY_STORAGE (postgres | memory)."""
    storage = os.environ.get("LENDLY_STORAGE", "postgres")

    if storage == "memory":
        from lendly.infra.repositories.memory import (
            InMemoryBookDirectory,
            InMemoryReservationStore,
            InMemoryUserDirectory,
        )
        from lendly.operations.seed_catalog import DEMO_BOOKS, DEMO_USERS

        store = InMemoryReservationStore()
        return ReservationService(
            users=InMemoryUserDirectory(list(DEMO_USERS)),
            books=InMemoryBookDirectory(list(DEMO_BOOKS)),
            store_scope=store.scope,
        )

    if storage != "postgres":
        raise RuntimeError(f"Unknown LENDLY_STORAGE: {storage}")

    from lendly.infra.repositories.books_repository import PgBookDirectory
    from lendly.infra.repositories.reservations_repository import pg_reservation_store
    from lendly.infra.repositories.users_repository import PgUserDirectory

    return ReservationService(
        users=PgUserDirectory(),
        books=PgBookDirectory(),
        store_scope=pg_reservation_store,
    )


def get_reservation_service() -> ReservationService:
    """Get the process-wide service (override in tests via dependency_overrides)."""
    global _service
    if _service is None:
        _service = _build_service()
    return _service


_STATUS_CODES: tuple[tuple[type[ReservationError], int], ...] = (
    (NotFoundError, 404),
    (ConflictError, 409),
    (InvalidReservationError, 422),
    (InventorySyncError, 503),
)


def _to_http(exc: ReservationError) -> HTTPException:
    for error_type, status_code in _STATUS_CODES:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    # Unmapped business error: let it surface as a 500
    raise exc


@router.post("", status_code=201, response_model=ReservationRead)
def create_reservation(
    body: CreateReservationRequest,
    service: ReservationService = Depends(get_reservation_service),
) -> ReservationRead:
    """Reserve a book for a user."""
    try:
        return service.create_reservation(
            user_id=body.user_id,
            book_external_id=body.book_external_id,
            start_date=body.start_date,
            rental_days=body.rental_days,
        )
    except ReservationError as exc:
        logger.info(
            "create reservation rejected",
            extra={
                "extra_fields": safe_log_context(
                    correlationId=get_correlation_id(),
                    user_id=body.user_id,
                    book_external_id=body.book_external_id,
                    reason=type(exc).__name__,
                )
            },
        )
        raise _to_http(exc)


@router.get("", response_model=list[ReservationRead])
def list_reservations(
    status: ReservationStatus | None = Query(None, description="Filter by status"),
    service: ReservationService = Depends(get_reservation_service),
) -> list[ReservationRead]:
    if status is None:
        return service.list_reservations()
    return service.list_by_status(status)


@router.get("/active", response_model=list[ReservationRead])
def list_active_reservations(
    service: ReservationService = Depends(get_reservation_service),
) -> list[ReservationRead]:
    return service.list_active()


@router.get("/overdue", response_model=list[ReservationRead])
def list_overdue_reservations(
    as_of: date | None = Query(None, description="Reference date (defaults to today)"),
    service: ReservationService = Depends(get_reservation_service),
) -> list[ReservationRead]:
    """Active reservations whose expected return date is before as_of."""
    return service.list_overdue(as_of)


@router.get("/user/{user_id}", response_model=list[ReservationRead])
def list_user_reservations(
    user_id: int = Path(..., description="User ID"),
    service: ReservationService = Depends(get_reservation_service),
) -> list[ReservationRead]:
    return service.list_by_user(user_id)


@router.get("/{reservation_id}", response_model=ReservationRead)
def get_reservation(
    reservation_id: int = Path(..., description="Reservation ID"),
    service: ReservationService = Depends(get_reservation_service),
) -> ReservationRead:
    try:
        return service.get_reservation(reservation_id)
    except ReservationError as exc:
        raise _to_http(exc)


@router.post("/{reservation_id}/actions/return", response_model=ReservationRead)
def return_book(
    body: ReturnBookRequest,
    reservation_id: int = Path(..., description="Reservation ID"),
    service: ReservationService = Depends(get_reservation_service),
) -> ReservationRead:
    """Return the book of an active reservation, charging late fees."""
    try:
        return service.return_book(reservation_id, actual_return_date=body.return_date)
    except ReservationError as exc:
        logger.info(
            "return rejected",
            extra={
                "extra_fields": safe_log_context(
                    correlationId=get_correlation_id(),
                    reservation_id=reservation_id,
                    reason=type(exc).__name__,
                )
            },
        )
        raise _to_http(exc)
