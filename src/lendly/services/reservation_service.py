"""Reservation service: lifecycle of book reservations.

Rules:
- Creation: user and book must exist, book must have available quantity.
  The reservation snapshots the book and is persisted ACTIVE.
- Return: only ACTIVE reservations can be returned. The late fee is 15% of
  the snapshotted book price per day late; total_fee is recomputed as base
  fee + late fee.
- Inventory (BookDirectory) is only mutated after the store scope has
  committed, once per successful transition. The directory sits outside any
  local transaction, so a failed write must never reach it.
- A refused decrement after commit surfaces as InventorySyncError carrying
  the reservation id. A book that vanished before its return is skipped.
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from datetime import date
from typing import Callable

from lendly.domain.fees import compute_base_fee, compute_late_fee, days_late, round_money
from lendly.domain.gateways import BookDirectory, ReservationStore, UserDirectory
from lendly.domain.reservations import (
    BookNotFoundError,
    BookSnapshot,
    BookUnavailableError,
    InvalidReservationError,
    InventorySyncError,
    Reservation,
    ReservationAlreadyReturnedError,
    ReservationError,
    ReservationNotFoundError,
    ReservationRead,
    ReservationStatus,
)
from lendly.infra.time import today as _today
from lendly.observability.correlation import get_correlation_id
from lendly.observability.logging import get_logger
from lendly.observability.redaction import safe_log_context

logger = get_logger(__name__)

StoreScope = Callable[[], AbstractContextManager[ReservationStore]]


class ReservationService:
    """Create, return and query reservations.

    Args:
        users: User directory gateway.
        books: Book directory gateway.
        store_scope: Factory for a unit of work yielding a ReservationStore.
            Everything done inside one scope commits or rolls back together.
        today: Clock used by the overdue query.
    """

    def __init__(
        self,
        *,
        users: UserDirectory,
        books: BookDirectory,
        store_scope: StoreScope,
        today: Callable[[], date] = _today,
    ) -> None:
        self._users = users
        self._books = books
        self._store_scope = store_scope
        self._today = today

    # ── Lifecycle ────────────────────────────────────────

    def create_reservation(
        self,
        *,
        user_id: int,
        book_external_id: str,
        start_date: date,
        rental_days: int,
    ) -> ReservationRead:
        """Reserve a book for a user.

        Raises:
            InvalidReservationError: rental_days < 1.
            UserNotFoundError: Unknown user.
            BookNotFoundError: Unknown book.
            BookUnavailableError: No copies available. Nothing was written.
            InventorySyncError: The reservation was committed but the
                directory refused the decrement (e.g. the last copy went to a
                concurrent reservation).
        """
        if rental_days is None or rental_days < 1:
            raise InvalidReservationError("rental_days must be at least 1")

        user = self._users.get_user(user_id)
        book = self._books.get_book_by_external_id(book_external_id)

        if book.available_quantity <= 0:
            raise BookUnavailableError(book_external_id)

        snapshot = BookSnapshot.of(book)
        reservation = Reservation(
            user_id=user.id,
            user_name=user.name,
            book=snapshot,
            start_date=start_date,
            rental_days=rental_days,
            daily_rate=snapshot.price,
            total_fee=compute_base_fee(snapshot.price, rental_days),
        )

        with self._store_scope() as store:
            saved = store.save(reservation)

        # Committed: consume one copy
        try:
            self._books.decrease_available_quantity(book_external_id)
        except ReservationError as exc:
            logger.exception(
                "inventory decrement failed after reservation commit",
                extra={
                    "extra_fields": safe_log_context(
                        correlationId=get_correlation_id(),
                        reservation_id=saved.id,
                        book_external_id=book_external_id,
                    )
                },
            )
            # Not a rejection: the reservation exists
            raise InventorySyncError(saved.id, book_external_id) from exc

        logger.info(
            "reservation created",
            extra={
                "extra_fields": safe_log_context(
                    correlationId=get_correlation_id(),
                    reservation_id=saved.id,
                    user_id=saved.user_id,
                    book_external_id=book_external_id,
                    rental_days=rental_days,
                    total_fee=saved.total_fee,
                )
            },
        )

        return ReservationRead.from_reservation(saved)

    def return_book(
        self,
        reservation_id: int,
        *,
        actual_return_date: date,
    ) -> ReservationRead:
        """Close an active reservation, charging late fees if any.

        Raises:
            ReservationNotFoundError: Unknown reservation.
            ReservationAlreadyReturnedError: Reservation is not active.
        """
        with self._store_scope() as store:
            reservation = store.find_by_id(reservation_id, for_update=True)
            if reservation is None:
                raise ReservationNotFoundError(reservation_id)

            if reservation.status != ReservationStatus.ACTIVE:
                raise ReservationAlreadyReturnedError(reservation_id)

            late = days_late(reservation.expected_return_date, actual_return_date)
            late_fee = compute_late_fee(reservation.book.price, late)
            base_fee = compute_base_fee(reservation.daily_rate, reservation.rental_days)

            returned = reservation.mark_returned(
                return_date=actual_return_date,
                late_fee=late_fee,
                total_fee=round_money(base_fee + late_fee),
            )
            saved = store.save(returned)

        # Committed: release the copy
        external_id = saved.book.external_id
        if external_id is not None:
            try:
                self._books.increase_available_quantity(external_id)
            except BookNotFoundError:
                logger.warning(
                    "book gone from catalog, inventory untouched",
                    extra={
                        "extra_fields": safe_log_context(
                            correlationId=get_correlation_id(),
                            reservation_id=reservation_id,
                            book_external_id=external_id,
                        )
                    },
                )
        else:
            logger.info(
                "return without book reference, inventory untouched",
                extra={
                    "extra_fields": safe_log_context(
                        correlationId=get_correlation_id(),
                        reservation_id=reservation_id,
                    )
                },
            )

        logger.info(
            "reservation returned",
            extra={
                "extra_fields": safe_log_context(
                    correlationId=get_correlation_id(),
                    reservation_id=reservation_id,
                    days_late=late,
                    late_fee=late_fee,
                    total_fee=saved.total_fee,
                )
            },
        )

        return ReservationRead.from_reservation(saved)

    # ── Queries ──────────────────────────────────────────

    def get_reservation(self, reservation_id: int) -> ReservationRead:
        with self._store_scope() as store:
            reservation = store.find_by_id(reservation_id)
        if reservation is None:
            raise ReservationNotFoundError(reservation_id)
        return ReservationRead.from_reservation(reservation)

    def list_reservations(self) -> list[ReservationRead]:
        with self._store_scope() as store:
            return _views(store.find_all())

    def list_by_user(self, user_id: int) -> list[ReservationRead]:
        with self._store_scope() as store:
            return _views(store.find_by_user_id(user_id))

    def list_by_status(self, status: ReservationStatus) -> list[ReservationRead]:
        with self._store_scope() as store:
            return _views(store.find_by_status(status))

    def list_active(self) -> list[ReservationRead]:
        return self.list_by_status(ReservationStatus.ACTIVE)

    def list_overdue(self, as_of: date | None = None) -> list[ReservationRead]:
        """Active reservations whose expected return date is before as_of.

        A reservation due on as_of itself is not overdue.
        """
        cutoff = as_of if as_of is not None else self._today()
        with self._store_scope() as store:
            return _views(
                store.find_by_status_and_expected_return_date_before(
                    ReservationStatus.ACTIVE, cutoff
                )
            )


def _views(reservations: list[Reservation]) -> list[ReservationRead]:
    return [ReservationRead.from_reservation(r) for r in reservations]
