"""Reservations repository - persistence for reservation records.

Uses raw SQL with psycopg2 (no ORM). A PgReservationStore is bound to one
cursor; pg_reservation_store() opens the transaction around it.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import replace
from datetime import date
from typing import Any, Iterator

from psycopg2.extensions import cursor as PgCursor

from lendly.domain.reservations import (
    Active,
    BookSnapshot,
    Reservation,
    ReservationAlreadyReturnedError,
    ReservationStatus,
    Returned,
)
from lendly.infra.db import fetchall, fetchone, txn
from lendly.infra.db import for_update as select_for_update

_SELECT = """
    SELECT id, user_id, user_name,
           book_external_id, book_title, book_author, book_price,
           start_date, rental_days, daily_rate, total_fee,
           status, actual_return_date, late_fee, created_at
    FROM reservations
"""


def _row_to_reservation(row: tuple[Any, ...]) -> Reservation:
    (
        reservation_id,
        user_id,
        user_name,
        book_external_id,
        book_title,
        book_author,
        book_price,
        start_date,
        rental_days,
        daily_rate,
        total_fee,
        status,
        actual_return_date,
        late_fee,
        created_at,
    ) = row

    if ReservationStatus(status) == ReservationStatus.RETURNED:
        state = Returned(return_date=actual_return_date, late_fee=late_fee)
    else:
        state = Active()

    return Reservation(
        id=reservation_id,
        user_id=user_id,
        user_name=user_name,
        book=BookSnapshot(
            external_id=book_external_id,
            title=book_title,
            author=book_author,
            price=book_price,
        ),
        start_date=start_date,
        rental_days=rental_days,
        daily_rate=daily_rate,
        total_fee=total_fee,
        state=state,
        created_at=created_at,
    )


class PgReservationStore:
    """ReservationStore over a psycopg2 cursor (caller manages the transaction)."""

    def __init__(self, cur: PgCursor) -> None:
        self._cur = cur

    def save(self, reservation: Reservation) -> Reservation:
        if reservation.id is None:
            return self._insert(reservation)
        return self._update(reservation)

    def _insert(self, reservation: Reservation) -> Reservation:
        row = fetchone(
            self._cur,
            """
            INSERT INTO reservations (
                user_id, user_name,
                book_external_id, book_title, book_author, book_price,
                start_date, expected_return_date, rental_days,
                daily_rate, total_fee, late_fee, status
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING id, created_at
            """,
            (
                reservation.user_id,
                reservation.user_name,
                reservation.book.external_id,
                reservation.book.title,
                reservation.book.author,
                reservation.book.price,
                reservation.start_date,
                reservation.expected_return_date,
                reservation.rental_days,
                reservation.daily_rate,
                reservation.total_fee,
                reservation.late_fee,
                reservation.status.value,
            ),
        )
        reservation_id, created_at = row
        return replace(reservation, id=reservation_id, created_at=created_at)

    def _update(self, reservation: Reservation) -> Reservation:
        # Only the return transition writes to an existing row; the status
        # guard makes it a check-and-set.
        self._cur.execute(
            """
            UPDATE reservations
            SET status = %s,
                actual_return_date = %s,
                late_fee = %s,
                total_fee = %s,
                updated_at = now()
            WHERE id = %s AND status = 'active'
            """,
            (
                reservation.status.value,
                reservation.actual_return_date,
                reservation.late_fee,
                reservation.total_fee,
                reservation.id,
            ),
        )
        if self._cur.rowcount == 0:
            raise ReservationAlreadyReturnedError(reservation.id)
        return reservation

    def find_by_id(
        self, reservation_id: int, *, for_update: bool = False
    ) -> Reservation | None:
        query = _SELECT + " WHERE id = %s"
        if for_update:
            row = select_for_update(self._cur, query, (reservation_id,))
        else:
            row = fetchone(self._cur, query, (reservation_id,))
        return _row_to_reservation(row) if row is not None else None

    def find_by_user_id(self, user_id: int) -> list[Reservation]:
        rows = fetchall(self._cur, _SELECT + " WHERE user_id = %s ORDER BY id", (user_id,))
        return [_row_to_reservation(r) for r in rows]

    def find_by_status(self, status: ReservationStatus) -> list[Reservation]:
        rows = fetchall(
            self._cur, _SELECT + " WHERE status = %s ORDER BY id", (status.value,)
        )
        return [_row_to_reservation(r) for r in rows]

    def find_by_status_and_expected_return_date_before(
        self, status: ReservationStatus, before: date
    ) -> list[Reservation]:
        rows = fetchall(
            self._cur,
            _SELECT
            + " WHERE status = %s AND expected_return_date < %s"
            + " ORDER BY expected_return_date, id",
            (status.value, before),
        )
        return [_row_to_reservation(r) for r in rows]

    def find_all(self) -> list[Reservation]:
        rows = fetchall(self._cur, _SELECT + " ORDER BY id")
        return [_row_to_reservation(r) for r in rows]


@contextmanager
def pg_reservation_store() -> Iterator[PgReservationStore]:
    """Open a transaction and yield a store bound to it.

    Commits when the block exits cleanly, rolls back on exception.
    """
    with txn() as cur:
        yield PgReservationStore(cur)
