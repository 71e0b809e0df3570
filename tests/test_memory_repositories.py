"""Tests for the in-memory directories and reservation store."""

from datetime import date
from decimal import Decimal

import pytest

from lendly.domain.reservations import (
    BookNotFoundError,
    BookSnapshot,
    BookUnavailableError,
    Reservation,
    ReservationAlreadyReturnedError,
    ReservationStatus,
    UserNotFoundError,
)
from lendly.infra.repositories.memory import (
    InMemoryBookDirectory,
    InMemoryReservationStore,
    InMemoryUserDirectory,
)

from .helpers import JUAN, LOTR, OUT_OF_STOCK


def _reservation(start=date(2026, 3, 1), days=7, user_id=JUAN.id) -> Reservation:
    return Reservation(
        user_id=user_id,
        user_name=JUAN.name,
        book=BookSnapshot.of(LOTR),
        start_date=start,
        rental_days=days,
        daily_rate=LOTR.price,
        total_fee=LOTR.price * days,
    )


class TestInMemoryDirectories:
    def test_unknown_user(self):
        with pytest.raises(UserNotFoundError):
            InMemoryUserDirectory([JUAN]).get_user(2)

    def test_decrease_and_increase(self):
        books = InMemoryBookDirectory([LOTR])
        books.decrease_available_quantity(LOTR.external_id)
        assert books.get_book_by_external_id(LOTR.external_id).available_quantity == 4
        books.increase_available_quantity(LOTR.external_id)
        assert books.get_book_by_external_id(LOTR.external_id).available_quantity == 5

    def test_decrease_never_goes_negative(self):
        books = InMemoryBookDirectory([OUT_OF_STOCK])
        with pytest.raises(BookUnavailableError):
            books.decrease_available_quantity(OUT_OF_STOCK.external_id)
        assert books.get_book_by_external_id(OUT_OF_STOCK.external_id).available_quantity == 0

    def test_removed_book(self):
        books = InMemoryBookDirectory([LOTR])
        books.remove(LOTR.external_id)
        with pytest.raises(BookNotFoundError):
            books.increase_available_quantity(LOTR.external_id)


class TestInMemoryReservationStore:
    def test_insert_assigns_sequential_ids(self):
        store = InMemoryReservationStore()
        with store.scope() as s:
            first = s.save(_reservation())
            second = s.save(_reservation())
        assert (first.id, second.id) == (1, 2)
        assert first.created_at is not None

    def test_failed_scope_publishes_nothing(self):
        store = InMemoryReservationStore()
        with pytest.raises(RuntimeError):
            with store.scope() as s:
                s.save(_reservation())
                raise RuntimeError("abort")

        with store.scope() as s:
            assert s.find_all() == []

    def test_update_of_returned_record_rejected(self):
        store = InMemoryReservationStore()
        with store.scope() as s:
            saved = s.save(_reservation())
            returned = saved.mark_returned(
                return_date=date(2026, 3, 8),
                late_fee=Decimal("0.00"),
                total_fee=saved.total_fee,
            )
            s.save(returned)

        with store.scope() as s:
            with pytest.raises(ReservationAlreadyReturnedError):
                s.save(returned)

    def test_finders(self):
        store = InMemoryReservationStore()
        with store.scope() as s:
            late = s.save(_reservation(start=date(2026, 3, 1)))  # due 03-08
            later = s.save(_reservation(start=date(2026, 2, 20)))  # due 02-27
            other = s.save(_reservation(user_id=2))

        with store.scope() as s:
            assert [r.id for r in s.find_by_user_id(2)] == [other.id]
            assert len(s.find_by_status(ReservationStatus.ACTIVE)) == 3
            overdue = s.find_by_status_and_expected_return_date_before(
                ReservationStatus.ACTIVE, date(2026, 3, 8)
            )
            assert [r.id for r in overdue] == [later.id]
            assert s.find_by_id(late.id, for_update=True) == late
            assert s.find_by_id(99) is None
