"""In-memory implementations of the directories and the reservation store.

Used when LENDLY_STORAGE=memory and throughout the unit tests. Single
process only.
"""

from __future__ import annotations

import itertools
import threading
from contextlib import contextmanager
from dataclasses import replace
from datetime import date
from typing import Iterator

from lendly.domain.reservations import (
    Book,
    BookNotFoundError,
    BookUnavailableError,
    Reservation,
    ReservationAlreadyReturnedError,
    ReservationStatus,
    User,
    UserNotFoundError,
)
from lendly.infra.time import utc_now


class InMemoryUserDirectory:
    def __init__(self, users: list[User] | None = None) -> None:
        self._users: dict[int, User] = {u.id: u for u in users or []}

    def add(self, user: User) -> None:
        self._users[user.id] = user

    def get_user(self, user_id: int) -> User:
        user = self._users.get(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user


class InMemoryBookDirectory:
    def __init__(self, books: list[Book] | None = None) -> None:
        self._books: dict[str, Book] = {b.external_id: b for b in books or []}
        self._lock = threading.Lock()

    def add(self, book: Book) -> None:
        with self._lock:
            self._books[book.external_id] = book

    def remove(self, external_id: str) -> None:
        with self._lock:
            self._books.pop(external_id, None)

    def get_book_by_external_id(self, external_id: str) -> Book:
        book = self._books.get(external_id)
        if book is None:
            raise BookNotFoundError(external_id)
        return book

    def decrease_available_quantity(self, external_id: str) -> None:
        with self._lock:
            book = self.get_book_by_external_id(external_id)
            if book.available_quantity <= 0:
                raise BookUnavailableError(external_id)
            self._books[external_id] = replace(
                book, available_quantity=book.available_quantity - 1
            )

    def increase_available_quantity(self, external_id: str) -> None:
        with self._lock:
            book = self.get_book_by_external_id(external_id)
            self._books[external_id] = replace(
                book, available_quantity=book.available_quantity + 1
            )


class _MemorySession:
    """ReservationStore view over a working copy of the records."""

    def __init__(self, records: dict[int, Reservation], ids: Iterator[int]) -> None:
        self._records = records
        self._ids = ids

    def save(self, reservation: Reservation) -> Reservation:
        if reservation.id is None:
            saved = replace(reservation, id=next(self._ids), created_at=utc_now())
        else:
            current = self._records.get(reservation.id)
            if current is None or current.status != ReservationStatus.ACTIVE:
                raise ReservationAlreadyReturnedError(reservation.id)
            saved = reservation
        self._records[saved.id] = saved
        return saved

    def find_by_id(
        self, reservation_id: int, *, for_update: bool = False
    ) -> Reservation | None:
        # The whole scope already holds the store lock
        return self._records.get(reservation_id)

    def find_by_user_id(self, user_id: int) -> list[Reservation]:
        return [r for r in self.find_all() if r.user_id == user_id]

    def find_by_status(self, status: ReservationStatus) -> list[Reservation]:
        return [r for r in self.find_all() if r.status == status]

    def find_by_status_and_expected_return_date_before(
        self, status: ReservationStatus, before: date
    ) -> list[Reservation]:
        matches = [
            r
            for r in self.find_all()
            if r.status == status and r.expected_return_date < before
        ]
        return sorted(matches, key=lambda r: (r.expected_return_date, r.id))

    def find_all(self) -> list[Reservation]:
        return [self._records[k] for k in sorted(self._records)]


class InMemoryReservationStore:
    """Reservation records guarded by one lock.

    scope() serialises units of work and only publishes their writes when
    the block exits without an exception.
    """

    def __init__(self) -> None:
        self._records: dict[int, Reservation] = {}
        self._ids = itertools.count(1)
        self._lock = threading.RLock()

    @contextmanager
    def scope(self) -> Iterator[_MemorySession]:
        with self._lock:
            working = dict(self._records)
            yield _MemorySession(working, self._ids)
            self._records = working
