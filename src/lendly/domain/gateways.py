"""Contracts for the collaborators the reservation core calls.

Implementations live in lendly.infra.repositories (Postgres and in-memory).
"""

from __future__ import annotations

from datetime import date
from typing import Protocol

from lendly.domain.reservations import Book, Reservation, ReservationStatus, User


class UserDirectory(Protocol):
    def get_user(self, user_id: int) -> User:
        """Raises UserNotFoundError if absent."""
        ...


class BookDirectory(Protocol):
    """Authoritative source for catalog entries and live quantity.

    Quantity mutations are not idempotent: callers must invoke them at most
    once per committed lifecycle transition. Both raise BookNotFoundError if
    the book no longer exists.
    """

    def get_book_by_external_id(self, external_id: str) -> Book: ...

    def decrease_available_quantity(self, external_id: str) -> None: ...

    def increase_available_quantity(self, external_id: str) -> None: ...


class ReservationStore(Protocol):
    """Persistence for reservations, bound to one unit of work."""

    def save(self, reservation: Reservation) -> Reservation:
        """Insert (assigning id and created_at) or update a reservation.

        Updates only apply to active rows; a row that is already returned
        raises ReservationAlreadyReturnedError.
        """
        ...

    def find_by_id(
        self, reservation_id: int, *, for_update: bool = False
    ) -> Reservation | None: ...

    def find_by_user_id(self, user_id: int) -> list[Reservation]: ...

    def find_by_status(self, status: ReservationStatus) -> list[Reservation]: ...

    def find_by_status_and_expected_return_date_before(
        self, status: ReservationStatus, before: date
    ) -> list[Reservation]: ...

    def find_all(self) -> list[Reservation]: ...
