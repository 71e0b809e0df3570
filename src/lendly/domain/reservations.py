"""Reservation domain: records, status variant, errors and the read view.

A reservation owns a copy of the book as it was at booking time
(BookSnapshot), so later catalog price changes never touch its fees.

Status is a tagged variant: Active, or Returned(return_date, late_fee).
A returned reservation therefore always carries its return date.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import ClassVar, Union

from pydantic import BaseModel, ConfigDict

from lendly.domain.fees import ZERO


# ── Enums ─────────────────────────────────────────────────


class ReservationStatus(str, Enum):
    ACTIVE = "active"
    RETURNED = "returned"


# ── Errors ────────────────────────────────────────────────


class ReservationError(Exception):
    """Base class for business errors raised by the reservation core."""


class NotFoundError(ReservationError):
    """A referenced user, book or reservation does not exist."""


class ConflictError(ReservationError):
    """The requested transition is not allowed in the current state."""


class InvalidReservationError(ReservationError):
    """The request is malformed (e.g. rental_days < 1)."""


class InventorySyncError(ReservationError):
    """A reservation was committed but the book directory rejected the
    inventory change that should follow it.

    The reservation exists; callers must not treat this as a rejection.
    """

    def __init__(self, reservation_id: int, external_id: str):
        self.reservation_id = reservation_id
        self.external_id = external_id
        super().__init__(
            f"Reservation {reservation_id} was created but inventory for book "
            f"{external_id} could not be updated"
        )


class UserNotFoundError(NotFoundError):
    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__(f"User {user_id} not found")


class BookNotFoundError(NotFoundError):
    def __init__(self, external_id: str):
        self.external_id = external_id
        super().__init__(f"Book {external_id} not found")


class ReservationNotFoundError(NotFoundError):
    def __init__(self, reservation_id: int):
        self.reservation_id = reservation_id
        super().__init__(f"Reservation {reservation_id} not found")


class BookUnavailableError(ConflictError):
    def __init__(self, external_id: str):
        self.external_id = external_id
        super().__init__(f"Book {external_id} is not available for reservation")


class ReservationAlreadyReturnedError(ConflictError):
    def __init__(self, reservation_id: int | None):
        self.reservation_id = reservation_id
        super().__init__(f"Reservation {reservation_id} was already returned")


# ── Directory projections ────────────────────────────────


@dataclass(frozen=True)
class User:
    id: int
    name: str
    email: str | None = None


@dataclass(frozen=True)
class Book:
    """Live catalog entry as reported by the book directory."""

    external_id: str
    title: str
    author: str | None
    price: Decimal | None
    available_quantity: int
    first_publish_year: int | None = None
    has_fulltext: bool = False


@dataclass(frozen=True)
class BookSnapshot:
    """Owned copy of the rentable attributes of a book at booking time."""

    external_id: str | None
    title: str
    author: str | None = None
    price: Decimal | None = None

    @classmethod
    def of(cls, book: Book) -> BookSnapshot:
        return cls(
            external_id=book.external_id,
            title=book.title,
            author=book.author,
            price=book.price,
        )


# ── Status variant ───────────────────────────────────────


@dataclass(frozen=True)
class Active:
    status: ClassVar[ReservationStatus] = ReservationStatus.ACTIVE


@dataclass(frozen=True)
class Returned:
    return_date: date
    late_fee: Decimal
    status: ClassVar[ReservationStatus] = ReservationStatus.RETURNED


ReservationState = Union[Active, Returned]


# ── Reservation ──────────────────────────────────────────


@dataclass(frozen=True)
class Reservation:
    """A book reservation.

    id and created_at stay None until the store persists the record.
    """

    user_id: int
    user_name: str
    book: BookSnapshot
    start_date: date
    rental_days: int
    daily_rate: Decimal | None
    total_fee: Decimal
    state: ReservationState = field(default_factory=Active)
    id: int | None = None
    created_at: datetime | None = None

    @property
    def expected_return_date(self) -> date:
        return self.start_date + timedelta(days=self.rental_days)

    @property
    def status(self) -> ReservationStatus:
        return self.state.status

    @property
    def actual_return_date(self) -> date | None:
        if isinstance(self.state, Returned):
            return self.state.return_date
        return None

    @property
    def late_fee(self) -> Decimal:
        if isinstance(self.state, Returned):
            return self.state.late_fee
        return ZERO

    def mark_returned(
        self, *, return_date: date, late_fee: Decimal, total_fee: Decimal
    ) -> Reservation:
        """Return a copy transitioned to Returned.

        Raises:
            ReservationAlreadyReturnedError: If the reservation is not active.
        """
        if not isinstance(self.state, Active):
            raise ReservationAlreadyReturnedError(self.id)
        return replace(
            self,
            state=Returned(return_date=return_date, late_fee=late_fee),
            total_fee=total_fee,
        )


# ── Pydantic Schemas ─────────────────────────────────────


class ReservationRead(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    user_id: int
    user_name: str
    book_external_id: str | None
    book_title: str
    rental_days: int
    start_date: date
    expected_return_date: date
    actual_return_date: date | None
    daily_rate: Decimal | None
    total_fee: Decimal
    late_fee: Decimal
    status: ReservationStatus
    created_at: datetime | None

    @classmethod
    def from_reservation(cls, reservation: Reservation) -> ReservationRead:
        return cls(
            id=reservation.id,
            user_id=reservation.user_id,
            user_name=reservation.user_name,
            book_external_id=reservation.book.external_id,
            book_title=reservation.book.title,
            rental_days=reservation.rental_days,
            start_date=reservation.start_date,
            expected_return_date=reservation.expected_return_date,
            actual_return_date=reservation.actual_return_date,
            daily_rate=reservation.daily_rate,
            total_fee=reservation.total_fee,
            late_fee=reservation.late_fee,
            status=reservation.status,
            created_at=reservation.created_at,
        )
