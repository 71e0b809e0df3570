"""Books repository - catalog entries and available quantity.

Uses raw SQL with psycopg2 (no ORM).

Quantity changes run in their own transaction: the book directory is
authoritative for inventory and is never part of a reservation's unit of
work. Callers sequence them after their own commit.
"""

from __future__ import annotations

from psycopg2.extensions import cursor as PgCursor

from lendly.domain.reservations import Book, BookNotFoundError, BookUnavailableError
from lendly.infra.db import fetchone, txn


def _book_exists(cur: PgCursor, external_id: str) -> bool:
    return fetchone(cur, "SELECT 1 FROM books WHERE external_id = %s", (external_id,)) is not None


class PgBookDirectory:
    """BookDirectory backed by the books table."""

    def get_book_by_external_id(self, external_id: str) -> Book:
        with txn() as cur:
            row = fetchone(
                cur,
                """
                SELECT external_id, title, author, price, available_quantity,
                       first_publish_year, has_fulltext
                FROM books
                WHERE external_id = %s
                """,
                (external_id,),
            )
        if row is None:
            raise BookNotFoundError(external_id)
        return Book(
            external_id=row[0],
            title=row[1],
            author=row[2],
            price=row[3],
            available_quantity=row[4],
            first_publish_year=row[5],
            has_fulltext=bool(row[6]),
        )

    def decrease_available_quantity(self, external_id: str) -> None:
        """Consume one copy.

        Raises:
            BookNotFoundError: Book no longer exists.
            BookUnavailableError: Quantity is already zero.
        """
        with txn() as cur:
            cur.execute(
                """
                UPDATE books
                SET available_quantity = available_quantity - 1,
                    updated_at = now()
                WHERE external_id = %s AND available_quantity > 0
                """,
                (external_id,),
            )
            if cur.rowcount == 0:
                if not _book_exists(cur, external_id):
                    raise BookNotFoundError(external_id)
                raise BookUnavailableError(external_id)

    def increase_available_quantity(self, external_id: str) -> None:
        """Release one copy.

        Raises:
            BookNotFoundError: Book no longer exists.
        """
        with txn() as cur:
            cur.execute(
                """
                UPDATE books
                SET available_quantity = available_quantity + 1,
                    updated_at = now()
                WHERE external_id = %s
                """,
                (external_id,),
            )
            if cur.rowcount == 0:
                raise BookNotFoundError(external_id)
