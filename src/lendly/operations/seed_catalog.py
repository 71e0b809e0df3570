"""Seed a demo user and catalog (idempotent).

Usage:
    DATABASE_URL=... python -m lendly.operations.seed_catalog

The same records back the in-memory wiring (LENDLY_STORAGE=memory).
"""

import os
import sys
from decimal import Decimal

import psycopg2

from lendly.domain.reservations import Book, User

DEMO_USERS = (
    User(id=1, name="Juan Perez", email="juan@example.com"),
    User(id=2, name="Ana Gomez", email="ana@example.com"),
)

DEMO_BOOKS = (
    Book(
        external_id="258027",
        title="The Lord of the Rings",
        author="J.R.R. Tolkien",
        price=Decimal("15.99"),
        available_quantity=5,
        first_publish_year=1954,
        has_fulltext=False,
    ),
    Book(
        external_id="27448",
        title="The Hobbit",
        author="J.R.R. Tolkien",
        price=Decimal("9.50"),
        available_quantity=2,
        first_publish_year=1937,
        has_fulltext=True,
    ),
    Book(
        external_id="1168007",
        title="Dune",
        author="Frank Herbert",
        price=Decimal("12.00"),
        available_quantity=0,
        first_publish_year=1965,
        has_fulltext=False,
    ),
)


def env(name: str, default: str | None = None) -> str:
    v = os.getenv(name, default)
    if v is None or v.strip() == "":
        raise RuntimeError(f"Missing env var: {name}")
    return v


def main() -> int:
    dsn = env("DATABASE_URL")

    with psycopg2.connect(dsn) as conn:
        with conn.cursor() as cur:
            for user in DEMO_USERS:
                cur.execute(
                    """
                    INSERT INTO users (id, name, email)
                    VALUES (%s, %s, %s)
                    ON CONFLICT (id) DO NOTHING
                    """,
                    (user.id, user.name, user.email),
                )
            # Keep the identity sequence ahead of the explicit ids
            cur.execute(
                "SELECT setval(pg_get_serial_sequence('users', 'id'), "
                "(SELECT MAX(id) FROM users))"
            )

            for book in DEMO_BOOKS:
                cur.execute(
                    """
                    INSERT INTO books (
                        external_id, title, author, price,
                        available_quantity, first_publish_year, has_fulltext
                    )
                    VALUES (%s, %s, %s, %s, %s, %s, %s)
                    ON CONFLICT (external_id) DO NOTHING
                    """,
                    (
                        book.external_id,
                        book.title,
                        book.author,
                        book.price,
                        book.available_quantity,
                        book.first_publish_year,
                        book.has_fulltext,
                    ),
                )

    sys.stdout.write(
        f"seed ok: users={len(DEMO_USERS)} books={len(DEMO_BOOKS)}\n"
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
