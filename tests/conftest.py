"""Shared pytest fixtures for Lendly tests."""
import sys
sys.dont_write_bytecode = True

import pytest  # noqa: E402

from lendly.infra.repositories.memory import (  # noqa: E402
    InMemoryBookDirectory,
    InMemoryReservationStore,
    InMemoryUserDirectory,
)
from lendly.services.reservation_service import ReservationService  # noqa: E402

from .helpers import JUAN, LOTR, OUT_OF_STOCK, TODAY  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_reservation_service():
    """Reset the process-wide service so each test wires its own."""
    import lendly.api.routes.reservations as reservations_module

    reservations_module._service = None
    yield
    reservations_module._service = None


@pytest.fixture
def users():
    return InMemoryUserDirectory([JUAN])


@pytest.fixture
def books():
    return InMemoryBookDirectory([LOTR, OUT_OF_STOCK])


@pytest.fixture
def store():
    return InMemoryReservationStore()


@pytest.fixture
def service(users, books, store):
    return ReservationService(
        users=users,
        books=books,
        store_scope=store.scope,
        today=lambda: TODAY,
    )


@pytest.fixture
def pg_catalog():
    """Insert one user and one book (2 copies at 15.99) into Postgres, clean up after.

    Requires DATABASE_URL and a migrated schema.
    """
    import os
    import uuid

    if not os.environ.get("DATABASE_URL"):
        pytest.skip("DATABASE_URL not set")

    from lendly.infra.db import txn

    external_id = f"test-{uuid.uuid4().hex[:12]}"
    with txn() as cur:
        cur.execute(
            "INSERT INTO users (name, email) VALUES (%s, %s) RETURNING id",
            ("Test Reader", "reader@example.com"),
        )
        user_id = cur.fetchone()[0]
        cur.execute(
            """
            INSERT INTO books (external_id, title, author, price, available_quantity)
            VALUES (%s, %s, %s, %s, %s)
            """,
            (external_id, "Test Book", "Test Author", "15.99", 2),
        )

    yield {"user_id": user_id, "external_id": external_id}

    with txn() as cur:
        cur.execute("DELETE FROM reservations WHERE user_id = %s", (user_id,))
        cur.execute("DELETE FROM books WHERE external_id = %s", (external_id,))
        cur.execute("DELETE FROM users WHERE id = %s", (user_id,))
