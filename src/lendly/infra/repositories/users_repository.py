"""Users repository - read-only user directory backed by the users table.

Uses raw SQL with psycopg2 (no ORM). Users are managed outside this service.
"""

from __future__ import annotations

from lendly.domain.reservations import User, UserNotFoundError
from lendly.infra.db import fetchone, txn


class PgUserDirectory:
    """UserDirectory reading from Postgres, one short transaction per call."""

    def get_user(self, user_id: int) -> User:
        with txn() as cur:
            row = fetchone(
                cur,
                "SELECT id, name, email FROM users WHERE id = %s",
                (user_id,),
            )
        if row is None:
            raise UserNotFoundError(user_id)
        return User(id=row[0], name=row[1], email=row[2])
