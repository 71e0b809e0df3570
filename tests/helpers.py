"""Shared test data for Lendly tests.

Regular module (not fixtures) so test files can import the records directly.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from lendly.domain.reservations import Book, User

TODAY = date(2026, 3, 10)

LOTR = Book(
    external_id="258027",
    title="The Lord of the Rings",
    author="J.R.R. Tolkien",
    price=Decimal("15.99"),
    available_quantity=5,
    first_publish_year=1954,
    has_fulltext=False,
)

OUT_OF_STOCK = Book(
    external_id="1168007",
    title="Dune",
    author="Frank Herbert",
    price=Decimal("12.00"),
    available_quantity=0,
)

JUAN = User(id=1, name="Juan Perez", email="juan@example.com")
