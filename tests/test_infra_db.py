"""Tests for the psycopg2 access layer."""

import os
from unittest.mock import MagicMock, patch

import pytest


def _connect(env):
    from lendly.infra.db import get_conn

    with patch.dict(os.environ, env, clear=True), \
         patch("lendly.infra.db.psycopg2.connect", return_value=MagicMock()) as mock_connect:
        get_conn()
    return mock_connect


class TestGetConn:
    """DSN and DB_PASSWORD handling; no real DB needed."""

    def test_password_from_env_when_dsn_has_none(self):
        mock_connect = _connect(
            {"DATABASE_URL": "dbname=lendly user=app host=db", "DB_PASSWORD": "from-env"}
        )
        mock_connect.assert_called_once_with(
            "dbname=lendly user=app host=db", password="from-env"
        )

    def test_dsn_password_wins(self):
        mock_connect = _connect(
            {
                "DATABASE_URL": "dbname=lendly user=app password=from-dsn host=db",
                "DB_PASSWORD": "from-env",
            }
        )
        mock_connect.assert_called_once_with(
            "dbname=lendly user=app password=from-dsn host=db"
        )

    def test_url_without_password(self):
        mock_connect = _connect(
            {"DATABASE_URL": "postgres://app@db/lendly", "DB_PASSWORD": "from-env"}
        )
        mock_connect.assert_called_once_with(
            "postgres://app@db/lendly", password="from-env"
        )

    def test_url_with_password(self):
        mock_connect = _connect(
            {"DATABASE_URL": "postgres://app:pw@db/lendly", "DB_PASSWORD": "from-env"}
        )
        mock_connect.assert_called_once_with("postgres://app:pw@db/lendly")

    def test_missing_database_url(self):
        from lendly.infra.db import get_conn

        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(RuntimeError, match="DATABASE_URL"):
                get_conn()


class TestTxnMocked:
    def test_commits_on_success_and_keeps_caller_conn_open(self):
        from lendly.infra.db import txn

        conn = MagicMock()
        cur = conn.cursor.return_value.__enter__.return_value

        with txn(conn) as c:
            assert c is cur

        conn.commit.assert_called_once()
        conn.rollback.assert_not_called()
        conn.close.assert_not_called()

    def test_rolls_back_on_error(self):
        from lendly.infra.db import txn

        conn = MagicMock()

        with pytest.raises(ValueError):
            with txn(conn):
                raise ValueError("boom")

        conn.rollback.assert_called_once()
        conn.commit.assert_not_called()

    def test_closes_connection_it_opened(self):
        from lendly.infra.db import txn

        conn = MagicMock()
        with patch("lendly.infra.db.get_conn", return_value=conn):
            with txn():
                pass

        conn.commit.assert_called_once()
        conn.close.assert_called_once()

    def test_closes_connection_it_opened_on_error(self):
        from lendly.infra.db import txn

        conn = MagicMock()
        with patch("lendly.infra.db.get_conn", return_value=conn):
            with pytest.raises(RuntimeError):
                with txn():
                    raise RuntimeError("boom")

        conn.rollback.assert_called_once()
        conn.close.assert_called_once()


class TestForUpdateMocked:
    def test_appends_clause(self):
        from lendly.infra.db import for_update

        cur = MagicMock()
        cur.fetchone.return_value = (1,)

        row = for_update(cur, "SELECT id FROM reservations WHERE id = %s;", (1,))

        assert row == (1,)
        cur.execute.assert_called_once_with(
            "SELECT id FROM reservations WHERE id = %s FOR UPDATE", (1,)
        )

    def test_trailing_whitespace_stripped(self):
        from lendly.infra.db import for_update

        cur = MagicMock()
        cur.fetchone.return_value = None

        assert for_update(cur, "SELECT 1\n   ") is None
        assert cur.execute.call_args[0][0] == "SELECT 1 FOR UPDATE"


# Skip integration tests if DATABASE_URL is not set
_skip_no_db = pytest.mark.skipif(
    not os.environ.get("DATABASE_URL"),
    reason="DATABASE_URL not set - skipping DB integration tests",
)


@_skip_no_db
class TestTxnIntegration:
    def test_commits_on_success(self):
        from lendly.infra.db import get_conn, txn

        conn = get_conn()
        try:
            with conn.cursor() as cur:
                cur.execute("CREATE TEMP TABLE test_txn (id serial, val text)")
            conn.commit()

            with txn(conn) as cur:
                cur.execute("INSERT INTO test_txn (val) VALUES (%s)", ("kept",))

            with conn.cursor() as cur:
                cur.execute("SELECT val FROM test_txn")
                assert cur.fetchone()[0] == "kept"
        finally:
            conn.close()

    def test_rollback_on_exception(self):
        from lendly.infra.db import get_conn, txn

        conn = get_conn()
        try:
            with conn.cursor() as cur:
                cur.execute("CREATE TEMP TABLE test_rollback (id serial, val text)")
            conn.commit()

            with pytest.raises(ValueError):
                with txn(conn) as cur:
                    cur.execute("INSERT INTO test_rollback (val) VALUES (%s)", ("bad",))
                    raise ValueError("rollback test")

            with conn.cursor() as cur:
                cur.execute("SELECT count(*) FROM test_rollback")
                assert cur.fetchone()[0] == 0
        finally:
            conn.close()

    def test_helpers(self):
        from lendly.infra.db import fetchall, fetchone, txn

        with txn() as cur:
            assert fetchone(cur, "SELECT %s::text", ("hello",))[0] == "hello"
            rows = fetchall(cur, "SELECT generate_series(1, 3)")
            assert [r[0] for r in rows] == [1, 2, 3]
